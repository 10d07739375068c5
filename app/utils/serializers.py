# JSON shapes shared by several blueprints


def _iso(value):
    return value.isoformat() if value else None


def serialize_user(user):
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "phone": user.phone,
        "birthdate": _iso(user.birthdate),
        "gender": user.gender,
        "bloodType": user.blood_type,
        "hasDonatedBefore": bool(user.has_donated_before),
        "tokens": user.tokens,
        "donationCount": user.donation_count,
        "livesSaved": user.lives_saved,
        "avatar": user.avatar,
        "notifications": serialize_notifications(user),
        "privacy": serialize_privacy(user),
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }


def serialize_notifications(user):
    return {
        "appointmentReminders": bool(user.appointment_reminders),
        "campaignUpdates": bool(user.campaign_updates),
        "rewardAlerts": bool(user.reward_alerts),
        "systemNotifications": bool(user.system_notifications),
    }


def serialize_privacy(user):
    return {
        "shareImpact": bool(user.share_impact),
        "showInLeaderboard": bool(user.show_in_leaderboard),
        "dataCollection": bool(user.data_collection),
    }


def serialize_center(center, distance_km=None):
    data = {
        "id": center.id,
        "name": center.name,
        "address": center.address,
        "city": center.city,
        "postalCode": center.postal_code,
        "coordinates": {"lat": center.latitude, "lng": center.longitude},
        "type": center.type,
        "openNow": bool(center.open_now),
        "schedule": [
            {
                "dayOfWeek": row.day_of_week,
                "openTime": row.open_time,
                "closeTime": row.close_time,
                "isClosed": bool(row.is_closed),
            }
            for row in center.schedule
        ],
        "phone": center.phone,
        "facilities": center.facilities or [],
        "imageUrl": center.image_url,
        "capacity": center.capacity,
    }
    if distance_km is not None:
        data["distanceKm"] = round(distance_km, 2)
    return data


def serialize_appointment(appointment):
    return {
        "id": appointment.id,
        "userId": appointment.user_id,
        "donationCenterId": appointment.center_id,
        "donationCenter": (
            serialize_center(appointment.center) if appointment.center else None
        ),
        "donationType": appointment.donation_type,
        "date": _iso(appointment.date),
        "time": appointment.time,
        "status": appointment.status,
        "confirmationCode": appointment.confirmation_code,
        "notes": appointment.notes,
        "createdAt": _iso(appointment.created_at),
        "updatedAt": _iso(appointment.updated_at),
    }


def serialize_donation(donation):
    return {
        "id": donation.id,
        "userId": donation.user_id,
        "appointmentId": donation.appointment_id,
        "donationType": donation.donation_type,
        "date": _iso(donation.date),
        "donationCenterId": donation.center_id,
        "donationCenterName": donation.center_name,
        "tokensEarned": donation.tokens_earned,
        "volume": donation.volume,
        "notes": donation.notes,
    }


def serialize_reward(reward):
    return {
        "id": reward.id,
        "title": reward.title,
        "description": reward.description,
        "shortDescription": reward.short_description,
        "longDescription": reward.long_description,
        "imageUrl": reward.image_url,
        "category": reward.category,
        "tokensRequired": reward.tokens_required,
        "status": reward.status,
        "stockAvailable": reward.stock_available,
        "totalStock": reward.total_stock,
        "validUntil": _iso(reward.valid_until),
        "termsAndConditions": reward.terms_and_conditions or [],
        "redemptionInstructions": reward.redemption_instructions,
        "features": reward.features or [],
        "restrictions": reward.restrictions or [],
        "howToRedeem": reward.how_to_redeem or [],
        "partnerId": reward.partner_id,
        "partnerName": reward.partner_name,
        "partnerLogo": reward.partner_logo,
    }


def serialize_transaction(transaction):
    return {
        "id": transaction.id,
        "userId": transaction.user_id,
        "rewardId": transaction.reward_id,
        "reward": serialize_reward(transaction.reward) if transaction.reward else None,
        "tokensSpent": transaction.tokens_spent,
        "redemptionCode": transaction.redemption_code,
        "status": transaction.status,
        "redeemedAt": _iso(transaction.redeemed_at),
        "expiresAt": _iso(transaction.expires_at),
        "createdAt": _iso(transaction.created_at),
        "updatedAt": _iso(transaction.updated_at),
    }


def serialize_campaign(campaign):
    return {
        "id": campaign.id,
        "title": campaign.title,
        "description": campaign.description,
        "shortDescription": campaign.short_description,
        "longDescription": campaign.long_description,
        "imageUrl": campaign.image_url,
        "status": campaign.status,
        "startDate": _iso(campaign.start_date),
        "endDate": _iso(campaign.end_date),
        "targetDonations": campaign.target_donations,
        "currentDonations": campaign.current_donations,
        "targetBloodTypes": campaign.target_blood_types,
        "targetDonationType": campaign.target_donation_type,
        "priority": campaign.priority,
        "bonusTokens": campaign.bonus_tokens,
        "requirements": campaign.requirements or [],
        "benefits": campaign.benefits or [],
        "participatingCenters": campaign.participating_centers or [],
    }
