import datetime

from flask import Blueprint, request, g
from sqlalchemy import select

from ...extensions import db
from ...models import Donation, User
from ...utils.auth import token_required
from ...utils.errors import NotFoundError, ValidationError
from ...utils.responses import success_response
from ...utils.serializers import (
    serialize_donation,
    serialize_notifications,
    serialize_privacy,
    serialize_user,
)

profile_bp = Blueprint("user_profile", __name__, url_prefix="/api/users")

PROFILE_DONATIONS = 10

# JSON key -> User column
NOTIFICATION_FIELDS = {
    "appointmentReminders": "appointment_reminders",
    "campaignUpdates": "campaign_updates",
    "rewardAlerts": "reward_alerts",
    "systemNotifications": "system_notifications",
}
PRIVACY_FIELDS = {
    "shareImpact": "share_impact",
    "showInLeaderboard": "show_in_leaderboard",
    "dataCollection": "data_collection",
}


def _current_user():
    user = db.session.get(User, g.user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def build_achievements(user, now=None):
    """Badges derived from the user's counters."""
    now = (now or datetime.datetime.utcnow()).isoformat()
    first_unlocked = user.donation_count > 0
    five_unlocked = user.donation_count >= 5
    lifesaver_unlocked = user.lives_saved >= 10
    return [
        {
            "id": "1",
            "name": "Primera donació",
            "description": "Has fet la teva primera donació",
            "icon": "droplet",
            "unlockedAt": user.created_at.isoformat() if first_unlocked and user.created_at else None,
            "isLocked": not first_unlocked,
        },
        {
            "id": "2",
            "name": "5 donacions",
            "description": "Has completat 5 donacions",
            "icon": "award",
            "unlockedAt": now if five_unlocked else None,
            "isLocked": not five_unlocked,
        },
        {
            "id": "3",
            "name": "Salvavides",
            "description": "Has salvat 10 vides",
            "icon": "heart",
            "unlockedAt": now if lifesaver_unlocked else None,
            "isLocked": not lifesaver_unlocked,
        },
        {
            "id": "4",
            "name": "Donant regular",
            "description": "Has donat durant 3 mesos consecutius",
            "icon": "calendar",
            "unlockedAt": None,
            "isLocked": True,
        },
    ]


def _apply_flags(user, data, fields):
    for key, column in fields.items():
        if key in data:
            if not isinstance(data[key], bool):
                raise ValidationError(f"{key} must be a boolean", key)
            setattr(user, column, data[key])


@profile_bp.route("/profile", methods=["GET"])
@token_required
def get_profile():
    """
    Current user's profile with recent donations and achievements
    ---
    tags:
      - Users
    responses:
      200:
        description: Profile
      404:
        description: User not found
    """
    user = _current_user()
    donations = db.session.scalars(
        select(Donation)
        .where(Donation.user_id == user.id)
        .order_by(Donation.date.desc(), Donation.id.desc())
        .limit(PROFILE_DONATIONS)
    ).all()

    profile = serialize_user(user)
    profile["donationHistory"] = [serialize_donation(d) for d in donations]
    profile["achievements"] = build_achievements(user)
    return success_response(profile)


@profile_bp.route("/profile", methods=["PUT"])
@token_required
def update_profile():
    """
    Edit name, phone and avatar
    ---
    tags:
      - Users
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            phone:
              type: string
            avatar:
              type: string
    responses:
      200:
        description: Updated profile
      400:
        description: Invalid request body
    """
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError("Request body is required")

    user = _current_user()
    for field in ("name", "phone"):
        if field in data:
            value = data[field]
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{field} cannot be empty", field)
            setattr(user, field, value.strip())
    if "avatar" in data:
        user.avatar = data["avatar"]

    db.session.commit()
    return success_response(serialize_user(user))


@profile_bp.route("/settings/notifications", methods=["PUT"])
@token_required
def update_notification_settings():
    data = request.get_json(silent=True) or {}
    user = _current_user()
    _apply_flags(user, data, NOTIFICATION_FIELDS)
    db.session.commit()
    return success_response(serialize_notifications(user))


@profile_bp.route("/settings/privacy", methods=["PUT"])
@token_required
def update_privacy_settings():
    data = request.get_json(silent=True) or {}
    user = _current_user()
    _apply_flags(user, data, PRIVACY_FIELDS)
    db.session.commit()
    return success_response(serialize_privacy(user))
