# Read-only views over the donation log. Nothing here is cached or stored.
import datetime

from flask import current_app
from sqlalchemy import select

from app.extensions import db
from app.models import DONATION_TYPES, Donation, User
from app.utils.errors import NotFoundError

# Minimum days between donations, by type of the last donation
WAITING_PERIODS = {
    "sang_total": 56,
    "plaquetes": 14,
    "plasma": 14,
    "medul·la": 365,
}
DEFAULT_WAITING_PERIOD = 56


def next_eligible_date(last_donation):
    days = WAITING_PERIODS.get(last_donation.donation_type, DEFAULT_WAITING_PERIOD)
    return last_donation.date + datetime.timedelta(days=days)


def donations_by_type(donations):
    counts = {donation_type: 0 for donation_type in DONATION_TYPES}
    for donation in donations:
        if donation.donation_type in counts:
            counts[donation.donation_type] += 1
    return counts


def monthly_buckets(donations):
    """
    Group donations by calendar month.

    Returns ``(donation_evolution, monthly_tokens)``, two parallel lists
    sorted by month (``YYYY-MM``) whatever the order of the input.
    """
    buckets = {}
    for donation in donations:
        month = donation.date.strftime("%Y-%m")
        bucket = buckets.setdefault(month, {"count": 0, "tokens": 0})
        bucket["count"] += 1
        bucket["tokens"] += donation.tokens_earned or 0

    months = sorted(buckets)
    donation_evolution = [{"month": m, "count": buckets[m]["count"]} for m in months]
    monthly_tokens = [{"month": m, "tokens": buckets[m]["tokens"]} for m in months]
    return donation_evolution, monthly_tokens


def _get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def _user_stats(user):
    # Counters are maintained when donations are recorded, not recomputed here
    return {
        "totalDonations": user.donation_count,
        "livesSaved": user.lives_saved,
        "totalTokens": user.tokens,
    }


def get_donation_history(user_id):
    user = _get_user(user_id)
    donations = db.session.scalars(
        select(Donation)
        .where(Donation.user_id == user_id)
        .order_by(Donation.date.desc(), Donation.id.desc())
        .limit(current_app.config["HISTORY_LIMIT"])
    ).all()

    latest = donations[0] if donations else None
    stats = _user_stats(user)
    stats.update(
        {
            "donationsByType": donations_by_type(donations),
            "lastDonationDate": latest.date if latest else None,
            "nextEligibleDate": next_eligible_date(latest) if latest else None,
        }
    )
    return {"donations": donations, "stats": stats}


def get_analytics(user_id):
    user = _get_user(user_id)
    donations = db.session.scalars(
        select(Donation)
        .where(Donation.user_id == user_id)
        .order_by(Donation.date, Donation.id)
    ).all()

    donation_evolution, monthly_tokens = monthly_buckets(donations)
    stats = _user_stats(user)
    stats["donationsByType"] = donations_by_type(donations)
    return {
        "donationEvolution": donation_evolution,
        "monthlyTokens": monthly_tokens,
        "stats": stats,
    }


def get_next_eligible(user_id, today=None):
    today = today or datetime.date.today()
    last_donation = db.session.scalar(
        select(Donation)
        .where(Donation.user_id == user_id)
        .order_by(Donation.date.desc(), Donation.id.desc())
        .limit(1)
    )
    if not last_donation:
        return {"date": today, "daysUntil": 0}

    next_date = next_eligible_date(last_donation)
    return {"date": next_date, "daysUntil": max(0, (next_date - today).days)}
