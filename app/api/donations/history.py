from flask import Blueprint, g

from app.services import donation_analytics
from app.utils.auth import token_required
from app.utils.responses import success_response
from app.utils.serializers import serialize_donation

donations_bp = Blueprint("donations", __name__, url_prefix="/api/donations")


def _iso(value):
    return value.isoformat() if value else None


@donations_bp.route("/history", methods=["GET"])
@token_required
def get_donation_history():
    """
    Latest donations of the current user with summary stats
    ---
    tags:
      - Donations
    responses:
      200:
        description: Up to 50 donations, newest first, plus per-type counts and eligibility
      401:
        description: Missing or invalid token
    """
    history = donation_analytics.get_donation_history(g.user_id)
    stats = dict(history["stats"])
    stats["lastDonationDate"] = _iso(stats["lastDonationDate"])
    stats["nextEligibleDate"] = _iso(stats["nextEligibleDate"])

    return success_response(
        {
            "donations": [serialize_donation(d) for d in history["donations"]],
            "stats": stats,
        }
    )


@donations_bp.route("/analytics", methods=["GET"])
@token_required
def get_analytics():
    """
    Monthly donation and token trends of the current user
    ---
    tags:
      - Donations
    responses:
      200:
        description: donationEvolution and monthlyTokens series keyed by YYYY-MM
    """
    return success_response(donation_analytics.get_analytics(g.user_id))


@donations_bp.route("/next-eligible", methods=["GET"])
@token_required
def get_next_eligible_date():
    result = donation_analytics.get_next_eligible(g.user_id)
    return success_response(
        {"date": _iso(result["date"]), "daysUntil": result["daysUntil"]}
    )
