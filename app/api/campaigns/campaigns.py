from flask import Blueprint, request
from sqlalchemy import case, select

from app.extensions import db
from app.models import Campaign
from app.utils.auth import token_required
from app.utils.errors import NotFoundError, ValidationError
from app.utils.responses import success_response
from app.utils.serializers import serialize_campaign

campaigns_bp = Blueprint("campaigns", __name__, url_prefix="/api/campaigns")

CAMPAIGN_STATUSES = ("active", "upcoming", "completed", "cancelled")
CAMPAIGN_LIMIT = 20

# urgent campaigns first
PRIORITY_ORDER = case(
    {"urgent": 0, "high": 1, "normal": 2}, value=Campaign.priority, else_=3
)


@campaigns_bp.route("", methods=["GET"])
def get_campaigns():
    """
    Campaigns by status (default active), most urgent and soonest ending first
    ---
    tags:
      - Campaigns
    security: []
    parameters:
      - in: query
        name: status
        type: string
        enum: [active, upcoming, completed, cancelled]
    responses:
      200:
        description: Up to 20 campaigns
    """
    status = request.args.get("status") or "active"
    if status not in CAMPAIGN_STATUSES:
        raise ValidationError("Invalid campaign status", "status")

    campaigns = db.session.scalars(
        select(Campaign)
        .where(Campaign.status == status)
        .order_by(PRIORITY_ORDER, Campaign.end_date)
        .limit(CAMPAIGN_LIMIT)
    ).all()
    return success_response([serialize_campaign(c) for c in campaigns])


@campaigns_bp.route("/user", methods=["GET"])
@token_required
def get_user_campaigns():
    # Participation is not tracked yet
    return success_response([])


@campaigns_bp.route("/<int:campaign_id>", methods=["GET"])
def get_campaign(campaign_id):
    campaign = db.session.get(Campaign, campaign_id)
    if not campaign:
        raise NotFoundError("Campaign not found")
    return success_response(serialize_campaign(campaign))
