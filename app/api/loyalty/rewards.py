# rewards.py
from flask import Blueprint, g, request

from app.services import reward_ledger
from app.utils.auth import token_required
from app.utils.errors import ValidationError
from app.utils.responses import success_response
from app.utils.serializers import serialize_reward, serialize_transaction

rewards_bp = Blueprint("rewards", __name__, url_prefix="/api/rewards")


@rewards_bp.route("", methods=["GET"])
def get_rewards():
    """
    Rewards that can currently be redeemed, cheapest first
    ---
    tags:
      - Rewards
    security: []
    parameters:
      - in: query
        name: category
        type: string
        enum: [all, festivals, discounts, exclusive, experiences]
    responses:
      200:
        description: List of rewards with status available or low_stock
    """
    rewards = reward_ledger.list_rewards(request.args.get("category"))
    return success_response([serialize_reward(r) for r in rewards])


@rewards_bp.route("/<int:reward_id>", methods=["GET"])
def get_reward(reward_id):
    reward = reward_ledger.get_reward(reward_id)
    return success_response(serialize_reward(reward))


@rewards_bp.route("/redeem", methods=["POST"])
@token_required
def redeem_reward():
    """
    Exchange tokens for a reward
    ---
    tags:
      - Rewards
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [rewardId]
          properties:
            rewardId:
              type: integer
    responses:
      200:
        description: Reward redeemed, transaction returned with its redemption code
      400:
        description: Reward unavailable or out of stock (field "rewardId"), or not enough tokens (field "tokens")
      404:
        description: Reward not found
    """
    data = request.get_json(silent=True) or {}
    reward_id = data.get("rewardId")
    if not reward_id:
        raise ValidationError("rewardId is required", "rewardId")

    transaction = reward_ledger.redeem_reward(g.user_id, reward_id)
    return success_response(
        {
            "transaction": serialize_transaction(transaction),
            "message": "Reward redeemed successfully",
        },
        200,
        "Reward redeemed",
    )


@rewards_bp.route("/user", methods=["GET"])
@token_required
def get_user_rewards():
    result = reward_ledger.get_user_rewards(g.user_id)
    return success_response(
        {
            "availableTokens": result["availableTokens"],
            "transactions": [serialize_transaction(t) for t in result["transactions"]],
        }
    )


@rewards_bp.route("/transactions/<int:transaction_id>", methods=["GET"])
@token_required
def get_reward_transaction(transaction_id):
    transaction = reward_ledger.get_reward_transaction(transaction_id, g.user_id)
    return success_response(serialize_transaction(transaction))


@rewards_bp.route("/transactions/<int:transaction_id>/cancel", methods=["PATCH"])
@token_required
def cancel_reward_transaction(transaction_id):
    """
    Cancel a redemption and refund its tokens
    ---
    tags:
      - Rewards
    parameters:
      - in: path
        name: transaction_id
        type: integer
        required: true
    responses:
      200:
        description: Transaction cancelled, tokens refunded (stock is not restored)
      400:
        description: Transaction is no longer pending or confirmed (field "status")
      404:
        description: Transaction not found
    """
    transaction = reward_ledger.cancel_reward_transaction(transaction_id, g.user_id)
    return success_response(serialize_transaction(transaction), 200, "Transaction cancelled")
