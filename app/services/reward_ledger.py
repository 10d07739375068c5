"""
Token ledger: exchanging donor tokens for rewards.

``User.tokens`` and ``Reward.stock_available`` are only written from this
module. Both are changed with conditional UPDATE statements (the balance
or stock is checked in the WHERE clause), so concurrent redemptions can
never drive either value below zero. Each operation commits once; a
failure part-way rolls back every write of the request.
"""

import datetime
import uuid

from flask import current_app
from sqlalchemy import select, update

from app.extensions import db
from app.models import (
    CANCELLABLE_TRANSACTION_STATUSES,
    REDEEMABLE_REWARD_STATUSES,
    REWARD_CATEGORIES,
    Reward,
    RewardTransaction,
    User,
)
from app.utils.errors import NotFoundError, ValidationError


def generate_redemption_code():
    return f"RWD-{uuid.uuid4().hex[:12].upper()}"


def stock_status(stock_available, current_status):
    """Status a tracked reward should have for the given stock level."""
    if stock_available is None:
        return current_status
    if stock_available <= 0:
        return "out_of_stock"
    if stock_available <= current_app.config["LOW_STOCK_THRESHOLD"]:
        return "low_stock"
    return current_status


def get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_reward(reward_id):
    reward = db.session.get(Reward, reward_id) if reward_id else None
    if not reward:
        raise NotFoundError("Reward not found")
    return reward


def list_rewards(category=None):
    stmt = select(Reward).where(Reward.status.in_(REDEEMABLE_REWARD_STATUSES))
    if category and category != "all":
        if category not in REWARD_CATEGORIES:
            raise ValidationError("Invalid reward category", "category")
        stmt = stmt.where(Reward.category == category)
    return db.session.scalars(stmt.order_by(Reward.tokens_required, Reward.id)).all()


def _debit_tokens(user, amount):
    result = db.session.execute(
        update(User)
        .where(User.id == user.id, User.tokens >= amount)
        .values(tokens=User.tokens - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ValidationError("Insufficient tokens", "tokens")
    db.session.expire(user, ["tokens"])


def _credit_tokens(user_id, amount):
    db.session.execute(
        update(User)
        .where(User.id == user_id)
        .values(tokens=User.tokens + amount)
        .execution_options(synchronize_session=False)
    )


def _take_one_from_stock(reward):
    result = db.session.execute(
        update(Reward)
        .where(Reward.id == reward.id, Reward.stock_available > 0)
        .values(stock_available=Reward.stock_available - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ValidationError("Reward is out of stock", "rewardId")
    db.session.refresh(reward, ["stock_available"])
    reward.status = stock_status(reward.stock_available, reward.status)


def redeem_reward(user_id, reward_id):
    """
    Spend ``tokens_required`` of the user's tokens on a reward.

    Checks run in a fixed order and the first failure wins: reward
    redeemable, enough tokens, tracked stock left.
    """
    user = get_user_or_404(user_id)
    reward = get_reward(reward_id)

    if reward.status not in REDEEMABLE_REWARD_STATUSES:
        raise ValidationError("Reward is not available", "rewardId")
    if user.tokens < reward.tokens_required:
        raise ValidationError("Insufficient tokens", "tokens")
    if reward.stock_available is not None and reward.stock_available <= 0:
        raise ValidationError("Reward is out of stock", "rewardId")

    price = reward.tokens_required
    expiry_days = current_app.config["REDEMPTION_EXPIRY_DAYS"]

    transaction = RewardTransaction(
        user_id=user.id,
        reward_id=reward.id,
        tokens_spent=price,
        status="confirmed",
        redemption_code=generate_redemption_code(),
        expires_at=datetime.datetime.utcnow() + datetime.timedelta(days=expiry_days),
    )
    db.session.add(transaction)

    _debit_tokens(user, price)
    if reward.stock_available is not None:
        _take_one_from_stock(reward)

    db.session.commit()

    current_app.logger.info(
        f"User {user.id} redeemed reward {reward.id} for {price} tokens "
        f"(code {transaction.redemption_code})"
    )
    return transaction


def get_reward_transaction(transaction_id, user_id):
    transaction = db.session.scalar(
        select(RewardTransaction).where(
            RewardTransaction.id == transaction_id,
            RewardTransaction.user_id == user_id,
        )
    )
    if not transaction:
        raise NotFoundError("Transaction not found")
    return transaction


def cancel_reward_transaction(transaction_id, user_id):
    """Refund ``tokens_spent``. The reward's stock is left as it is."""
    transaction = get_reward_transaction(transaction_id, user_id)

    if transaction.status not in CANCELLABLE_TRANSACTION_STATUSES:
        raise ValidationError("Cannot cancel this transaction", "status")

    _credit_tokens(user_id, transaction.tokens_spent)
    transaction.status = "cancelled"
    db.session.commit()

    current_app.logger.info(
        f"Reward transaction {transaction.id} cancelled, refunded "
        f"{transaction.tokens_spent} tokens to user {user_id}"
    )
    return transaction


def get_user_rewards(user_id):
    user = get_user_or_404(user_id)
    transactions = db.session.scalars(
        select(RewardTransaction)
        .where(RewardTransaction.user_id == user_id)
        .order_by(RewardTransaction.created_at.desc(), RewardTransaction.id.desc())
        .limit(current_app.config["HISTORY_LIMIT"])
    ).all()
    return {"availableTokens": user.tokens, "transactions": transactions}
