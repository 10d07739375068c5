import datetime

import pytest
from sqlalchemy import update

from app.extensions import db as database
from app.models import Reward, RewardTransaction, User
from app.services import reward_ledger
from app.utils.errors import ValidationError


def redeem(client, headers, reward_id):
    return client.post("/api/rewards/redeem", json={"rewardId": reward_id}, headers=headers)


@pytest.mark.rewards
class TestRewardCatalogue:
    def test_lists_only_redeemable(self, client, make_reward):
        """Test the catalogue hides rewards that cannot be redeemed."""
        cheap = make_reward(tokens_required=20)
        make_reward(tokens_required=10, stock_available=0, status="out_of_stock")
        low = make_reward(tokens_required=30, stock_available=3, status="low_stock")

        response = client.get("/api/rewards")

        assert response.status_code == 200
        ids = [r["id"] for r in response.get_json()["data"]]
        assert ids == [cheap.id, low.id]

    def test_filter_by_category(self, client, sample_reward, make_reward):
        """Test filtering the catalogue by category."""
        make_reward(category="discounts")

        data = client.get("/api/rewards?category=festivals").get_json()["data"]

        assert [r["id"] for r in data] == [sample_reward.id]

    def test_invalid_category(self, client, sample_reward):
        """Test an unknown category is rejected."""
        response = client.get("/api/rewards?category=cars")
        assert response.status_code == 400
        assert response.get_json()["field"] == "category"

    def test_get_reward(self, client, sample_reward):
        """Test fetching one reward."""
        response = client.get(f"/api/rewards/{sample_reward.id}")
        assert response.status_code == 200
        assert response.get_json()["data"]["tokensRequired"] == 50

    def test_get_missing_reward(self, client):
        """Test a missing reward returns 404."""
        assert client.get("/api/rewards/999").status_code == 404


@pytest.mark.rewards
class TestRedeemReward:
    def test_redeem_success(self, client, auth_headers, sample_user, sample_reward):
        """Test redeeming debits tokens and takes one unit of stock."""
        response = redeem(client, auth_headers, sample_reward.id)

        assert response.status_code == 200
        transaction = response.get_json()["data"]["transaction"]
        assert transaction["tokensSpent"] == 50
        assert transaction["status"] == "confirmed"
        assert transaction["redemptionCode"].startswith("RWD-")
        assert transaction["expiresAt"] is not None
        assert transaction["reward"]["id"] == sample_reward.id

        assert database.session.get(User, sample_user.id).tokens == 50
        reward = database.session.get(Reward, sample_reward.id)
        assert reward.stock_available == 9
        assert reward.status == "available"

    def test_insufficient_tokens(self, client, auth_headers, sample_user, make_reward):
        """Test a reward above the balance leaves everything untouched."""
        reward = make_reward(tokens_required=500, stock_available=3)

        response = redeem(client, auth_headers, reward.id)

        assert response.status_code == 400
        body = response.get_json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["field"] == "tokens"
        assert database.session.get(User, sample_user.id).tokens == 100
        assert database.session.get(Reward, reward.id).stock_available == 3
        assert database.session.query(RewardTransaction).count() == 0

    def test_balance_spent_after_check(
        self, client, auth_headers, sample_user, sample_reward, monkeypatch
    ):
        """Test the debit refuses a balance spent after the loaded check."""
        load_user = reward_ledger.get_user_or_404

        def load_then_spend(user_id):
            user = load_user(user_id)
            # Another request spends most of the balance; the loaded object keeps 100
            database.session.execute(
                update(User)
                .where(User.id == user_id)
                .values(tokens=10)
                .execution_options(synchronize_session=False)
            )
            return user

        monkeypatch.setattr(reward_ledger, "get_user_or_404", load_then_spend)

        response = redeem(client, auth_headers, sample_reward.id)

        assert response.status_code == 400
        body = response.get_json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["field"] == "tokens"
        assert database.session.get(User, sample_user.id).tokens == 100
        assert database.session.get(Reward, sample_reward.id).stock_available == 10
        assert database.session.query(RewardTransaction).count() == 0

    def test_stock_taken_after_check(
        self, client, auth_headers, sample_user, sample_reward, monkeypatch
    ):
        """Test the stock decrement refuses a unit taken after the loaded check."""
        load_reward = reward_ledger.get_reward

        def load_then_sell_out(reward_id):
            reward = load_reward(reward_id)
            database.session.execute(
                update(Reward)
                .where(Reward.id == reward_id)
                .values(stock_available=0)
                .execution_options(synchronize_session=False)
            )
            return reward

        monkeypatch.setattr(reward_ledger, "get_reward", load_then_sell_out)

        response = redeem(client, auth_headers, sample_reward.id)

        assert response.status_code == 400
        assert response.get_json()["field"] == "rewardId"
        assert database.session.get(User, sample_user.id).tokens == 100
        assert database.session.get(Reward, sample_reward.id).stock_available == 10
        assert database.session.query(RewardTransaction).count() == 0

    def test_last_unit_sells_out(self, client, auth_headers, sample_user, make_reward):
        """Test the last unit marks the reward out of stock."""
        reward = make_reward(tokens_required=10, stock_available=1)

        first = redeem(client, auth_headers, reward.id)
        second = redeem(client, auth_headers, reward.id)

        assert first.status_code == 200
        refreshed = database.session.get(Reward, reward.id)
        assert refreshed.stock_available == 0
        assert refreshed.status == "out_of_stock"

        assert second.status_code == 400
        assert second.get_json()["field"] == "rewardId"
        assert database.session.get(User, sample_user.id).tokens == 90

    def test_low_stock_threshold(self, client, auth_headers, make_reward):
        """Test five units left marks the reward low on stock."""
        reward = make_reward(tokens_required=10, stock_available=6)

        redeem(client, auth_headers, reward.id)

        refreshed = database.session.get(Reward, reward.id)
        assert refreshed.stock_available == 5
        assert refreshed.status == "low_stock"

    def test_unlimited_stock(self, client, auth_headers, make_reward):
        """Test untracked stock never runs out."""
        reward = make_reward(tokens_required=10, stock_available=None)

        assert redeem(client, auth_headers, reward.id).status_code == 200
        assert redeem(client, auth_headers, reward.id).status_code == 200

        refreshed = database.session.get(Reward, reward.id)
        assert refreshed.stock_available is None
        assert refreshed.status == "available"

    def test_unavailable_reward(self, client, auth_headers, make_reward):
        """Test a reward that is not yet available is refused."""
        reward = make_reward(status="coming_soon")

        response = redeem(client, auth_headers, reward.id)

        assert response.status_code == 400
        assert response.get_json()["field"] == "rewardId"

    def test_missing_reward_id(self, client, auth_headers):
        """Test redeeming without a reward id is rejected."""
        response = client.post("/api/rewards/redeem", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["field"] == "rewardId"

    def test_unknown_reward(self, client, auth_headers):
        """Test redeeming a missing reward returns 404."""
        assert redeem(client, auth_headers, 999).status_code == 404

    def test_requires_token(self, client, sample_reward):
        """Test redeeming needs a token."""
        assert redeem(client, {}, sample_reward.id).status_code == 401

    def test_checks_availability_before_balance(self, make_user, make_reward):
        """Test an unavailable reward is reported before a low balance."""
        poor = make_user(email="poor@example.com", tokens=0)
        reward = make_reward(tokens_required=10, stock_available=0, status="out_of_stock")

        with pytest.raises(ValidationError) as exc:
            reward_ledger.redeem_reward(poor.id, reward.id)
        assert exc.value.field == "rewardId"


@pytest.mark.rewards
class TestCancelTransaction:
    def test_cancel_refunds_without_restoring_stock(
        self, client, auth_headers, sample_user, sample_reward
    ):
        """Test cancelling refunds the tokens but keeps the stock."""
        transaction_id = redeem(client, auth_headers, sample_reward.id).get_json()["data"][
            "transaction"
        ]["id"]

        response = client.patch(
            f"/api/rewards/transactions/{transaction_id}/cancel", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["status"] == "cancelled"
        assert database.session.get(User, sample_user.id).tokens == 100
        assert database.session.get(Reward, sample_reward.id).stock_available == 9

    def test_cancel_twice_fails(self, client, auth_headers, sample_user, sample_reward):
        """Test a cancelled transaction is not refunded twice."""
        transaction_id = redeem(client, auth_headers, sample_reward.id).get_json()["data"][
            "transaction"
        ]["id"]
        client.patch(f"/api/rewards/transactions/{transaction_id}/cancel", headers=auth_headers)

        response = client.patch(
            f"/api/rewards/transactions/{transaction_id}/cancel", headers=auth_headers
        )

        assert response.status_code == 400
        assert response.get_json()["field"] == "status"
        assert database.session.get(User, sample_user.id).tokens == 100

    def test_cannot_touch_someone_elses(
        self, client, auth_headers, other_headers, sample_reward
    ):
        """Test another user's transaction looks missing."""
        transaction_id = redeem(client, auth_headers, sample_reward.id).get_json()["data"][
            "transaction"
        ]["id"]

        get_response = client.get(
            f"/api/rewards/transactions/{transaction_id}", headers=other_headers
        )
        cancel_response = client.patch(
            f"/api/rewards/transactions/{transaction_id}/cancel", headers=other_headers
        )

        assert get_response.status_code == 404
        assert cancel_response.status_code == 404


@pytest.mark.rewards
class TestUserRewards:
    def test_balance_and_history(self, client, auth_headers, sample_reward, make_reward):
        """Test the user's balance and redemptions."""
        other = make_reward(tokens_required=20, stock_available=None)
        redeem(client, auth_headers, sample_reward.id)
        redeem(client, auth_headers, other.id)

        response = client.get("/api/rewards/user", headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["availableTokens"] == 30
        assert len(data["transactions"]) == 2
        assert sum(t["tokensSpent"] for t in data["transactions"]) == 70

    def test_history_is_capped_at_50_newest(
        self, client, auth_headers, sample_user, sample_reward
    ):
        """Test only the 50 most recent redemptions are returned, newest first."""
        start = datetime.datetime(2025, 1, 1, 9, 0)
        database.session.add_all(
            [
                RewardTransaction(
                    user_id=sample_user.id,
                    reward_id=sample_reward.id,
                    tokens_spent=1,
                    redemption_code=f"RWD-HIST{i:04d}",
                    status="confirmed",
                    created_at=start + datetime.timedelta(minutes=i),
                )
                for i in range(51)
            ]
        )
        database.session.commit()

        response = client.get("/api/rewards/user", headers=auth_headers)

        codes = [t["redemptionCode"] for t in response.get_json()["data"]["transactions"]]
        assert len(codes) == 50
        assert codes[0] == "RWD-HIST0050"
        assert codes[-1] == "RWD-HIST0001"
        assert "RWD-HIST0000" not in codes

    def test_stock_status_helper(self, app):
        """Test stock levels map to reward statuses."""
        with app.app_context():
            assert reward_ledger.stock_status(None, "available") == "available"
            assert reward_ledger.stock_status(0, "low_stock") == "out_of_stock"
            assert reward_ledger.stock_status(5, "available") == "low_stock"
            assert reward_ledger.stock_status(6, "available") == "available"
