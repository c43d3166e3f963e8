from datetime import datetime, timedelta

import pytest

from src.integrations.policy.subscription_service import (
    SubscriptionActivationError,
    activate_subscription_from_transaction,
    consume_export_credit,
    is_plan_active,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _paid_txn(db, user_id="user-1", plan_id="one_time"):
    txn = db.create_transaction(
        user_id=user_id,
        order_id=f"order_{plan_id}_1_{user_id}",
        subscription_plan_id=plan_id,
        transaction_amount=79,
        transaction_currency="EGP",
    )
    db.update_transaction_with_payment_data(txn.transaction_id, {"payment_status": "2"})
    return txn


def test_one_time_activation_sets_seven_day_window(db):
    db.save_user_profile("user-1", name="Sara", email="sara@example.com")
    txn = _paid_txn(db)

    activation = activate_subscription_from_transaction(db, txn.transaction_id, now=NOW)

    assert activation.valid_until == NOW + timedelta(days=7)
    assert activation.credits_remaining is None
    plan = db.get_user_plan("user-1")
    assert plan.plan_type == "one_time"
    assert plan.last_purchase_date == NOW
    profile = db.get_user_profile("user-1")
    assert profile.subscription["transactionId"] == txn.transaction_id
    assert profile.subscription_history == [profile.subscription]


def test_flex_pack_activation_grants_credits(db):
    txn = _paid_txn(db, plan_id="flex_pack")

    activation = activate_subscription_from_transaction(db, txn.transaction_id, now=NOW)

    assert activation.credits_remaining == 5
    assert activation.valid_until == NOW + timedelta(days=182)
    assert db.get_user_profile("user-1").subscription["credits"] == 5


def test_activation_creates_missing_profile(db):
    txn = _paid_txn(db, user_id="new-user", plan_id="annual_pass")

    activate_subscription_from_transaction(db, txn.transaction_id, now=NOW)

    profile = db.get_user_profile("new-user")
    assert profile is not None
    assert profile.subscription["planId"] == "annual_pass"


def test_activation_is_idempotent(db):
    txn = _paid_txn(db, plan_id="flex_pack")
    activate_subscription_from_transaction(db, txn.transaction_id, now=NOW)
    db.save_user_plan("user-1", credits_remaining=3)

    again = activate_subscription_from_transaction(db, txn.transaction_id, now=NOW + timedelta(days=1))

    assert again.already_active is True
    assert again.credits_remaining == 3
    assert len(db.get_user_profile("user-1").subscription_history) == 1


def test_older_transaction_cannot_be_replayed_after_newer_one(db):
    flex = _paid_txn(db, plan_id="flex_pack")
    activate_subscription_from_transaction(db, flex.transaction_id, now=NOW)
    db.save_user_plan("user-1", credits_remaining=0)
    one_time = _paid_txn(db, plan_id="one_time")
    activate_subscription_from_transaction(db, one_time.transaction_id, now=NOW + timedelta(days=1))

    replay = activate_subscription_from_transaction(db, flex.transaction_id, now=NOW + timedelta(days=2))

    assert replay.already_active is True
    plan = db.get_user_plan("user-1")
    assert plan.plan_type == "one_time"
    assert plan.credits_remaining is None
    profile = db.get_user_profile("user-1")
    assert profile.last_transaction_id == one_time.transaction_id
    assert len(profile.subscription_history) == 2


def test_activation_errors(db):
    with pytest.raises(SubscriptionActivationError) as missing:
        activate_subscription_from_transaction(db, "nope")
    assert missing.value.code == "TRANSACTION_NOT_FOUND"

    pending = db.create_transaction(
        user_id="user-1",
        order_id="order_one_time_2_user-1",
        subscription_plan_id="one_time",
        transaction_amount=79,
        transaction_currency="EGP",
    )
    with pytest.raises(SubscriptionActivationError) as not_paid:
        activate_subscription_from_transaction(db, pending.transaction_id)
    assert not_paid.value.code == "TRANSACTION_NOT_SUCCESSFUL"

    odd = _paid_txn(db, plan_id="platinum")
    with pytest.raises(SubscriptionActivationError) as unknown:
        activate_subscription_from_transaction(db, odd.transaction_id)
    assert unknown.value.code == "UNKNOWN_PLAN"


def test_is_plan_active_respects_expiry(db):
    assert is_plan_active(None, NOW) is False
    plan = db.save_user_plan("user-1", plan_type="one_time", valid_until=NOW + timedelta(days=1))
    assert is_plan_active(plan, NOW) is True
    assert is_plan_active(plan, NOW + timedelta(days=2)) is False


def test_consume_export_credit(db):
    assert consume_export_credit(db, None) == (True, "free", None)
    assert consume_export_credit(db, "nobody", NOW) == (True, "free", None)

    db.save_user_plan("user-1", plan_type="flex_pack", credits_remaining=1, valid_until=NOW + timedelta(days=30))
    assert consume_export_credit(db, "user-1", NOW) == (True, "flex_pack", 0)
    assert consume_export_credit(db, "user-1", NOW) == (False, "flex_pack", 0)

    db.save_user_plan("user-2", plan_type="annual_pass", valid_until=NOW + timedelta(days=30))
    assert consume_export_credit(db, "user-2", NOW) == (True, "annual_pass", None)
