"""
Subscription activation for paid CV plans.

Turns a successful payment transaction into plan entitlements:
- one_time: a short editing window
- flex_pack: a fixed number of export credits valid for about six months
- annual_pass: unlimited use for a year

Activation is idempotent per transaction, so the webhook, the success page and
the manual activate route can all call it for the same payment.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from src.cv.templates import effective_plan_type
from src.integrations.contracts.interfaces import PaymentStatus, PlanId
from src.utils.app_config_loader import PlanRule, get_app_config

logger = logging.getLogger(__name__)


class SubscriptionActivationError(Exception):
    def __init__(self, message: str, *, code: str = "ACTIVATION_FAILED") -> None:
        super().__init__(message)
        self.code = code


@dataclass
class SubscriptionActivation:
    user_id: str
    plan_id: str
    transaction_id: str
    valid_until: Optional[datetime]
    credits_remaining: Optional[int]
    already_active: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "planId": self.plan_id,
            "validUntil": self.valid_until.isoformat() if self.valid_until else None,
            "creditsRemaining": self.credits_remaining,
            "alreadyActive": self.already_active,
        }


def _plan_rules() -> Dict[str, PlanRule]:
    return get_app_config().payments.plans


def is_plan_active(plan: Any, now: Optional[datetime] = None) -> bool:
    """True for a paid plan whose validity window has not passed."""
    return effective_plan_type(plan, now) != "free"


def _already_applied(profile: Any, transaction_id: str) -> bool:
    if profile.last_transaction_id == transaction_id:
        return True
    # Older payments stay applied after a newer one replaces the active plan
    return any(
        isinstance(entry, dict) and entry.get("transactionId") == transaction_id
        for entry in profile.subscription_history or []
    )


def activate_subscription_from_transaction(
    db: Any,
    transaction_id: str,
    now: Optional[datetime] = None,
) -> SubscriptionActivation:
    now = now or datetime.utcnow()

    txn = db.get_transaction(transaction_id)
    if txn is None:
        raise SubscriptionActivationError(f"Transaction {transaction_id} not found", code="TRANSACTION_NOT_FOUND")
    if txn.payment_status != PaymentStatus.SUCCESS.value:
        raise SubscriptionActivationError(
            f"Transaction {transaction_id} is not successful (status={txn.payment_status})",
            code="TRANSACTION_NOT_SUCCESSFUL",
        )

    plan_id = txn.subscription_plan_id
    rule = _plan_rules().get(plan_id)
    if rule is None:
        raise SubscriptionActivationError(f"Unknown subscription plan '{plan_id}'", code="UNKNOWN_PLAN")

    profile = db.get_user_profile(txn.user_id)
    if profile is None:
        logger.info("Creating profile for user %s during activation", txn.user_id)
        profile = db.save_user_profile(txn.user_id, name="", email="")

    if _already_applied(profile, txn.transaction_id):
        plan = db.get_user_plan(txn.user_id)
        logger.info("Transaction %s already applied to user %s", txn.transaction_id, txn.user_id)
        return SubscriptionActivation(
            user_id=txn.user_id,
            plan_id=plan_id,
            transaction_id=txn.transaction_id,
            valid_until=getattr(plan, "valid_until", None),
            credits_remaining=getattr(plan, "credits_remaining", None),
            already_active=True,
        )

    valid_until = now + timedelta(days=rule.duration_days)
    credits = rule.credits if plan_id == PlanId.FLEX_PACK.value else None

    db.save_user_plan(
        txn.user_id,
        plan_type=plan_id,
        credits_remaining=credits,
        valid_until=valid_until,
        last_purchase_date=now,
    )

    entry = {
        "planId": plan_id,
        "status": "active",
        "validUntil": valid_until.isoformat(),
        "transactionId": txn.transaction_id,
        "activatedAt": now.isoformat(),
    }
    if credits is not None:
        entry["credits"] = credits

    history = list(profile.subscription_history or [])
    history.append(entry)
    db.update_user_profile(
        txn.user_id,
        {
            "subscription": entry,
            "subscription_history": history,
            "last_transaction_id": txn.transaction_id,
        },
    )

    logger.info("Activated %s for user %s until %s", plan_id, txn.user_id, valid_until.isoformat())
    return SubscriptionActivation(
        user_id=txn.user_id,
        plan_id=plan_id,
        transaction_id=txn.transaction_id,
        valid_until=valid_until,
        credits_remaining=credits,
    )


def consume_export_credit(db: Any, user_id: Optional[str], now: Optional[datetime] = None) -> Tuple[bool, str, Optional[int]]:
    """
    Spend one export credit when the user is on a flex pack.

    Returns ``(allowed, plan_type, credits_remaining)``. Plans without credits
    always allow the export.
    """
    if not user_id:
        return True, "free", None

    plan = db.get_user_plan(user_id)
    plan_type = effective_plan_type(plan, now)
    if plan_type != PlanId.FLEX_PACK.value:
        return True, plan_type, getattr(plan, "credits_remaining", None)

    remaining = plan.credits_remaining or 0
    if remaining <= 0:
        return False, plan_type, 0

    remaining -= 1
    db.save_user_plan(user_id, credits_remaining=remaining)
    return True, plan_type, remaining
