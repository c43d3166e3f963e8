"""
Payment contract helpers for the Kashier checkout flow.

Shared by both:
- clients/mocks/kashier.py (local checkout pages for development/testing)
- clients/real_http/kashier.py (Kashier hosted payment pages)
"""

from typing import Any, Dict, List, Optional

from .interfaces import PaymentStatus, PlanId

PAID_PLAN_IDS = {plan.value for plan in PlanId}
SUCCESS_STATUSES = frozenset({"SUCCESS", "success"})


def map_gateway_status(raw_status: Any) -> PaymentStatus:
    """Kashier reports SUCCESS (or lowercase success) for paid orders; everything else is a failure."""
    value = str(raw_status or "").strip()
    return PaymentStatus.SUCCESS if value in SUCCESS_STATUSES else PaymentStatus.FAILED


def is_terminal_status(status: Optional[str]) -> bool:
    """Return True if the transaction has reached a final, non-changeable state."""
    return status in {PaymentStatus.SUCCESS.value, PaymentStatus.FAILED.value}


def validate_checkout_input(plan_id: str, amount: float, currency: str) -> List[str]:
    """
    Return a list of validation errors.
    Empty list means the checkout can proceed.
    """
    errors: List[str] = []
    if plan_id not in PAID_PLAN_IDS:
        errors.append(f"plan '{plan_id}' is not a paid plan")
    if amount <= 0:
        errors.append("amount must be greater than zero")
    if not currency:
        errors.append("currency is required")
    return errors


def format_amount(amount: Any) -> str:
    """Kashier hashes the amount exactly as sent, so it is always two decimals."""
    return f"{float(amount):.2f}"


def transaction_to_status_dict(txn: Any) -> Dict[str, Any]:
    return {
        "transactionId": txn.transaction_id,
        "paymentStatus": txn.payment_status,
        "subscriptionPlanId": txn.subscription_plan_id,
        "transactionAmount": txn.transaction_amount,
        "transactionCurrency": txn.transaction_currency,
    }
