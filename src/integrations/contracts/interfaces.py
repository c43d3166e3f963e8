from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PaymentStatus(str, Enum):
    """Stored transaction status codes."""
    PENDING = "1"
    SUCCESS = "2"
    FAILED = "3"


class PlanId(str, Enum):
    ONE_TIME = "one_time"
    FLEX_PACK = "flex_pack"
    ANNUAL_PASS = "annual_pass"


class PaymentMode(str, Enum):
    TEST = "test"
    LIVE = "live"


# ---------------------------------------------------------------------------
# Shared data models
# ---------------------------------------------------------------------------

@dataclass
class CheckoutRequest:
    plan_id: str
    amount: float
    currency: str
    order_id: str
    user_id: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None
    webhook_url: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None


@dataclass
class CheckoutSession:
    url: str
    order_id: str
    mode: str
    iframe: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Abstract gateway interface
# ---------------------------------------------------------------------------

class PaymentGateway(ABC):
    """Every payment gateway client (real or mock) must implement this interface."""

    @abstractmethod
    def resolve_mode(self, user_id: Optional[str] = None) -> str:
        """Return "test" or "live" for the given user."""

    @abstractmethod
    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        """Build a hosted payment page session for a pending order."""

    @abstractmethod
    def verify_webhook(self, body: Dict[str, Any]) -> bool:
        """Return True when the webhook body carries a valid signature."""
