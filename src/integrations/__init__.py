"""
Integrations layer.
This package contains all code used to communicate with external systems such as:
- Kashier hosted payment pages and webhooks
- LLM providers used for CV enhancement (Anthropic Messages API)

Key rule:
- API routes MUST NOT build gateway payloads or check signatures themselves.
- Routes call the policy services (under src/integrations/policy), which call the clients.
- We use MOCK clients during development and swap to REAL_HTTP clients when credentials are set.

Switching implementations:
- The selection of mock vs real clients happens in ONE place (src/api/endpoints/payments.py).
"""

from .contracts.interfaces import (
    CheckoutRequest,
    CheckoutSession,
    PaymentGateway,
    PaymentMode,
    PaymentStatus,
    PlanId,
)
from .contracts.payments import (
    is_terminal_status,
    map_gateway_status,
    transaction_to_status_dict,
    validate_checkout_input,
)

__all__ = [
    # interfaces
    "CheckoutRequest", "CheckoutSession", "PaymentGateway",
    "PaymentMode", "PaymentStatus", "PlanId",
    # payments
    "is_terminal_status", "map_gateway_status",
    "transaction_to_status_dict", "validate_checkout_input",
]
