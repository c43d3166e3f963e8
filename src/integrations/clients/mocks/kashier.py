"""
Mock Kashier gateway.

Purpose:
- Lets the checkout flow run end-to-end without Kashier credentials
- Does NOT make any network calls or redirect to Kashier
- Checkout URLs point back at the app's own payment success page

Webhooks sent to a mock deployment are signed with MOCK_SECRET_KEY, which
scripts/send_test_webhook.py uses as its default.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from src.integrations.clients.real_http.kashier import generate_order_hash, verify_webhook_signature
from src.integrations.contracts.interfaces import CheckoutRequest, CheckoutSession, PaymentGateway, PaymentMode
from src.integrations.contracts.payments import format_amount

logger = logging.getLogger(__name__)

MOCK_MERCHANT_ID = "MID-MOCK-0000"
MOCK_SECRET_KEY = "mock-kashier-secret"
MOCK_API_KEY = "mock-kashier-api-key"


class MockKashierGateway(PaymentGateway):
    def __init__(self, base_url: Optional[str] = None) -> None:
        self.base_url = (base_url or os.getenv("APP_BASE_URL", "http://localhost:3000")).rstrip("/")

    def resolve_mode(self, user_id: Optional[str] = None) -> str:
        return PaymentMode.TEST.value

    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        query = urlencode(
            {
                "paymentStatus": "SUCCESS",
                "merchantOrderId": request.order_id,
                "amount": format_amount(request.amount),
                "currency": request.currency,
                "mode": PaymentMode.TEST.value,
            }
        )
        url = f"{self.base_url}/payment/success?{query}"
        iframe: Dict[str, Any] = {
            "merchantId": MOCK_MERCHANT_ID,
            "orderId": request.order_id,
            "amount": format_amount(request.amount),
            "currency": request.currency,
            "mode": PaymentMode.TEST.value,
            "hash": generate_order_hash(
                MOCK_MERCHANT_ID, request.order_id, request.amount, request.currency, MOCK_API_KEY
            ),
            "merchantRedirect": request.success_url,
            "failureRedirect": request.cancel_url,
            "serverWebhook": request.webhook_url,
            "display": "en",
            "type": "external",
        }
        logger.info("Mock Kashier checkout for order=%s", request.order_id)
        return CheckoutSession(url=url, order_id=request.order_id, mode=PaymentMode.TEST.value, iframe=iframe)

    def verify_webhook(self, body: Dict[str, Any]) -> bool:
        return verify_webhook_signature(body, MOCK_SECRET_KEY)
