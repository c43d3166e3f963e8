"""
Kashier hosted payment page client.

Used when Kashier merchant credentials are configured. Kashier checkout is
redirect based, so nothing here talks to Kashier over the network: the client
builds payment page links, iframe configuration and order hashes, and checks
the HMAC signature Kashier attaches to webhook notifications.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

from src.integrations.contracts.interfaces import (
    CheckoutRequest,
    CheckoutSession,
    PaymentGateway,
    PaymentMode,
)
from src.integrations.contracts.payments import format_amount

logger = logging.getLogger(__name__)

CHECKOUT_BASE_URL = "https://checkouts.kashier.io/en/paymentpage"
IFRAME_SCRIPT_URL = "https://payments.kashier.io/kashier-checkout.js"

# Payment page links are created per plan in the Kashier dashboard
_PPLINK_ENV = {
    "one_time": "KASHIER_PPLINK_ONETIME",
    "flex_pack": "KASHIER_PPLINK_FLEXPACK",
    "annual_pass": "KASHIER_PPLINK_ANNUALPASS",
}

# Fields Kashier leaves out of the signed payload
_UNSIGNED_FIELDS = {"signature", "mode"}


class PaymentConfigurationError(RuntimeError):
    """Raised when Kashier credentials or payment links are missing for a mode."""


@dataclass
class KashierCredentials:
    merchant_id: str
    secret_key: str
    mode: str
    api_key: Optional[str] = None


def _env(name: str) -> str:
    return (os.getenv(name) or "").strip()


def resolve_payment_mode(user_id: Optional[str] = None) -> str:
    """
    Pick "test" or "live" for a checkout.

    The configured test user always pays in test mode so production can be
    smoke-tested without real cards.
    """
    test_user = _env("KASHIER_TEST_USER_ID")
    if user_id and test_user and user_id == test_user:
        return PaymentMode.TEST.value

    configured = _env("KASHIER_MODE").lower()
    if configured in {PaymentMode.TEST.value, PaymentMode.LIVE.value}:
        return configured
    return PaymentMode.LIVE.value


def get_payment_credentials(mode: str) -> KashierCredentials:
    if mode == PaymentMode.TEST.value:
        merchant_id = _env("KASHIER_TEST_MERCHANT_ID") or _env("KASHIER_MERCHANT_ID")
        secret_key = _env("KASHIER_TEST_SECRET_KEY")
        api_key = _env("KASHIER_TEST_API_KEY") or None
    elif mode == PaymentMode.LIVE.value:
        merchant_id = _env("KASHIER_MERCHANT_ID")
        secret_key = _env("KASHIER_SECRET_KEY")
        api_key = _env("KASHIER_API_KEY") or None
    else:
        raise PaymentConfigurationError(f"Unknown Kashier mode: {mode!r}")

    if not merchant_id or not secret_key:
        raise PaymentConfigurationError(f"Kashier credentials are not configured for {mode} mode.")
    return KashierCredentials(merchant_id=merchant_id, secret_key=secret_key, mode=mode, api_key=api_key)


def get_kashier_api_key(mode: str) -> str:
    api_key = get_payment_credentials(mode).api_key
    if not api_key:
        name = "KASHIER_TEST_API_KEY" if mode == PaymentMode.TEST.value else "KASHIER_API_KEY"
        raise PaymentConfigurationError(f"{name} is not configured.")
    return api_key


def order_hash_path(merchant_id: str, order_id: str, amount: Any, currency: str) -> str:
    return f"/?payment={merchant_id}.{order_id}.{format_amount(amount)}.{currency}"


def get_payment_page_link(plan_id: str, mode: str) -> str:
    base_var = _PPLINK_ENV.get(plan_id)
    if not base_var:
        raise PaymentConfigurationError(f"No payment page link for plan '{plan_id}'.")

    env_var = f"{base_var}_TEST" if mode == PaymentMode.TEST.value else base_var
    link = _env(env_var)
    if not link:
        raise PaymentConfigurationError(f"{env_var} is not configured.")
    return link


def build_checkout_url(pp_link: str, mode: str) -> str:
    return f"{CHECKOUT_BASE_URL}?ppLink={pp_link},{mode}"


def generate_order_hash(merchant_id: str, order_id: str, amount: Any, currency: str, api_key: str) -> str:
    """HMAC-SHA256 of Kashier's order path, keyed by the payment API key."""
    path = order_hash_path(merchant_id, order_id, amount, currency)
    return hmac.new(api_key.encode("utf-8"), path.encode("utf-8"), hashlib.sha256).hexdigest()


def _signature_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def build_signature_payload(body: Mapping[str, Any]) -> str:
    """Sorted ``key=value`` pairs joined by ``&``, leaving out signature and mode."""
    keys = sorted(k for k in body.keys() if k not in _UNSIGNED_FIELDS)
    return "&".join(f"{key}={_signature_value(body[key])}" for key in keys)


def compute_webhook_signature(body: Mapping[str, Any], secret_key: str) -> str:
    payload = build_signature_payload(body)
    return hmac.new(secret_key.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_webhook_signature(body: Mapping[str, Any], secret_key: str) -> bool:
    received = body.get("signature")
    if not received or not isinstance(received, str):
        return False
    expected = compute_webhook_signature(body, secret_key)
    return hmac.compare_digest(expected, received.strip().lower())


class KashierGateway(PaymentGateway):
    """Kashier hosted payment pages for the paid CV plans."""

    def resolve_mode(self, user_id: Optional[str] = None) -> str:
        return resolve_payment_mode(user_id)

    def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        mode = self.resolve_mode(request.user_id)
        credentials = get_payment_credentials(mode)
        pp_link = get_payment_page_link(request.plan_id, mode)
        url = build_checkout_url(pp_link, mode)

        iframe: Dict[str, Any] = {
            "scriptUrl": IFRAME_SCRIPT_URL,
            "merchantId": credentials.merchant_id,
            "orderId": request.order_id,
            "amount": format_amount(request.amount),
            "currency": request.currency,
            "mode": mode,
            "display": "en",
            "type": "external",
            "merchantRedirect": quote(request.success_url or "", safe=""),
            "failureRedirect": quote(request.cancel_url or "", safe=""),
            "serverWebhook": quote(request.webhook_url or "", safe=""),
            "allowedMethods": "card,wallet",
            "redirectMethod": "get",
        }
        if credentials.api_key:
            iframe["hash"] = generate_order_hash(
                credentials.merchant_id,
                request.order_id,
                request.amount,
                request.currency,
                credentials.api_key,
            )
        else:
            logger.warning("Kashier API key missing for %s mode; iframe hash not generated", mode)

        logger.info("Kashier checkout prepared order=%s plan=%s mode=%s", request.order_id, request.plan_id, mode)
        return CheckoutSession(url=url, order_id=request.order_id, mode=mode, iframe=iframe)

    def verify_webhook(self, body: Dict[str, Any]) -> bool:
        mode = str(body.get("mode") or self.resolve_mode()).lower()
        credentials = get_payment_credentials(mode)
        return verify_webhook_signature(body, credentials.secret_key)
