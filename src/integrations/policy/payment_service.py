"""
Payment flow for paid CV plans.

Covers the whole Kashier lifecycle:
- checkout: price lookup, pending transaction, hosted page session
- webhook: signature check, per-order lock, status update, activation
- success page, manual activation and status polling

Routes translate PaymentFlowError into JSON error responses.
"""

import logging
import os
import time
from typing import Any, Dict, Optional, Tuple

from src.integrations.clients.real_http.kashier import PaymentConfigurationError
from src.integrations.contracts.interfaces import CheckoutRequest, PaymentGateway, PaymentStatus
from src.integrations.contracts.payments import is_terminal_status, transaction_to_status_dict, validate_checkout_input
from src.integrations.policy.response_wrappers import IntegrationResponseError, normalize_kashier_payment
from src.integrations.policy.subscription_service import (
    SubscriptionActivationError,
    activate_subscription_from_transaction,
)
from src.utils.app_config_loader import get_app_config

logger = logging.getLogger(__name__)

# Older clients still send the previous plan names
LEGACY_PLAN_ALIASES = {"pro": "one_time", "business": "flex_pack"}


class PaymentFlowError(Exception):
    def __init__(self, status_code: int, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.code:
            body["code"] = self.code
        return body


def unsigned_webhooks_allowed() -> bool:
    return os.getenv("KASHIER_ALLOW_UNSIGNED_WEBHOOKS", "").strip().lower() in {"1", "true", "yes"}


def build_order_id(product: str, user_id: Optional[str], now_ms: Optional[int] = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"order_{product}_{now_ms}_{user_id or 'guest'}"


class PaymentService:
    def __init__(self, db: Any, cache: Any, gateway: PaymentGateway) -> None:
        self.db = db
        self.cache = cache
        self.gateway = gateway
        self.config = get_app_config()

    # ------------------------------------------------------------------ #
    # Checkout
    # ------------------------------------------------------------------ #
    def resolve_price(self, product: Optional[str]) -> Tuple[str, str, float]:
        """Return ``(product, plan_id, amount)`` for a requested product name."""
        payments = self.config.payments
        product = (product or payments.default_product).strip()
        amount = payments.pricing.get(product)
        if amount is None:
            logger.warning("Unknown product '%s'; using fallback price", product)
            return product, payments.default_product, float(payments.fallback_amount)

        plan_id = LEGACY_PLAN_ALIASES.get(product, product)
        return product, plan_id, float(amount)

    def create_checkout(
        self,
        product: Optional[str],
        user_id: Optional[str],
        *,
        webhook_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        product, plan_id, amount = self.resolve_price(product)
        if amount <= 0:
            raise PaymentFlowError(400, "This plan is free and does not require payment")

        currency = self.config.payments.currency
        errors = validate_checkout_input(plan_id, amount, currency)
        if errors:
            raise PaymentFlowError(400, "; ".join(errors))
        base_url = self.config.app.base_url
        order_id = build_order_id(product, user_id)
        request = CheckoutRequest(
            plan_id=plan_id,
            amount=amount,
            currency=currency,
            order_id=order_id,
            user_id=user_id,
            success_url=f"{base_url}/payment/success",
            cancel_url=f"{base_url}/payment/failure",
            webhook_url=webhook_url,
        )

        try:
            session = self.gateway.create_checkout(request)
        except PaymentConfigurationError as exc:
            logger.error("Payment gateway not configured: %s", exc)
            raise PaymentFlowError(503, "Payment service is not configured", code="PAYMENT_NOT_CONFIGURED") from exc

        txn = self.db.create_transaction(
            user_id=user_id or "guest",
            order_id=order_id,
            subscription_plan_id=plan_id,
            transaction_amount=amount,
            transaction_currency=currency,
            mode=session.mode,
        )
        logger.info("Created pending transaction %s for order %s", txn.transaction_id, order_id)

        return {
            "url": session.url,
            "transactionId": txn.transaction_id,
            "orderId": order_id,
            "iframe": session.iframe,
            "mode": session.mode,
            "amount": amount,
            "currency": currency,
        }

    # ------------------------------------------------------------------ #
    # Webhook
    # ------------------------------------------------------------------ #
    def _check_signature(self, body: Dict[str, Any]) -> None:
        if not body.get("signature"):
            if not unsigned_webhooks_allowed():
                logger.warning("Rejected unsigned Kashier webhook")
                raise PaymentFlowError(401, "Missing signature")
            logger.warning("Accepting unsigned Kashier webhook (KASHIER_ALLOW_UNSIGNED_WEBHOOKS is set)")
            return

        try:
            valid = self.gateway.verify_webhook(body)
        except PaymentConfigurationError as exc:
            logger.error("Cannot verify webhook signature: %s", exc)
            raise PaymentFlowError(401, "Signature validation failed") from exc
        if not valid:
            logger.warning("Invalid Kashier webhook signature for order %s", body.get("merchantOrderId"))
            raise PaymentFlowError(401, "Invalid signature")

    def handle_webhook(self, body: Any) -> Dict[str, Any]:
        if not isinstance(body, dict):
            raise PaymentFlowError(400, "Invalid webhook payload")

        self._check_signature(body)

        try:
            payment = normalize_kashier_payment(body, require_merchant_order_id=True)
        except IntegrationResponseError as exc:
            raise PaymentFlowError(400, "Missing merchantOrderId") from exc

        txn = self.db.get_transaction_by_order_id(payment.merchant_order_id)
        if txn is None:
            logger.warning("Webhook for unknown order %s", payment.merchant_order_id)
            raise PaymentFlowError(404, "Transaction not found")

        lock_name = f"kashier-webhook:{payment.merchant_order_id}"
        lock_token = self.cache.acquire_lock(lock_name, ttl=self.config.payments.webhook_lock_ttl_seconds)
        if lock_token is None:
            logger.info("Webhook for order %s is already being processed", payment.merchant_order_id)
            return {"ok": True, "message": "Webhook already being processed"}

        try:
            # Re-read under the lock; another delivery may have finished first
            txn = self.db.get_transaction(txn.transaction_id)
            if is_terminal_status(txn.payment_status):
                return {
                    "ok": True,
                    "message": "Transaction already processed",
                    "transactionId": txn.transaction_id,
                }

            self.db.update_transaction_with_payment_data(txn.transaction_id, payment.transaction_updates())
            logger.info(
                "Transaction %s updated from webhook: %s -> %s",
                txn.transaction_id,
                payment.raw_status,
                payment.status.value,
            )

            if payment.status == PaymentStatus.SUCCESS:
                try:
                    activate_subscription_from_transaction(self.db, txn.transaction_id)
                except SubscriptionActivationError:
                    logger.exception("Activation failed for transaction %s", txn.transaction_id)

            return {
                "ok": True,
                "message": "Webhook processed",
                "transactionId": txn.transaction_id,
                "paymentStatus": payment.status.value,
            }
        finally:
            if not self.cache.release_lock(lock_name, lock_token):
                logger.warning("Webhook lock for order %s expired before processing finished", payment.merchant_order_id)

    # ------------------------------------------------------------------ #
    # Success page / manual activation / polling
    # ------------------------------------------------------------------ #
    def _find_success_transaction(self, reference: str, payment_data: Dict[str, Any]):
        txn = self.db.get_transaction_by_reference(reference)
        if txn is None and payment_data.get("transactionId"):
            txn = self.db.get_transaction(str(payment_data["transactionId"]))
        if txn is None and payment_data.get("merchantOrderId"):
            txn = self.db.get_transaction_by_order_id(str(payment_data["merchantOrderId"]))
        return txn

    def process_success(self, trx_reference_number: Optional[str], payment_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not trx_reference_number:
            raise PaymentFlowError(400, "Missing transaction reference number")

        payment_data = payment_data if isinstance(payment_data, dict) else {}
        if payment_data.get("paymentStatus") != "SUCCESS":
            raise PaymentFlowError(400, "Payment was not successful")

        txn = self._find_success_transaction(trx_reference_number, payment_data)
        if txn is None:
            raise PaymentFlowError(404, "Transaction not found")

        if txn.payment_status == PaymentStatus.SUCCESS.value:
            return {"success": True, "transactionId": txn.transaction_id, "message": "Transaction already processed"}

        payment = normalize_kashier_payment(payment_data)
        self.db.update_transaction_with_payment_data(
            txn.transaction_id,
            payment.transaction_updates(reference=trx_reference_number),
        )

        try:
            activate_subscription_from_transaction(self.db, txn.transaction_id)
        except SubscriptionActivationError as exc:
            logger.error("Activation failed for transaction %s: %s", txn.transaction_id, exc)
            raise PaymentFlowError(500, "Failed to activate subscription", code="ACTIVATION_FAILED") from exc

        return {"success": True, "transactionId": txn.transaction_id}

    def activate(self, transaction_id: Optional[str]) -> Dict[str, Any]:
        if not transaction_id:
            raise PaymentFlowError(400, "Transaction ID is required")

        txn = self.db.get_transaction(transaction_id)
        if txn is None:
            raise PaymentFlowError(404, "Transaction not found")
        if txn.payment_status != PaymentStatus.SUCCESS.value:
            raise PaymentFlowError(400, "Transaction is not successful", code="TRANSACTION_NOT_SUCCESSFUL")
        if self.db.get_user_profile(txn.user_id) is None:
            raise PaymentFlowError(404, "User profile not found")

        try:
            activation = activate_subscription_from_transaction(self.db, transaction_id)
        except SubscriptionActivationError as exc:
            logger.error("Activation failed for transaction %s: %s", transaction_id, exc)
            raise PaymentFlowError(500, "Failed to activate subscription", code="ACTIVATION_FAILED") from exc

        return {
            "ok": True,
            "message": "Subscription activated",
            "transactionId": transaction_id,
            "userId": txn.user_id,
            "plan": activation.to_dict(),
        }

    def check_status(self, transaction_id: Optional[str]) -> Dict[str, Any]:
        if not transaction_id:
            raise PaymentFlowError(400, "Transaction ID is required")
        txn = self.db.get_transaction(transaction_id)
        if txn is None:
            raise PaymentFlowError(404, "Transaction not found")
        return transaction_to_status_dict(txn)
