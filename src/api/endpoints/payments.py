import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from src.api.dependencies import get_cache, get_db
from src.error_handler import error_handler, error_response
from src.integrations.clients.mocks.kashier import MockKashierGateway
from src.integrations.clients.real_http.kashier import (
    KashierGateway,
    PaymentConfigurationError,
    generate_order_hash,
    get_kashier_api_key,
    get_payment_credentials,
    order_hash_path,
    resolve_payment_mode,
)
from src.integrations.contracts.interfaces import PaymentGateway
from src.integrations.policy.payment_service import PaymentFlowError, PaymentService

logger = logging.getLogger(__name__)

api = APIRouter()
payments_api = api


class ProcessSuccessRequest(BaseModel):
    trx_reference_number: Optional[str] = Field(default=None, alias="trxReferenceNumber")
    payment_data: Optional[Dict[str, Any]] = Field(default=None, alias="paymentData")
    success_url: Optional[str] = Field(default=None, alias="successUrl")


class ActivateRequest(BaseModel):
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")


def _should_use_real_integrations() -> bool:
    mode = os.getenv("INTEGRATIONS_MODE", "").strip().lower()
    if mode in {"real", "live"}:
        return True
    if mode in {"mock", "test"}:
        return False
    if os.getenv("APP_ENV", "").strip().lower() == "production":
        return True
    return bool(os.getenv("KASHIER_MERCHANT_ID") or os.getenv("KASHIER_TEST_MERCHANT_ID"))


def _select_payment_gateway() -> PaymentGateway:
    if _should_use_real_integrations():
        return KashierGateway()
    return MockKashierGateway()


def get_payment_service(db=Depends(get_db), cache=Depends(get_cache)) -> PaymentService:
    return PaymentService(db, cache, _select_payment_gateway())


def _webhook_url(request: Request) -> str:
    configured = os.getenv("KASHIER_WEBHOOK_URL", "").strip()
    if configured:
        return configured
    return f"{str(request.base_url).rstrip('/')}/api/payments/kashier/webhook"


def _flow_error(exc: PaymentFlowError):
    return error_response(exc.status_code, exc.message, code=exc.code)


# ============================================================================
# KASHIER CHECKOUT
# ============================================================================
@api.get("/kashier/checkout", tags=["Payments"])
async def kashier_checkout(
    request: Request,
    product: Optional[str] = Query(default=None),
    plan: Optional[str] = Query(default=None),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    service: PaymentService = Depends(get_payment_service),
):
    try:
        return service.create_checkout(product or plan, user_id, webhook_url=_webhook_url(request))
    except PaymentFlowError as exc:
        return _flow_error(exc)
    except Exception as exc:
        return error_handler.to_response(exc, {"route": "payments.checkout"})


@api.get("/kashier/verify-hash", tags=["Payments"])
async def kashier_verify_hash(
    order_id: Optional[str] = Query(default=None, alias="orderId"),
    amount: str = Query(default="5.00"),
    currency: str = Query(default="EGP"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
):
    """Development helper: show how the iframe order hash is built."""
    if os.getenv("APP_ENV", "").strip().lower() == "production":
        return error_response(403, "This endpoint is only available in development")

    order_id = order_id or f"test_order_{int(datetime.utcnow().timestamp() * 1000)}"
    mode = resolve_payment_mode(user_id)
    try:
        merchant_id = get_payment_credentials(mode).merchant_id
        api_key = get_kashier_api_key(mode)
        generated = generate_order_hash(merchant_id, order_id, amount, currency, api_key)
    except (PaymentConfigurationError, ValueError) as exc:
        return error_response(500, str(exc))

    return {
        "mode": mode,
        "merchantId": merchant_id,
        "orderId": order_id,
        "amount": amount,
        "currency": currency,
        "hashPath": order_hash_path(merchant_id, order_id, amount, currency),
        "generatedHash": generated,
        "apiKeyInfo": {
            "length": len(api_key),
            "startsWith": api_key[:4] + "...",
            "endsWith": "..." + api_key[-4:],
        },
    }


# ============================================================================
# KASHIER WEBHOOK
# ============================================================================
async def _read_webhook_body(request: Request) -> Any:
    content_type = request.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return {key: value for key, value in form.items()}
    raw = await request.body()
    return json.loads(raw or b"null")


@api.post("/kashier/webhook", tags=["Payments"])
async def kashier_webhook(request: Request, service: PaymentService = Depends(get_payment_service)):
    try:
        try:
            body = await _read_webhook_body(request)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return error_response(400, "Invalid webhook payload")

        logger.info(
            "Kashier webhook received: order=%s status=%s",
            body.get("merchantOrderId") if isinstance(body, dict) else None,
            body.get("paymentStatus") if isinstance(body, dict) else None,
        )
        return service.handle_webhook(body)
    except PaymentFlowError as exc:
        return _flow_error(exc)
    except Exception as exc:
        return error_handler.to_response(exc, {"route": "payments.webhook"})


@api.get("/kashier/webhook", tags=["Payments"])
async def kashier_webhook_alive():
    return {"message": "Kashier webhook endpoint is active", "timestamp": datetime.utcnow().isoformat()}


# ============================================================================
# SUCCESS PAGE / ACTIVATION / STATUS
# ============================================================================
@api.post("/process-success", tags=["Payments"])
async def process_success(body: ProcessSuccessRequest, service: PaymentService = Depends(get_payment_service)):
    try:
        return service.process_success(body.trx_reference_number, body.payment_data)
    except PaymentFlowError as exc:
        return _flow_error(exc)
    except Exception as exc:
        return error_handler.to_response(exc, {"route": "payments.process_success"})


@api.post("/activate", tags=["Payments"])
async def activate(body: ActivateRequest, service: PaymentService = Depends(get_payment_service)):
    try:
        return service.activate(body.transaction_id)
    except PaymentFlowError as exc:
        return _flow_error(exc)
    except Exception as exc:
        return error_handler.to_response(exc, {"route": "payments.activate"})


@api.get("/check-status", tags=["Payments"])
async def check_status(
    transaction_id: Optional[str] = Query(default=None, alias="transactionId"),
    service: PaymentService = Depends(get_payment_service),
):
    try:
        return service.check_status(transaction_id)
    except PaymentFlowError as exc:
        return _flow_error(exc)
