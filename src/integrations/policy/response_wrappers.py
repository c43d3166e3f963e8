from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from src.integrations.contracts.interfaces import PaymentStatus
from src.integrations.contracts.payments import map_gateway_status


class IntegrationResponseError(ValueError):
    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class KashierPaymentModel(BaseModel):
    """Kashier payment notification (webhook body or success-page paymentData)."""

    merchant_order_id: Optional[str] = None
    order_id: Optional[str] = None
    gateway_transaction_id: Optional[str] = None
    order_reference: Optional[str] = None
    raw_status: str = ""
    status: PaymentStatus
    amount: Optional[str] = None
    currency: Optional[str] = None
    masked_card: Optional[str] = None
    card_brand: Optional[str] = None
    card_data_token: Optional[str] = None
    signature: Optional[str] = None
    mode: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    def transaction_updates(self, *, reference: Optional[str] = None) -> Dict[str, Any]:
        """Columns to write on the stored transaction. ``None`` values are skipped by the store."""
        return {
            "payment_status": self.status.value,
            "trx_reference_number": reference or self.gateway_transaction_id or self.merchant_order_id,
            "merchant_order_id": self.merchant_order_id,
            "order_reference": self.order_reference,
            "transaction_amount": self.amount,
            "transaction_currency": self.currency,
            "masked_card": self.masked_card,
            "card_brand": self.card_brand,
            "card_data_token": self.card_data_token,
            "signature": self.signature,
            "mode": self.mode,
        }


def normalize_kashier_payment(raw: Dict[str, Any], *, require_merchant_order_id: bool = False) -> KashierPaymentModel:
    if not isinstance(raw, dict):
        raise IntegrationResponseError("Payment payload must be a JSON object.")

    merchant_order_id = _optional_str(_first_non_empty(raw, "merchantOrderId", "merchant_order_id", default=""))
    if require_merchant_order_id and not merchant_order_id:
        raise IntegrationResponseError("Missing merchantOrderId", payload=raw)

    raw_status = str(_first_non_empty(raw, "paymentStatus", "status", default=""))
    amount = _first_non_empty(raw, "amount", default="")
    currency = _first_non_empty(raw, "currency", default="")

    return _build_model(
        KashierPaymentModel,
        {
            "merchant_order_id": merchant_order_id,
            "order_id": _optional_str(_first_non_empty(raw, "orderId", default="")),
            "gateway_transaction_id": _optional_str(_first_non_empty(raw, "transactionId", default="")),
            "order_reference": _optional_str(_first_non_empty(raw, "orderReference", default="")),
            "raw_status": raw_status,
            "status": map_gateway_status(raw_status),
            "amount": _format_amount_field(amount),
            "currency": _optional_str(currency),
            "masked_card": _optional_str(_first_non_empty(raw, "maskedCard", default="")),
            "card_brand": _optional_str(_first_non_empty(raw, "cardBrand", default="")),
            "card_data_token": _optional_str(_first_non_empty(raw, "cardDataToken", default="")),
            "signature": _optional_str(_first_non_empty(raw, "signature", default="")),
            "mode": _optional_str(_first_non_empty(raw, "mode", default="")),
            "raw": raw,
        },
        raw,
    )


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    if default is not None:
        return default
    raise IntegrationResponseError(f"Missing required field. Checked keys: {', '.join(keys)}", payload=data)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _format_amount_field(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _build_model(model_type, payload: Dict[str, Any], raw: Dict[str, Any]):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise IntegrationResponseError(f"Response validation failed: {exc}", payload=raw) from exc
