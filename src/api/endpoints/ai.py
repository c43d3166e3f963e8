import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from src.ai.enhance import CvEnhancer, detect_locale, fallback_enhance
from src.cv.helpers import format_validation_message, has_minimum_data_for_ai
from src.error_handler import error_handler, error_response

logger = logging.getLogger(__name__)

api = APIRouter()
ai_api = api


class EnhanceRequest(BaseModel):
    data: Optional[Any] = None
    locale: Optional[str] = None
    model: Optional[str] = None


class ReadinessRequest(BaseModel):
    data: Dict[str, Any]
    locale: str = "en"


def get_enhancer() -> CvEnhancer:
    return CvEnhancer()


@api.post("/enhance", tags=["AI"])
async def enhance_cv(request: EnhanceRequest):
    try:
        data = request.data
        if not isinstance(data, dict):
            return error_response(400, "CV data is required and must be an object")

        locale = request.locale if request.locale in ("en", "ar") else detect_locale(data)
        logger.info(
            "AI enhance request: locale=%s model=%s title=%s",
            locale,
            request.model,
            (data.get("title") or "")[:50] if isinstance(data.get("title"), str) else None,
        )

        enhancer = get_enhancer()
        result = await enhancer.enhance(data, locale, request.model)

        if result.ok and result.data:
            return {"data": result.data, "model": result.model}

        logger.warning("AI enhancement failed, reason=%s message=%s", result.reason, result.message)
        if result.reason == "missing_api_key":
            return error_response(503, result.message or "AI API key is not configured", reason="missing_api_key")

        return {
            "data": fallback_enhance(data, locale),
            "fallback": True,
            "message": result.message or "Using fallback enhancer (API key may be missing or invalid).",
            "error": result.message,
            "reason": result.reason,
        }
    except Exception as exc:
        return error_handler.to_response(exc, {"route": "ai.enhance"})


@api.post("/readiness", tags=["AI"])
async def ai_readiness(request: ReadinessRequest):
    valid, missing = has_minimum_data_for_ai(request.data)
    return {
        "ready": valid,
        "missing": [format_validation_message(m, request.locale) for m in missing],
    }
