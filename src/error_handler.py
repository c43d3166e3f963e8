"""Error payload helpers shared by the API routes."""
import logging
import os
import traceback
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    """JSON error body of the shape ``{"error": message, ...extra}``."""
    body: Dict[str, Any] = {"error": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content=body)


class ErrorHandler:
    def handle_exception(self, exc: Exception, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.error("Unhandled exception (%s): %s", (context or {}).get("route", "unknown"), exc, exc_info=True)
        body: Dict[str, Any] = {"error": str(exc) or "An internal error occurred. Please try again later."}
        if os.getenv("APP_ENV", "").lower() == "development":
            body["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return body

    def to_response(self, exc: Exception, context: Optional[Dict[str, Any]] = None, status_code: int = 500) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=self.handle_exception(exc, context))


error_handler = ErrorHandler()
