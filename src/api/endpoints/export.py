import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field, ValidationError

from src.api.dependencies import get_db
from src.cv.models import CvData
from src.cv.templates import effective_plan_type, get_template, get_upgrade_message, has_template_access
from src.error_handler import error_handler, error_response
from src.export.pdf import pdf_filename, render_cv_pdf
from src.integrations.policy.subscription_service import consume_export_credit

logger = logging.getLogger(__name__)

api = APIRouter()
export_api = api


class PdfExportRequest(BaseModel):
    data: Dict[str, Any]
    template_key: Optional[str] = Field(default=None, alias="templateKey")
    cv_language: Optional[str] = Field(default=None, alias="cvLanguage")
    user_id: Optional[str] = Field(default=None, alias="userId")


@api.post("/cv/export/pdf", tags=["Export"])
async def export_pdf(body: PdfExportRequest, db=Depends(get_db)):
    try:
        try:
            cv = CvData.model_validate(body.data)
        except ValidationError as exc:
            return error_response(400, "Invalid CV data", details=str(exc))

        if body.cv_language in ("en", "ar"):
            cv.cv_language = body.cv_language
        template_key = body.template_key or cv.template_key or "classic"
        template = get_template(template_key)
        if template is None:
            return error_response(400, f"Unknown template '{template_key}'")

        plan = db.get_user_plan(body.user_id) if body.user_id else None
        is_ar = cv.cv_language == "ar"
        if not has_template_access(template, plan):
            return error_response(
                403,
                get_upgrade_message(template, is_ar),
                code="TEMPLATE_LOCKED",
                requiredPlan=template.required_plan,
            )

        pdf = render_cv_pdf(cv, template, watermark=effective_plan_type(plan) == "free")

        # Charge the credit only once the document rendered
        allowed, plan_type, credits = consume_export_credit(db, body.user_id)
        if not allowed:
            message = "لا توجد أرصدة تصدير متبقية" if is_ar else "No export credits remaining"
            return error_response(403, message, code="NO_CREDITS")

        logger.info(
            "Exported CV pdf template=%s plan=%s credits_remaining=%s bytes=%d",
            template.key,
            plan_type,
            credits,
            len(pdf),
        )
        headers = {"Content-Disposition": f'attachment; filename="{pdf_filename(cv.full_name)}"'}
        if credits is not None:
            headers["X-Credits-Remaining"] = str(credits)
        return Response(content=pdf, media_type="application/pdf", headers=headers)
    except Exception as exc:
        return error_handler.to_response(exc, {"route": "export.pdf"})
