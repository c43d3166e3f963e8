from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_db
from src.cv.helpers import CV_TIPS, FIELD_HELP, section_headers
from src.cv.templates import TEMPLATES, effective_plan_type, get_upgrade_message, has_template_access

api = APIRouter()
templates_api = api


@api.get("/templates", tags=["Templates"])
async def list_templates(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    locale: str = Query(default="en"),
    db=Depends(get_db),
):
    plan = db.get_user_plan(user_id) if user_id else None
    is_ar = locale == "ar"

    items = []
    for template in TEMPLATES:
        locked = not has_template_access(template, plan)
        item = template.to_dict()
        item["locked"] = locked
        item["upgradeMessage"] = get_upgrade_message(template, is_ar) if locked else None
        items.append(item)

    return {"plan": effective_plan_type(plan), "templates": items}


@api.get("/cv/guidance", tags=["Templates"])
async def cv_guidance(locale: str = Query(default="en")):
    """Editor tips, field help and section titles in one language."""
    lang = "ar" if locale == "ar" else "en"
    return {
        "locale": lang,
        "tips": {key: texts[lang] for key, texts in CV_TIPS.items()},
        "fieldHelp": {key: texts[lang] for key, texts in FIELD_HELP.items()},
        "sectionHeaders": section_headers(lang),
    }
