import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import get_cache, get_db
from src.cv.templates import effective_plan_type
from src.error_handler import error_response
from src.utils.app_config_loader import get_app_config

logger = logging.getLogger(__name__)

api = APIRouter()
cvs_api = api


class ProfileUpdate(BaseModel):
    name: str = ""
    email: str = ""
    phone: Optional[str] = None


class CvPayload(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)


class MigrateGuestDraft(BaseModel):
    user_id: str = Field(..., alias="userId")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _profile_dict(p: Any) -> Dict[str, Any]:
    return {
        "userId": p.user_id,
        "name": p.name,
        "email": p.email,
        "phone": p.phone,
        "subscription": p.subscription,
        "subscriptionHistory": p.subscription_history or [],
        "createdAt": _iso(p.created_at),
        "updatedAt": _iso(p.updated_at),
    }


def _plan_dict(user_id: str, plan: Any) -> Dict[str, Any]:
    return {
        "userId": user_id,
        "planType": getattr(plan, "plan_type", "free") or "free",
        "effectivePlan": effective_plan_type(plan),
        "creditsRemaining": getattr(plan, "credits_remaining", None),
        "validUntil": _iso(getattr(plan, "valid_until", None)),
        "lastPurchaseDate": _iso(getattr(plan, "last_purchase_date", None)),
    }


def _cv_dict(doc: Any) -> Dict[str, Any]:
    return {
        "id": doc.id,
        "userId": doc.user_id,
        "data": doc.data,
        "createdAt": _iso(doc.created_at),
        "updatedAt": _iso(doc.updated_at),
    }


def _draft_dict(draft: Any) -> Dict[str, Any]:
    return {
        "userId": draft.user_id,
        "data": draft.data,
        "createdAt": _iso(draft.created_at),
        "updatedAt": _iso(draft.updated_at),
    }


# ============================================================================
# PROFILE & PLAN
# ============================================================================
@api.get("/users/{user_id}/profile", tags=["Users"])
async def get_profile(user_id: str, db=Depends(get_db)):
    profile = db.get_user_profile(user_id)
    if profile is None:
        return error_response(404, "User profile not found")
    return _profile_dict(profile)


@api.put("/users/{user_id}/profile", tags=["Users"])
async def save_profile(user_id: str, body: ProfileUpdate, db=Depends(get_db)):
    profile = db.save_user_profile(user_id, name=body.name, email=body.email, phone=body.phone)
    return _profile_dict(profile)


@api.get("/users/{user_id}/plan", tags=["Users"])
async def get_plan(user_id: str, db=Depends(get_db)):
    return _plan_dict(user_id, db.get_user_plan(user_id))


# ============================================================================
# CV DOCUMENTS
# ============================================================================
@api.get("/users/{user_id}/cvs", tags=["CVs"])
async def list_cvs(user_id: str, db=Depends(get_db)):
    return {"cvs": [_cv_dict(doc) for doc in db.list_user_cvs(user_id)]}


@api.post("/users/{user_id}/cvs", tags=["CVs"], status_code=201)
async def create_cv(user_id: str, body: CvPayload, db=Depends(get_db)):
    doc = db.create_cv(user_id, body.data)
    logger.info("Created CV %s for user %s", doc.id, user_id)
    return _cv_dict(doc)


@api.get("/users/{user_id}/cvs/{cv_id}", tags=["CVs"])
async def get_cv(user_id: str, cv_id: str, db=Depends(get_db)):
    doc = db.get_user_cv(user_id, cv_id)
    if doc is None:
        return error_response(404, "CV not found")
    return _cv_dict(doc)


@api.put("/users/{user_id}/cvs/{cv_id}", tags=["CVs"])
async def update_cv(user_id: str, cv_id: str, body: CvPayload, db=Depends(get_db)):
    doc = db.update_cv(user_id, cv_id, body.data)
    if doc is None:
        return error_response(404, "CV not found")
    return _cv_dict(doc)


@api.delete("/users/{user_id}/cvs/{cv_id}", tags=["CVs"])
async def delete_cv(user_id: str, cv_id: str, db=Depends(get_db)):
    if not db.delete_user_cv(user_id, cv_id):
        return error_response(404, "CV not found")
    return {"deleted": True, "id": cv_id}


# ============================================================================
# USER DRAFT
# ============================================================================
@api.get("/users/{user_id}/draft", tags=["Drafts"])
async def get_draft(user_id: str, db=Depends(get_db)):
    draft = db.get_user_draft(user_id)
    if draft is None:
        return error_response(404, "Draft not found")
    return _draft_dict(draft)


@api.put("/users/{user_id}/draft", tags=["Drafts"])
async def save_draft(user_id: str, body: CvPayload, db=Depends(get_db)):
    return _draft_dict(db.save_user_draft(user_id, body.data))


@api.delete("/users/{user_id}/draft", tags=["Drafts"])
async def delete_draft(user_id: str, db=Depends(get_db)):
    return {"deleted": db.delete_user_draft(user_id)}


# ============================================================================
# GUEST DRAFTS
# ============================================================================
@api.get("/guest-drafts/{guest_id}", tags=["Drafts"])
async def get_guest_draft(guest_id: str, cache=Depends(get_cache)):
    record = cache.get_guest_draft(guest_id)
    if record is None:
        return error_response(404, "Guest draft not found")
    return {"guestId": guest_id, "data": record["data"], "savedAt": record["saved_at"]}


@api.put("/guest-drafts/{guest_id}", tags=["Drafts"])
async def save_guest_draft(guest_id: str, body: CvPayload, cache=Depends(get_cache)):
    ttl = get_app_config().app.guest_draft_ttl_seconds
    record = cache.set_guest_draft(guest_id, body.data, ttl=ttl)
    return {"guestId": guest_id, "data": record["data"], "savedAt": record["saved_at"]}


@api.delete("/guest-drafts/{guest_id}", tags=["Drafts"])
async def delete_guest_draft(guest_id: str, cache=Depends(get_cache)):
    return {"deleted": cache.delete_guest_draft(guest_id)}


@api.post("/guest-drafts/{guest_id}/migrate", tags=["Drafts"])
async def migrate_guest_draft(guest_id: str, body: MigrateGuestDraft, db=Depends(get_db), cache=Depends(get_cache)):
    record = cache.get_guest_draft(guest_id)
    if record is None:
        return error_response(404, "Guest draft not found")

    draft = db.save_user_draft(body.user_id, record["data"])
    cache.delete_guest_draft(guest_id)
    logger.info("Migrated guest draft %s to user %s", guest_id, body.user_id)
    return {"migrated": True, **_draft_dict(draft)}
