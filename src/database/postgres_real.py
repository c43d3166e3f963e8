"""
Real Postgres-backed document store for production when USE_POSTGRES_STORE and
DATABASE_URL are set. Implements the same interface as src.database.postgres
(in-memory stub).
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import create_engine, select, text
from sqlalchemy.orm import Session, sessionmaker

from src.database.models import (
    Base,
    CvDocument,
    CvDraft,
    Transaction,
    UserPlan,
    UserProfile,
)

_TRANSACTION_UPDATABLE = {
    "payment_status",
    "mode",
    "trx_reference_number",
    "merchant_order_id",
    "order_id",
    "order_reference",
    "masked_card",
    "card_brand",
    "card_data_token",
    "signature",
    "transaction_amount",
    "transaction_currency",
}
_PROFILE_UPDATABLE = {"name", "email", "phone", "subscription", "subscription_history", "last_transaction_id"}
_PLAN_UPDATABLE = {"plan_type", "credits_remaining", "valid_until", "last_purchase_date"}


def _normalize_connection_string(s: str) -> str:
    """Strip common mistakes: 'psql \'...\'', extra quotes, whitespace."""
    s = s.strip()
    if re.match(r"^psql\s+", s, re.IGNORECASE):
        s = re.sub(r"^psql\s+", "", s, flags=re.IGNORECASE).strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    return s


class PostgresDB:
    """
    Postgres data access using SQLAlchemy. Use when DATABASE_URL is set and
    USE_POSTGRES_STORE=true.
    """

    def __init__(self, connection_string: str) -> None:
        connection_string = _normalize_connection_string(connection_string)
        self.engine = create_engine(connection_string, pool_pre_ping=True, pool_size=5, max_overflow=10)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    @contextmanager
    def _session(self) -> Session:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # ------------------------------------------------------------------ #
    # User profiles & plans
    # ------------------------------------------------------------------ #
    def save_user_profile(self, user_id: str, name: str, email: str, phone: Optional[str] = None) -> UserProfile:
        with self._session() as s:
            p = s.get(UserProfile, user_id)
            if p is None:
                p = UserProfile(
                    user_id=user_id,
                    name=name,
                    email=email,
                    phone=phone,
                    subscription_history=[],
                    created_at=datetime.utcnow(),
                    updated_at=datetime.utcnow(),
                )
                s.add(p)
            else:
                p.name = name
                p.email = email
                if phone is not None:
                    p.phone = phone
                p.updated_at = datetime.utcnow()
            s.flush()
            s.refresh(p)
            return p

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._session() as s:
            return s.get(UserProfile, user_id)

    def update_user_profile(self, user_id: str, updates: Dict[str, Any]) -> Optional[UserProfile]:
        with self._session() as s:
            p = s.get(UserProfile, user_id)
            if p is None:
                return None
            for k, v in updates.items():
                if k in _PROFILE_UPDATABLE:
                    setattr(p, k, v)
            p.updated_at = datetime.utcnow()
            s.flush()
            s.refresh(p)
            return p

    def get_user_plan(self, user_id: str) -> Optional[UserPlan]:
        with self._session() as s:
            return s.get(UserPlan, user_id)

    def save_user_plan(self, user_id: str, **plan_fields: Any) -> UserPlan:
        with self._session() as s:
            plan = s.get(UserPlan, user_id)
            if plan is None:
                plan = UserPlan(user_id=user_id, plan_type="free")
                s.add(plan)
            for k, v in plan_fields.items():
                if k in _PLAN_UPDATABLE:
                    setattr(plan, k, v)
            s.flush()
            s.refresh(plan)
            return plan

    # ------------------------------------------------------------------ #
    # CV documents
    # ------------------------------------------------------------------ #
    def create_cv(self, user_id: str, data: Dict[str, Any]) -> CvDocument:
        with self._session() as s:
            doc = CvDocument(
                id=str(uuid4()),
                user_id=user_id,
                data=dict(data),
                created_at=datetime.utcnow(),
                updated_at=datetime.utcnow(),
            )
            s.add(doc)
            s.flush()
            s.refresh(doc)
            return doc

    def list_user_cvs(self, user_id: str) -> List[CvDocument]:
        with self._session() as s:
            stmt = select(CvDocument).where(CvDocument.user_id == user_id).order_by(CvDocument.updated_at.desc())
            return list(s.execute(stmt).scalars().all())

    def get_user_cv(self, user_id: str, cv_id: str) -> Optional[CvDocument]:
        with self._session() as s:
            stmt = select(CvDocument).where(CvDocument.id == cv_id, CvDocument.user_id == user_id)
            return s.execute(stmt).scalar_one_or_none()

    def update_cv(self, user_id: str, cv_id: str, data: Dict[str, Any]) -> Optional[CvDocument]:
        with self._session() as s:
            stmt = select(CvDocument).where(CvDocument.id == cv_id, CvDocument.user_id == user_id)
            doc = s.execute(stmt).scalar_one_or_none()
            if doc is None:
                return None
            # Reassign so SQLAlchemy sees the JSON column change
            doc.data = {**(doc.data or {}), **data}
            doc.updated_at = datetime.utcnow()
            s.flush()
            s.refresh(doc)
            return doc

    def delete_user_cv(self, user_id: str, cv_id: str) -> bool:
        with self._session() as s:
            stmt = select(CvDocument).where(CvDocument.id == cv_id, CvDocument.user_id == user_id)
            doc = s.execute(stmt).scalar_one_or_none()
            if doc is None:
                return False
            s.delete(doc)
            return True

    # ------------------------------------------------------------------ #
    # Single draft per user
    # ------------------------------------------------------------------ #
    def save_user_draft(self, user_id: str, data: Dict[str, Any]) -> CvDraft:
        with self._session() as s:
            draft = s.get(CvDraft, user_id)
            now = datetime.utcnow()
            if draft is None:
                draft = CvDraft(user_id=user_id, data=dict(data), created_at=now, updated_at=now)
                s.add(draft)
            else:
                draft.data = dict(data)
                draft.updated_at = now
            s.flush()
            s.refresh(draft)
            return draft

    def get_user_draft(self, user_id: str) -> Optional[CvDraft]:
        with self._session() as s:
            return s.get(CvDraft, user_id)

    def delete_user_draft(self, user_id: str) -> bool:
        with self._session() as s:
            draft = s.get(CvDraft, user_id)
            if draft is None:
                return False
            s.delete(draft)
            return True

    # ------------------------------------------------------------------ #
    # Payment transactions
    # ------------------------------------------------------------------ #
    def create_transaction(
        self,
        *,
        user_id: str,
        order_id: str,
        subscription_plan_id: str,
        transaction_amount: Any,
        transaction_currency: str,
        mode: Optional[str] = None,
    ) -> Transaction:
        with self._session() as s:
            t = Transaction(
                transaction_id=str(uuid4()),
                user_id=user_id,
                order_id=order_id,
                subscription_plan_id=subscription_plan_id,
                transaction_amount=str(transaction_amount),
                transaction_currency=transaction_currency,
                payment_status="1",
                mode=mode,
                created_at=datetime.utcnow(),
                updated_at=datetime.utcnow(),
            )
            s.add(t)
            s.flush()
            s.refresh(t)
            return t

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        with self._session() as s:
            return s.get(Transaction, str(transaction_id))

    def get_transaction_by_order_id(self, order_id: str) -> Optional[Transaction]:
        with self._session() as s:
            stmt = select(Transaction).where(Transaction.order_id == order_id)
            return s.execute(stmt).scalar_one_or_none()

    def get_transaction_by_reference(self, reference: str) -> Optional[Transaction]:
        with self._session() as s:
            stmt = select(Transaction).where(Transaction.trx_reference_number == reference).limit(1)
            return s.execute(stmt).scalars().first()

    def update_transaction_with_payment_data(self, transaction_id: str, updates: Dict[str, Any]) -> Optional[Transaction]:
        with self._session() as s:
            t = s.get(Transaction, str(transaction_id))
            if t is None:
                return None
            for k, v in (updates or {}).items():
                if v is None or k not in _TRANSACTION_UPDATABLE:
                    continue
                setattr(t, k, v)
            t.updated_at = datetime.utcnow()
            s.flush()
            s.refresh(t)
            return t
