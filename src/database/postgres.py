"""
Lightweight in-memory document store for local development and tests.

Mirrors the interface of `src.database.postgres_real.PostgresDB` so the API
can run without a database. It is NOT intended for production use.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class UserProfile:
    user_id: str
    name: str
    email: str
    phone: Optional[str] = None
    subscription: Optional[Dict[str, Any]] = None
    subscription_history: List[Dict[str, Any]] = field(default_factory=list)
    last_transaction_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class UserPlan:
    user_id: str
    plan_type: str = "free"
    credits_remaining: Optional[int] = None
    valid_until: Optional[datetime] = None
    last_purchase_date: Optional[datetime] = None


@dataclass
class CvDocument:
    id: str
    user_id: str
    data: Dict[str, Any]
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class CvDraft:
    user_id: str
    data: Dict[str, Any]
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class Transaction:
    transaction_id: str
    user_id: str
    order_id: str
    subscription_plan_id: str
    transaction_amount: str
    transaction_currency: str
    payment_status: str = "1"
    mode: Optional[str] = None
    trx_reference_number: Optional[str] = None
    merchant_order_id: Optional[str] = None
    order_reference: Optional[str] = None
    masked_card: Optional[str] = None
    card_brand: Optional[str] = None
    card_data_token: Optional[str] = None
    signature: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


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


class PostgresDB:
    """
    In-memory stand-in for the document store.

    Records are copied on the way in so callers can't mutate stored state by
    holding on to the dict they passed.
    """

    def __init__(self) -> None:
        self._profiles: Dict[str, UserProfile] = {}
        self._plans: Dict[str, UserPlan] = {}
        self._cvs: Dict[str, CvDocument] = {}
        self._drafts: Dict[str, CvDraft] = {}
        self._transactions: Dict[str, Transaction] = {}

    # ------------------------------------------------------------------ #
    # Schema / lifecycle
    # ------------------------------------------------------------------ #
    def create_tables(self) -> None:
        """No-op for the in-memory implementation."""
        return None

    def ping(self) -> bool:
        return True

    # ------------------------------------------------------------------ #
    # User profiles & plans
    # ------------------------------------------------------------------ #
    def save_user_profile(self, user_id: str, name: str, email: str, phone: Optional[str] = None) -> UserProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            profile = UserProfile(user_id=user_id, name=name, email=email, phone=phone)
            self._profiles[user_id] = profile
            return profile

        profile.name = name
        profile.email = email
        if phone is not None:
            profile.phone = phone
        profile.updated_at = datetime.utcnow()
        return profile

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)

    def update_user_profile(self, user_id: str, updates: Dict[str, Any]) -> Optional[UserProfile]:
        profile = self._profiles.get(user_id)
        if profile is None:
            return None
        for key, value in updates.items():
            if key in _PROFILE_UPDATABLE:
                setattr(profile, key, copy.deepcopy(value))
        profile.updated_at = datetime.utcnow()
        return profile

    def get_user_plan(self, user_id: str) -> Optional[UserPlan]:
        return self._plans.get(user_id)

    def save_user_plan(self, user_id: str, **plan_fields: Any) -> UserPlan:
        plan = self._plans.get(user_id) or UserPlan(user_id=user_id)
        for key, value in plan_fields.items():
            if key in _PLAN_UPDATABLE:
                setattr(plan, key, value)
        self._plans[user_id] = plan
        return plan

    # ------------------------------------------------------------------ #
    # CV documents
    # ------------------------------------------------------------------ #
    def create_cv(self, user_id: str, data: Dict[str, Any]) -> CvDocument:
        doc = CvDocument(id=str(uuid.uuid4()), user_id=user_id, data=copy.deepcopy(data))
        self._cvs[doc.id] = doc
        return doc

    def list_user_cvs(self, user_id: str) -> List[CvDocument]:
        docs = [d for d in self._cvs.values() if d.user_id == user_id]
        docs.sort(key=lambda d: d.updated_at, reverse=True)
        return docs

    def get_user_cv(self, user_id: str, cv_id: str) -> Optional[CvDocument]:
        doc = self._cvs.get(cv_id)
        if doc is None or doc.user_id != user_id:
            return None
        return doc

    def update_cv(self, user_id: str, cv_id: str, data: Dict[str, Any]) -> Optional[CvDocument]:
        doc = self.get_user_cv(user_id, cv_id)
        if doc is None:
            return None
        doc.data = {**doc.data, **copy.deepcopy(data)}
        doc.updated_at = datetime.utcnow()
        return doc

    def delete_user_cv(self, user_id: str, cv_id: str) -> bool:
        if self.get_user_cv(user_id, cv_id) is None:
            return False
        del self._cvs[cv_id]
        return True

    # ------------------------------------------------------------------ #
    # Single draft per user
    # ------------------------------------------------------------------ #
    def save_user_draft(self, user_id: str, data: Dict[str, Any]) -> CvDraft:
        existing = self._drafts.get(user_id)
        draft = CvDraft(user_id=user_id, data=copy.deepcopy(data))
        if existing is not None:
            draft.created_at = existing.created_at
        self._drafts[user_id] = draft
        return draft

    def get_user_draft(self, user_id: str) -> Optional[CvDraft]:
        return self._drafts.get(user_id)

    def delete_user_draft(self, user_id: str) -> bool:
        return self._drafts.pop(user_id, None) is not None

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
        txn = Transaction(
            transaction_id=str(uuid.uuid4()),
            user_id=user_id,
            order_id=order_id,
            subscription_plan_id=subscription_plan_id,
            transaction_amount=str(transaction_amount),
            transaction_currency=transaction_currency,
            mode=mode,
        )
        self._transactions[txn.transaction_id] = txn
        return txn

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._transactions.get(str(transaction_id))

    def get_transaction_by_order_id(self, order_id: str) -> Optional[Transaction]:
        for txn in self._transactions.values():
            if txn.order_id == order_id:
                return txn
        return None

    def get_transaction_by_reference(self, reference: str) -> Optional[Transaction]:
        for txn in self._transactions.values():
            if txn.trx_reference_number == reference:
                return txn
        return None

    def update_transaction_with_payment_data(self, transaction_id: str, updates: Dict[str, Any]) -> Optional[Transaction]:
        txn = self._transactions.get(str(transaction_id))
        if txn is None:
            return None
        for key, value in updates.items():
            if value is None or key not in _TRANSACTION_UPDATABLE:
                continue
            setattr(txn, key, value)
        txn.updated_at = datetime.utcnow()
        return txn
