"""
SQLAlchemy models for user profiles, plans, CV documents, drafts and payment
transactions. Used by postgres_real when USE_POSTGRES_STORE and DATABASE_URL
are set. CV content is stored as a JSON document per row.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4
from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    subscription: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    subscription_history: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    last_transaction_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class UserPlan(Base):
    __tablename__ = "user_plans"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    plan_type: Mapped[str] = mapped_column(String(32), default="free", nullable=False)
    credits_remaining: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    valid_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_purchase_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class CvDocument(Base):
    __tablename__ = "cv_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class CvDraft(Base):
    __tablename__ = "cv_drafts"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Transaction(Base):
    __tablename__ = "transactions"

    transaction_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    order_id: Mapped[str] = mapped_column(String(256), nullable=False, unique=True, index=True)
    subscription_plan_id: Mapped[str] = mapped_column(String(32), nullable=False)
    transaction_amount: Mapped[str] = mapped_column(String(32), nullable=False)
    transaction_currency: Mapped[str] = mapped_column(String(8), nullable=False, default="EGP")
    # "1" pending, "2" success, "3" failed
    payment_status: Mapped[str] = mapped_column(String(2), nullable=False, default="1")
    mode: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    trx_reference_number: Mapped[Optional[str]] = mapped_column(String(256), nullable=True, index=True)
    merchant_order_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    order_reference: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    masked_card: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    card_brand: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    card_data_token: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    signature: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
