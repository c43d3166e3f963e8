"""Pytest fixtures for the API, stores and Kashier configuration."""

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_cache, get_db
from src.api.main import app
from src.database.postgres import PostgresDB
from src.database.redis import RedisCache

_ENV_VARS = [
    "API_KEYS",
    "APP_ENV",
    "INTEGRATIONS_MODE",
    "GEMINI_API_KEY",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_DEBUG",
    "KASHIER_MODE",
    "KASHIER_MERCHANT_ID",
    "KASHIER_SECRET_KEY",
    "KASHIER_API_KEY",
    "KASHIER_TEST_MERCHANT_ID",
    "KASHIER_TEST_SECRET_KEY",
    "KASHIER_TEST_API_KEY",
    "KASHIER_TEST_USER_ID",
    "KASHIER_ALLOW_UNSIGNED_WEBHOOKS",
    "KASHIER_WEBHOOK_URL",
    "KASHIER_PPLINK_ONETIME",
    "KASHIER_PPLINK_FLEXPACK",
    "KASHIER_PPLINK_ANNUALPASS",
    "KASHIER_PPLINK_ONETIME_TEST",
    "KASHIER_PPLINK_FLEXPACK_TEST",
    "KASHIER_PPLINK_ANNUALPASS_TEST",
]

TEST_SECRET = "test-secret-key"
LIVE_SECRET = "live-secret-key"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db():
    """In-memory PostgresDB stub for tests."""
    return PostgresDB()


@pytest.fixture
def cache():
    """In-memory RedisCache stub for tests."""
    return RedisCache()


@pytest.fixture
def client(db, cache):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_cache] = lambda: cache
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def kashier_env(monkeypatch):
    """Real Kashier gateway configured for both modes, test mode selected."""
    monkeypatch.setenv("INTEGRATIONS_MODE", "real")
    monkeypatch.setenv("KASHIER_MODE", "test")
    monkeypatch.setenv("KASHIER_TEST_MERCHANT_ID", "MID-TEST-1")
    monkeypatch.setenv("KASHIER_TEST_SECRET_KEY", TEST_SECRET)
    monkeypatch.setenv("KASHIER_TEST_API_KEY", "test-api-key-0123456789")
    monkeypatch.setenv("KASHIER_MERCHANT_ID", "MID-LIVE-1")
    monkeypatch.setenv("KASHIER_SECRET_KEY", LIVE_SECRET)
    monkeypatch.setenv("KASHIER_API_KEY", "live-api-key-0123456789")
    monkeypatch.setenv("KASHIER_PPLINK_ONETIME_TEST", "PP-ONE-TEST")
    monkeypatch.setenv("KASHIER_PPLINK_FLEXPACK_TEST", "PP-FLEX-TEST")
    monkeypatch.setenv("KASHIER_PPLINK_ANNUALPASS_TEST", "PP-ANNUAL-TEST")
    monkeypatch.setenv("KASHIER_PPLINK_ONETIME", "PP-ONE")
    monkeypatch.setenv("KASHIER_PPLINK_FLEXPACK", "PP-FLEX")
    monkeypatch.setenv("KASHIER_PPLINK_ANNUALPASS", "PP-ANNUAL")


@pytest.fixture
def pending_txn(db):
    """A pending one_time transaction for user-1."""
    db.save_user_profile("user-1", name="Sara Ali", email="sara@example.com")
    return db.create_transaction(
        user_id="user-1",
        order_id="order_one_time_1700000000000_user-1",
        subscription_plan_id="one_time",
        transaction_amount=79,
        transaction_currency="EGP",
        mode="test",
    )
