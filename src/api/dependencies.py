import hmac
import logging
import os

from dotenv import load_dotenv
from fastapi import Header, HTTPException, Request, status

from src.utils.app_config_loader import get_app_config

load_dotenv()

logger = logging.getLogger(__name__)

# ============================================================================
# STORES
# ============================================================================

# Use real Postgres/Redis when env is set, else in-memory stubs
if os.getenv("DATABASE_URL") and os.getenv("USE_POSTGRES_STORE", "").lower() in ("1", "true", "yes"):
    from src.database.postgres_real import PostgresDB

    postgres_db = PostgresDB(connection_string=os.environ["DATABASE_URL"])
else:
    from src.database.postgres import PostgresDB

    postgres_db = PostgresDB()

if os.getenv("REDIS_URL"):
    from src.database.redis_real import RedisCache

    redis_cache = RedisCache(url=os.environ["REDIS_URL"], draft_ttl=get_app_config().app.guest_draft_ttl_seconds)
else:
    from src.database.redis import RedisCache

    redis_cache = RedisCache()


def get_db():
    """Dependency for the document store"""
    return postgres_db


def get_cache():
    """Dependency for the guest-draft / lock cache"""
    return redis_cache


# ============================================================================
# API KEY PROTECTION
# ============================================================================

_ALLOWLIST_PATHS = {
    "/",
    "/health",
    "/docs",
    "/docs/oauth2-redirect",
    "/openapi.json",
    "/redoc",
    # Kashier cannot send our API key; the webhook is authenticated by its signature
    "/api/payments/kashier/webhook",
}


def get_api_keys():
    keys = os.getenv("API_KEYS", "")
    return [k.strip() for k in keys.split(",") if k.strip()]


async def api_key_protection(
    request: Request = None,  # keep Request type so FastAPI injects it; default None for direct calls/tests
    x_api_key: str = Header(default=None, alias="X-API-KEY"),
):
    debug = os.getenv("API_KEY_DEBUG", "").lower() in ("1", "true", "yes")
    path = request.url.path if request is not None else "<no-request>"

    valid_keys = get_api_keys()
    if not valid_keys:
        # Protection is opt-in: no API_KEYS configured means an open API
        return

    if request is not None and request.url.path in _ALLOWLIST_PATHS:
        if debug:
            logger.info("API key check: allowlisted path=%s", path)
        return

    candidate = (x_api_key or "").strip()
    ok = bool(candidate) and any(hmac.compare_digest(candidate, k) for k in valid_keys)
    if debug:
        logger.info("API key check: path=%s ok=%s configured_keys=%d", path, ok, len(valid_keys))

    if not ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key",
        )
