"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os
from datetime import datetime
from urllib.parse import parse_qs, urlparse

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.dependencies import api_key_protection, postgres_db, redis_cache
from src.api.endpoints.ai import ai_api
from src.api.endpoints.cvs import cvs_api
from src.api.endpoints.export import export_api
from src.api.endpoints.imports import imports_api
from src.api.endpoints.payments import payments_api
from src.api.endpoints.templates import templates_api
from src.error_handler import error_handler, error_response
from src.utils.app_config_loader import get_app_config

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app_config = get_app_config()

# Initialize FastAPI app
app = FastAPI(
    title=app_config.app.name,
    description="Bilingual (Arabic/English) CV builder backend: AI enhancement, imports, templates and Kashier payments",
    version="1.0.0",
    dependencies=[Depends(api_key_protection)],  # protect everything by default
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(ai_api, prefix="/api/ai", tags=["AI"])
app.include_router(imports_api, prefix="/api", tags=["Import"])
app.include_router(templates_api, prefix="/api", tags=["Templates"])
app.include_router(cvs_api, prefix="/api", tags=["CVs"])
app.include_router(export_api, prefix="/api", tags=["Export"])
app.include_router(payments_api, prefix="/api/payments", tags=["Payments"])


# ============================================================================
# ERROR HANDLERS
# ============================================================================
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    return error_handler.to_response(exc, {"route": request.url.path})


# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {"service": app_config.app.name, "status": "healthy", "version": "1.0.0", "timestamp": datetime.now().isoformat()}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check (store, cache)."""
    return {
        "status": "healthy",
        "database": {"store": postgres_db.ping(), "cache": redis_cache.ping()},
        "timestamp": datetime.now().isoformat(),
    }


# ============================================================================
# STARTUP/SHUTDOWN EVENTS
# ============================================================================
@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    logger.info("Starting %s...", app_config.app.name)

    # Log sanitized DB target details (no credentials) for connectivity debugging.
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        try:
            parsed = urlparse(db_url)
            query = parse_qs(parsed.query or "")
            logger.info(
                "DATABASE_URL target: scheme=%s host=%s port=%s db=%s sslmode=%s use_postgres=%s",
                parsed.scheme,
                parsed.hostname,
                parsed.port or 5432,
                (parsed.path or "").lstrip("/"),
                (query.get("sslmode") or [""])[0],
                os.getenv("USE_POSTGRES_STORE", ""),
            )
        except ValueError as e:
            logger.warning("Could not parse DATABASE_URL for startup logging: %s", e)
    else:
        logger.info("DATABASE_URL not set; using in-memory PostgresDB stub")

    # Create database tables if they don't exist
    try:
        postgres_db.create_tables()
        logger.info("Database tables initialized")
    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}")

    if redis_cache.ping():
        logger.info("Redis connection successful")
    else:
        logger.warning("Redis connection failed")

    logger.info("AI backend: %s", app_config.ai.backend)


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down %s...", app_config.app.name)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.api.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=False)
