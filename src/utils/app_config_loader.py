"""
Application configuration loader (plans, pricing, AI defaults, import limits).
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class AppSection(BaseModel):
    name: str = "SeraPro CV API"
    base_url: str = "http://localhost:3000"
    guest_draft_ttl_seconds: int = Field(default=2_592_000, ge=60)


class AIConfig(BaseModel):
    backend: Literal["gemini", "anthropic"] = "gemini"
    gemini_model: str = "gemini-2.5-flash"
    anthropic_model: str = "claude-3-5-haiku-latest"
    max_output_tokens: int = Field(default=2000, ge=1, le=32000)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=60.0, gt=0)


class ImportsConfig(BaseModel):
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)


class PlanRule(BaseModel):
    duration_days: int = Field(ge=1)
    credits: Optional[int] = Field(default=None, ge=0)


class PaymentsConfig(BaseModel):
    currency: str = "EGP"
    default_product: str = "one_time"
    fallback_amount: float = 79
    pricing: Dict[str, float] = Field(
        default_factory=lambda: {"one_time": 79, "flex_pack": 149, "annual_pass": 299}
    )
    plans: Dict[str, PlanRule] = Field(
        default_factory=lambda: {
            "one_time": PlanRule(duration_days=7),
            "flex_pack": PlanRule(duration_days=182, credits=5),
            "annual_pass": PlanRule(duration_days=365),
        }
    )
    webhook_lock_ttl_seconds: int = Field(default=60, ge=1)


class AppConfig(BaseModel):
    app: AppSection = Field(default_factory=AppSection)
    ai: AIConfig = Field(default_factory=AIConfig)
    imports: ImportsConfig = Field(default_factory=ImportsConfig)
    payments: PaymentsConfig = Field(default_factory=PaymentsConfig)


def load_app_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load and validate the application configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to config/app_config.yml

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "config" / "app_config.yml"

    if not config_path.exists():
        raise FileNotFoundError(f"App config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    try:
        cfg = AppConfig(**data)
    except ValidationError as e:
        logger.error("App config validation failed: %s", e)
        raise

    # Environment overrides for values that differ per deployment
    backend = os.getenv("AI_BACKEND", "").strip().lower()
    if backend in {"gemini", "anthropic"}:
        cfg.ai.backend = backend
    base_url = os.getenv("APP_BASE_URL", "").strip()
    if base_url:
        cfg.app.base_url = base_url.rstrip("/")

    logger.info("Successfully loaded app config from %s", config_path)
    return cfg


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """Process-wide config, loaded once."""
    return load_app_config()
