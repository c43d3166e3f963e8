import pytest
from pydantic import ValidationError

from src.utils.app_config_loader import load_app_config


def test_default_config_file_loads():
    cfg = load_app_config()
    assert cfg.payments.currency == "EGP"
    assert cfg.payments.pricing["flex_pack"] == 149
    assert cfg.payments.plans["flex_pack"].credits == 5
    assert cfg.payments.plans["annual_pass"].duration_days == 365


def test_partial_file_uses_defaults(tmp_path):
    path = tmp_path / "app_config.yml"
    path.write_text("payments:\n  currency: USD\n", encoding="utf-8")

    cfg = load_app_config(path)

    assert cfg.payments.currency == "USD"
    assert cfg.payments.pricing["one_time"] == 79
    assert cfg.ai.backend == "gemini"


def test_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "app_config.yml"
    path.write_text("app:\n  name: Test\n", encoding="utf-8")
    monkeypatch.setenv("AI_BACKEND", "Anthropic")
    monkeypatch.setenv("APP_BASE_URL", "https://cv.example.com/")

    cfg = load_app_config(path)

    assert cfg.ai.backend == "anthropic"
    assert cfg.app.base_url == "https://cv.example.com"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_app_config(tmp_path / "nope.yml")


def test_invalid_values_fail_validation(tmp_path):
    path = tmp_path / "app_config.yml"
    path.write_text("ai:\n  backend: openai\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_app_config(path)
