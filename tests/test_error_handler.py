import json

from src.error_handler import ErrorHandler, error_response


def test_handle_exception_returns_payload():
    eh = ErrorHandler()
    out = eh.handle_exception(Exception("boom"), context={"route": "test"})
    assert out == {"error": "boom"}


def test_handle_exception_adds_traceback_in_development(monkeypatch):
    monkeypatch.setenv("APP_ENV", "development")
    out = ErrorHandler().handle_exception(ValueError("bad value"))
    assert "ValueError" in out["details"]


def test_handle_exception_without_message():
    out = ErrorHandler().handle_exception(RuntimeError())
    assert "internal error" in out["error"].lower()


def test_error_response_drops_empty_extras():
    resp = error_response(403, "locked", code="TEMPLATE_LOCKED", requiredPlan=None)
    assert resp.status_code == 403
    assert json.loads(resp.body) == {"error": "locked", "code": "TEMPLATE_LOCKED"}
