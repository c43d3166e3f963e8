from datetime import datetime, timedelta

from src.cv.templates import (
    TEMPLATES,
    effective_plan_type,
    get_accessible_templates,
    get_template,
    get_upgrade_message,
    has_template_access,
)
from src.database.postgres import UserPlan

NOW = datetime(2026, 3, 1)


def _plan(plan_type, days=30):
    return UserPlan(user_id="u", plan_type=plan_type, valid_until=NOW + timedelta(days=days))


def test_free_users_only_get_basic_templates():
    keys = [t.key for t in get_accessible_templates(None, NOW)]
    assert keys == ["classic", "modern", "elegant"]


def test_plan_hierarchy_unlocks_templates():
    technical = get_template("technical")
    assert has_template_access(technical, _plan("one_time"), NOW) is False
    assert has_template_access(technical, _plan("flex_pack"), NOW) is True
    assert has_template_access(technical, _plan("annual_pass"), NOW) is True
    assert len(get_accessible_templates(_plan("annual_pass"), NOW)) == len(TEMPLATES)


def test_expired_plan_counts_as_free():
    expired = _plan("annual_pass", days=-1)
    assert effective_plan_type(expired, NOW) == "free"
    assert has_template_access(get_template("creative"), expired, NOW) is False


def test_upgrade_message_is_localized():
    colorful = get_template("colorful")
    assert get_upgrade_message(colorful, False) == "Upgrade to Annual Pass to unlock this template"
    assert get_upgrade_message(colorful, True) == "قم بالترقية إلى البطاقة السنوية لفتح هذا القالب"
    assert get_upgrade_message(get_template("classic"), False) == ""


def test_templates_route_marks_locked_templates(client, db):
    db.save_user_plan("user-1", plan_type="one_time", valid_until=datetime.utcnow() + timedelta(days=3))

    resp = client.get("/api/templates", params={"userId": "user-1", "locale": "ar"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["plan"] == "one_time"
    by_key = {t["key"]: t for t in body["templates"]}
    assert by_key["creative"]["locked"] is False
    assert by_key["minimalist"]["locked"] is True
    assert by_key["minimalist"]["upgradeMessage"].startswith("قم بالترقية")
    assert by_key["classic"]["upgradeMessage"] is None


def test_guidance_route_returns_one_language(client):
    resp = client.get("/api/cv/guidance", params={"locale": "ar"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["locale"] == "ar"
    assert body["fieldHelp"]["fullName"].startswith("اسمك")
    assert body["sectionHeaders"]["skills"] == "المهارات"

    en = client.get("/api/cv/guidance").json()
    assert en["tips"]["date"].startswith("Use format YYYY-MM")
