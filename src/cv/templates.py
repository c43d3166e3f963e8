"""
CV template catalogue and plan-based access rules.

Templates are "basic" (free) or "premium" (needs a paid plan at or above
`required_plan` in the plan hierarchy).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

PLAN_HIERARCHY: Dict[str, int] = {
    "free": 0,
    "one_time": 1,
    "flex_pack": 2,
    "annual_pass": 3,
}

PLAN_NAMES: Dict[str, Dict[str, str]] = {
    "one_time": {"en": "One-Time Purchase", "ar": "شراء لمرة واحدة"},
    "flex_pack": {"en": "Flex Pack", "ar": "باقة مرنة"},
    "annual_pass": {"en": "Annual Pass", "ar": "البطاقة السنوية"},
}


@dataclass(frozen=True)
class Template:
    key: str
    name: Dict[str, str]
    description: Dict[str, str]
    access_level: str                    # basic / premium
    required_plan: Optional[str]
    category: str
    preview_colors: Dict[str, str]
    preview_layout: str
    popular: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


TEMPLATES: List[Template] = [
    Template(
        key="classic",
        name={"en": "Classic", "ar": "كلاسيك"},
        description={
            "en": "Traditional, professional layout perfect for any industry",
            "ar": "تصميم تقليدي احترافي مثالي لأي صناعة",
        },
        access_level="basic",
        required_plan=None,
        category="traditional",
        preview_colors={"primary": "#0d47a1", "secondary": "#f5f5f5", "accent": "#1976d2", "text": "#212121"},
        preview_layout="chronological",
    ),
    Template(
        key="modern",
        name={"en": "Modern", "ar": "حديث"},
        description={
            "en": "Clean, contemporary design with emphasis on readability",
            "ar": "تصميم نظيف ومعاصر يركز على سهولة القراءة",
        },
        access_level="basic",
        required_plan=None,
        category="modern",
        popular=True,
        preview_colors={"primary": "#1565c0", "secondary": "#ffffff", "accent": "#42a5f5", "text": "#424242"},
        preview_layout="side-by-side",
    ),
    Template(
        key="elegant",
        name={"en": "Elegant", "ar": "أنيق"},
        description={
            "en": "Sophisticated layout with subtle design elements",
            "ar": "تصميم راقي بعناصر تصميمية دقيقة",
        },
        access_level="basic",
        required_plan=None,
        category="traditional",
        preview_colors={"primary": "#1a237e", "secondary": "#fafafa", "accent": "#5c6bc0", "text": "#263238"},
        preview_layout="chronological",
    ),
    Template(
        key="creative",
        name={"en": "Creative", "ar": "إبداعي"},
        description={
            "en": "Bold and eye-catching design for creative professionals",
            "ar": "تصميم جريء وجذاب للمهنيين الإبداعيين",
        },
        access_level="premium",
        required_plan="one_time",
        category="creative",
        preview_colors={"primary": "#6a1b9a", "secondary": "#f3e5f5", "accent": "#ab47bc", "text": "#1a1a1a"},
        preview_layout="bold",
    ),
    Template(
        key="technical",
        name={"en": "Technical", "ar": "تقني"},
        description={
            "en": "Structured layout optimized for technical and engineering roles",
            "ar": "تصميم منظم محسّن للوظائف التقنية والهندسية",
        },
        access_level="premium",
        required_plan="flex_pack",
        category="technical",
        preview_colors={"primary": "#004d40", "secondary": "#e0f2f1", "accent": "#26a69a", "text": "#263238"},
        preview_layout="side-by-side",
    ),
    Template(
        key="minimalist",
        name={"en": "Minimalist", "ar": "بسيط"},
        description={
            "en": "Clean, minimal design focusing on content over decoration",
            "ar": "تصميم نظيف وبسيط يركز على المحتوى بدلاً من الزخرفة",
        },
        access_level="premium",
        required_plan="flex_pack",
        category="minimal",
        popular=True,
        preview_colors={"primary": "#212121", "secondary": "#ffffff", "accent": "#757575", "text": "#212121"},
        preview_layout="minimal",
    ),
    Template(
        key="colorful",
        name={"en": "Colorful", "ar": "ملون"},
        description={
            "en": "Vibrant and colorful design perfect for marketing and design roles",
            "ar": "تصميم حيوي وملون مثالي لوظائف التسويق والتصميم",
        },
        access_level="premium",
        required_plan="annual_pass",
        category="creative",
        preview_colors={"primary": "#c62828", "secondary": "#ffebee", "accent": "#ef5350", "text": "#212121"},
        preview_layout="bold",
    ),
]

_BY_KEY: Dict[str, Template] = {t.key: t for t in TEMPLATES}


def get_template(key: str) -> Optional[Template]:
    return _BY_KEY.get(key)


def effective_plan_type(plan: Any, now: Optional[datetime] = None) -> str:
    """
    Plan type that currently applies: "free" when there is no plan or the
    plan's validity window has passed.
    """
    if plan is None:
        return "free"
    plan_type = getattr(plan, "plan_type", None) or "free"
    valid_until = getattr(plan, "valid_until", None)
    if valid_until is not None:
        now = now or datetime.utcnow()
        if valid_until < now:
            return "free"
    return plan_type


def has_template_access(template: Template, plan: Any, now: Optional[datetime] = None) -> bool:
    if template.access_level == "basic":
        return True

    plan_type = effective_plan_type(plan, now)
    if plan_type == "free":
        return False
    if not template.required_plan:
        return True

    user_level = PLAN_HIERARCHY.get(plan_type, 0)
    required_level = PLAN_HIERARCHY.get(template.required_plan, 0)
    return user_level >= required_level


def get_accessible_templates(plan: Any, now: Optional[datetime] = None) -> List[Template]:
    return [t for t in TEMPLATES if has_template_access(t, plan, now)]


def get_upgrade_message(template: Template, is_ar: bool) -> str:
    if not template.required_plan:
        return ""

    names = PLAN_NAMES.get(template.required_plan)
    plan_name = names["ar" if is_ar else "en"] if names else template.required_plan

    if is_ar:
        return f"قم بالترقية إلى {plan_name} لفتح هذا القالب"
    return f"Upgrade to {plan_name} to unlock this template"
