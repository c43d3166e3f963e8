"""
Bilingual CV guidance, validation helpers and section labels.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

CV_TIPS: Dict[str, Dict[str, str]] = {
    "summary": {
        "en": "Write 2-4 sentences highlighting your key strengths and career goals. Use action verbs and quantify achievements when possible.",
        "ar": "اكتب 2-4 جملة تسلط الضوء على نقاط قوتك الرئيسية وأهدافك المهنية. استخدم أفعال العمل وقم بقياس الإنجازات عند الإمكان.",
    },
    "experienceDescription": {
        "en": "Use bullet points with action verbs (e.g., 'Developed', 'Managed', 'Increased'). Quantify results and focus on achievements, not just duties.",
        "ar": "استخدم نقاط بفعل العمل (مثل 'طورت'، 'أدرت'، 'زادت'). قم بقياس النتائج وركز على الإنجازات وليس فقط الواجبات.",
    },
    "skills": {
        "en": "List technical skills, tools and soft skills. Be specific (e.g., 'JavaScript' not 'Programming').",
        "ar": "اذكر المهارات التقنية والأدوات والمهارات الشخصية. كن محدداً (مثل 'JavaScript' وليس 'برمجة').",
    },
    "email": {
        "en": "Use a professional email address. Avoid personal or informal addresses.",
        "ar": "استخدم عنوان بريد إلكتروني احترافي. تجنب العناوين الشخصية أو غير الرسمية.",
    },
    "date": {
        "en": "Use format YYYY-MM (e.g., 2020-01). For current positions, leave end date empty.",
        "ar": "استخدم التنسيق YYYY-MM (مثل 2020-01). للوظائف الحالية، اترك تاريخ النهاية فارغاً.",
    },
}

FIELD_HELP: Dict[str, Dict[str, str]] = {
    "fullName": {
        "en": "Your complete legal name as it appears on official documents.",
        "ar": "اسمك الكامل القانوني كما يظهر في المستندات الرسمية.",
    },
    "title": {
        "en": "Your current job title or desired position (e.g., 'Senior Software Engineer').",
        "ar": "المسمى الوظيفي الحالي أو المنصب المرغوب (مثل 'مهندس برمجيات أول').",
    },
    "summary": {
        "en": "A brief professional summary (2-4 sentences) highlighting your experience and goals.",
        "ar": "ملخص مهني موجز (2-4 جمل) يسلط الضوء على خبرتك وأهدافك.",
    },
    "company": {
        "en": "The full name of the company or organization where you worked.",
        "ar": "الاسم الكامل للشركة أو المؤسسة التي عملت بها.",
    },
    "role": {
        "en": "Your job title at this position.",
        "ar": "المسمى الوظيفي في هذه الوظيفة.",
    },
    "description": {
        "en": "Describe your key responsibilities and achievements. Use bullet points and action verbs.",
        "ar": "اشرح مسؤولياتك الرئيسية وإنجازاتك. استخدم نقاط وأفعال العمل.",
    },
}

_SECTION_HEADERS: Dict[str, Dict[str, str]] = {
    "en": {
        "summary": "Professional Summary",
        "experience": "Work Experience",
        "projects": "Projects",
        "education": "Education",
        "skills": "Skills",
        "languages": "Languages",
        "certifications": "Certifications",
        "present": "Present",
    },
    "ar": {
        "summary": "الملخص المهني",
        "experience": "الخبرة المهنية",
        "projects": "المشاريع",
        "education": "التعليم",
        "skills": "المهارات",
        "languages": "اللغات",
        "certifications": "الشهادات",
        "present": "حتى الآن",
    },
}


def has_minimum_data_for_ai(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (valid, missing) for the data the enhancer needs to do useful work."""
    missing: List[str] = []

    full_name = data.get("fullName") if isinstance(data, dict) else None
    if not isinstance(full_name, str) or len(full_name.strip()) < 2:
        missing.append("Full Name / الاسم الكامل")

    experience = data.get("experience") if isinstance(data, dict) else None
    if not experience:
        missing.append("At least one work experience / خبرة عمل واحدة على الأقل")

    return not missing, missing


def format_validation_message(message: str, locale: str = "en") -> str:
    """Pick one half of a bilingual "English / Arabic" message."""
    if not message or " / " not in message:
        return message
    en, ar = message.split(" / ", 1)
    if locale == "ar":
        return ar or en
    return en or ar


def section_headers(cv_language: str) -> Dict[str, str]:
    return dict(_SECTION_HEADERS["ar" if cv_language == "ar" else "en"])
