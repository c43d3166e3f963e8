"""
LinkedIn data export parser.

Reads the JSON produced by LinkedIn's "Get a copy of your data" archive and
maps it onto the CV document schema. Export files mix PascalCase and camelCase
keys depending on when they were generated, so every lookup accepts both.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from src.cv.models import Contact, CvData, EducationItem, ExperienceItem

logger = logging.getLogger(__name__)

LINKEDIN_PROFILE_URL_RE = re.compile(r"^https?://(www\.)?linkedin\.com/in/[a-zA-Z0-9-]+/?$")

EXPORT_INSTRUCTIONS = {
    "instructions": "To import from LinkedIn using JSON export:",
    "steps": [
        "1. Go to LinkedIn Settings & Privacy",
        "2. Click 'Get a copy of your data'",
        "3. Select 'Want something in particular? Select the data files you're most interested in.'",
        "4. Check 'Profile' and 'Positions', then request archive",
        "5. Download and extract the ZIP file when LinkedIn emails it",
        "6. Upload the Profile.json file here",
    ],
}

_YEAR_MONTH_RE = re.compile(r"^(\d{4})(?:-(\d{1,2}))?$")
_MONTHS = {
    name: index
    for index, names in enumerate(
        [
            ("jan", "january"), ("feb", "february"), ("mar", "march"), ("apr", "april"),
            ("may",), ("jun", "june"), ("jul", "july"), ("aug", "august"),
            ("sep", "sept", "september"), ("oct", "october"), ("nov", "november"), ("dec", "december"),
        ],
        start=1,
    )
    for name in names
}


@dataclass
class LinkedInPosition:
    title: Optional[str] = None
    company_name: Optional[str] = None
    start_date: Any = None
    end_date: Any = None
    description: Optional[str] = None
    location: Optional[str] = None


@dataclass
class LinkedInEducation:
    school_name: Optional[str] = None
    degree_name: Optional[str] = None
    field_of_study: Optional[str] = None
    start_date: Any = None
    end_date: Any = None


@dataclass
class LinkedInLanguage:
    name: Optional[str] = None
    proficiency: Optional[str] = None


@dataclass
class LinkedInCertification:
    name: Optional[str] = None
    authority: Optional[str] = None
    start_date: Any = None
    end_date: Any = None


@dataclass
class LinkedInData:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    headline: Optional[str] = None
    summary: Optional[str] = None
    location: Optional[str] = None
    email: Optional[str] = None
    profile_url: Optional[str] = None
    positions: List[LinkedInPosition] = field(default_factory=list)
    educations: List[LinkedInEducation] = field(default_factory=list)
    skills: List[str] = field(default_factory=list)
    languages: List[LinkedInLanguage] = field(default_factory=list)
    certifications: List[LinkedInCertification] = field(default_factory=list)


def is_linkedin_profile_url(url: str) -> bool:
    return bool(LINKEDIN_PROFILE_URL_RE.match((url or "").strip()))


def _pick(record: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _records(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def parse_linkedin_export(json_data: Dict[str, Any]) -> LinkedInData:
    data = LinkedInData()
    if not isinstance(json_data, dict):
        return data

    profile = json_data.get("Profile")
    if isinstance(profile, list):
        profile = profile[0] if profile and isinstance(profile[0], dict) else None
    if isinstance(profile, dict):
        data.first_name = _pick(profile, "FirstName", "firstName")
        data.last_name = _pick(profile, "LastName", "lastName")
        if profile.get("FirstName") and profile.get("LastName"):
            data.full_name = f"{profile['FirstName']} {profile['LastName']}"
        else:
            data.full_name = _pick(profile, "Name", "fullName")
        data.headline = _pick(profile, "Headline", "headline", "ProfessionalHeadline")
        data.summary = _pick(profile, "Summary", "summary", "About", "about")
        data.location = _pick(profile, "Location", "location")
        data.email = _pick(profile, "EmailAddress", "email")
        data.profile_url = _pick(profile, "ProfileUrl", "profileURL")

    data.positions = [
        LinkedInPosition(
            title=_pick(pos, "Title", "title"),
            company_name=_pick(pos, "CompanyName", "companyName"),
            start_date=_pick(pos, "StartDate", "startDate"),
            end_date=_pick(pos, "EndDate", "endDate"),
            description=_pick(pos, "Description", "description"),
            location=_pick(pos, "Location", "location"),
        )
        for pos in _records(json_data.get("Positions"))
    ]

    data.educations = [
        LinkedInEducation(
            school_name=_pick(edu, "SchoolName", "schoolName"),
            degree_name=_pick(edu, "DegreeName", "degreeName"),
            field_of_study=_pick(edu, "FieldOfStudy", "fieldOfStudy"),
            start_date=_pick(edu, "StartDate", "startDate"),
            end_date=_pick(edu, "EndDate", "endDate"),
        )
        for edu in _records(json_data.get("Education"))
    ]

    data.skills = [
        str(_pick(skill, "Name", "name") or "")
        for skill in _records(json_data.get("Skills"))
    ]

    data.languages = [
        LinkedInLanguage(name=_pick(lang, "Name", "name"), proficiency=_pick(lang, "Proficiency", "proficiency"))
        for lang in _records(json_data.get("Languages"))
    ]

    data.certifications = [
        LinkedInCertification(
            name=_pick(cert, "Name", "name"),
            authority=_pick(cert, "Authority", "authority"),
            start_date=_pick(cert, "StartDate", "startDate"),
            end_date=_pick(cert, "EndDate", "endDate"),
        )
        for cert in _records(json_data.get("Certifications"))
    ]

    logger.info(
        "Parsed LinkedIn export: %d positions, %d educations, %d skills",
        len(data.positions),
        len(data.educations),
        len(data.skills),
    )
    return data


def _as_year(value: Any) -> Optional[int]:
    text = str(value or "").strip()
    return int(text) if re.fullmatch(r"\d{4}", text) else None


def _as_month(value: Any) -> Optional[int]:
    """Month number from 3, "03", "Mar" or "March"; None when unrecognised."""
    text = str(value or "").strip().lower()
    if text.isdigit():
        month = int(text)
        return month if 1 <= month <= 12 else None
    return _MONTHS.get(text.rstrip("."))


def _year_month(value: Any, default_month: int, keep_month: bool = True) -> str:
    """``{"year": 2020, "month": 3}`` or ``"2020-03"`` -> ``"2020-03"``; empty when there is no year."""
    year: Optional[int] = None
    month: Optional[int] = None
    if isinstance(value, dict):
        year = _as_year(value.get("year") or value.get("Year"))
        month = _as_month(value.get("month") or value.get("Month"))
    elif isinstance(value, (str, int)):
        match = _YEAR_MONTH_RE.match(str(value).strip())
        if match:
            year = int(match.group(1))
            month = _as_month(match.group(2))

    if not year:
        return ""
    if not keep_month or not month:
        month = default_month
    return f"{year}-{month:02d}"


def map_linkedin_to_cv_data(linkedin: LinkedInData, existing: Optional[Union[CvData, Dict[str, Any]]] = None) -> CvData:
    if isinstance(existing, dict):
        existing = CvData.model_validate(existing)
    base = existing or CvData()

    cv = CvData(
        full_name=linkedin.full_name or linkedin.first_name or base.full_name or "",
        title=linkedin.headline or base.title or "",
        summary=linkedin.summary or base.summary or "",
        contact=Contact(
            email=linkedin.email or base.contact.email or "",
            phone=base.contact.phone or "",
            location=linkedin.location or base.contact.location or "",
            website=linkedin.profile_url or base.contact.website or "",
        ),
        template_key=base.template_key or "classic",
        cv_language=base.cv_language,
    )

    if linkedin.positions:
        cv.experience = [
            ExperienceItem(
                company=pos.company_name or "",
                role=pos.title or "",
                start_date=_year_month(pos.start_date, 1),
                end_date=_year_month(pos.end_date, 12) or None,
                description=pos.description or "",
            )
            for pos in linkedin.positions
        ]
    else:
        cv.experience = list(base.experience)

    if linkedin.educations:
        cv.education = []
        for edu in linkedin.educations:
            degree = " - ".join(p for p in (edu.degree_name, edu.field_of_study) if p)
            cv.education.append(
                EducationItem(
                    school=edu.school_name or "",
                    degree=degree,
                    start_date=_year_month(edu.start_date, 1, keep_month=False),
                    end_date=_year_month(edu.end_date, 12, keep_month=False) or None,
                )
            )
    else:
        cv.education = list(base.education)

    skills = [s for s in linkedin.skills if s]
    cv.skills = skills if linkedin.skills else list(base.skills)

    if linkedin.languages:
        cv.languages = [
            f"{lang.name or ''}{f' ({lang.proficiency})' if lang.proficiency else ''}"
            for lang in linkedin.languages
        ]
        cv.languages = [lang for lang in cv.languages if lang]
    else:
        cv.languages = list(base.languages)

    if linkedin.certifications:
        cv.certifications = [
            f"{cert.name or ''}{f' - {cert.authority}' if cert.authority else ''}"
            for cert in linkedin.certifications
        ]
        cv.certifications = [cert for cert in cv.certifications if cert]
    else:
        cv.certifications = list(base.certifications)

    cv.projects = list(base.projects)
    return cv
