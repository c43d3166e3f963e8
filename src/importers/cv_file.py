"""
CV file import (PDF / DOCX).

Extracts plain text from an uploaded CV and maps it onto the CV schema with
simple heuristics: contact details by pattern, sections by English or Arabic
headings, and dated entries for experience and education.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from typing import Any, Dict, List, Optional, Tuple

import fitz  # PyMuPDF
from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from langdetect import DetectorFactory, LangDetectException, detect

from src.cv.models import Contact, CvData, EducationItem, ExperienceItem

logger = logging.getLogger(__name__)

DetectorFactory.seed = 0

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_MIME = "application/msword"

ALLOWED_MIME_TYPES = {PDF_MIME: "pdf", DOCX_MIME: "docx", DOC_MIME: "doc"}
ALLOWED_EXTENSIONS = {".pdf": "pdf", ".docx": "docx", ".doc": "doc"}

SECTION_HEADINGS: Dict[str, List[str]] = {
    "summary": [
        "summary", "professional summary", "profile", "about", "about me", "objective", "career objective",
        "الملخص", "الملخص المهني", "نبذة", "نبذة عني", "الهدف الوظيفي",
    ],
    "experience": [
        "experience", "work experience", "professional experience", "employment history", "work history",
        "الخبرة", "الخبرات", "الخبرة المهنية", "الخبرة العملية", "الخبرات العملية",
    ],
    "education": [
        "education", "academic background", "qualifications",
        "التعليم", "المؤهلات", "المؤهل العلمي", "المؤهلات العلمية",
    ],
    "skills": ["skills", "technical skills", "core skills", "key skills", "المهارات", "المهارات التقنية"],
    "languages": ["languages", "اللغات"],
    "certifications": [
        "certifications", "certificates", "licenses & certifications", "courses", "الشهادات", "الدورات",
    ],
    "projects": ["projects", "المشاريع"],
}

_HEADING_LOOKUP = {heading: section for section, headings in SECTION_HEADINGS.items() for heading in headings}

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_PHONE_RE = re.compile(r"\+?\d[\d\s().-]{7,}\d")
_URL_RE = re.compile(r"(?:https?://|www\.)\S+|(?:[\w-]+\.)?linkedin\.com/in/[\w-]+/?", re.IGNORECASE)
_DATE_RANGE_RE = re.compile(
    r"((?:19|20)\d{2})(?:[-/.](\d{1,2}))?\s*(?:-|–|—|to|until|إلى|الى)\s*"
    r"(?:((?:19|20)\d{2})(?:[-/.](\d{1,2}))?|(present|current|now|حتى الآن|الآن|حاليا|حاليًا))",
    re.IGNORECASE,
)
_LIST_SPLIT_RE = re.compile(r"\s*[,;•·|،]\s*")
_BULLET_RE = re.compile(r"^[\-*•·▪●]\s*")
_ENTRY_SPLIT_RE = re.compile(r"\s+(?:at|@|-|–|\||لدى|في)\s+|\s*[|,،]\s*", re.IGNORECASE)
_SCHOOL_HINT_RE = re.compile(r"university|college|institute|school|academy|جامعة|كلية|معهد|مدرسة|أكاديمية", re.IGNORECASE)


class CvImportError(ValueError):
    """Upload rejected: missing, unsupported, too large or unreadable."""


def detect_file_kind(filename: Optional[str], content_type: Optional[str]) -> Optional[str]:
    kind = ALLOWED_MIME_TYPES.get((content_type or "").split(";")[0].strip().lower())
    if kind:
        return kind
    name = (filename or "").lower()
    for ext, ext_kind in ALLOWED_EXTENSIONS.items():
        if name.endswith(ext):
            return ext_kind
    return None


def extract_text_from_pdf(data: bytes) -> str:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except RuntimeError as exc:  # fitz.FileDataError is a RuntimeError
        raise CvImportError("Could not read the file. Please upload a valid PDF.") from exc
    try:
        return "\n".join(page.get_text() for page in doc).strip()
    finally:
        doc.close()


def extract_text_from_docx(data: bytes) -> str:
    try:
        doc = Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise CvImportError("Could not read the file. Please upload a valid DOCX document.") from exc
    lines = [para.text for para in doc.paragraphs]
    # Two-column CV templates keep most of their content in tables
    for table in doc.tables:
        for row in table.rows:
            for cell in row.cells:
                lines.append(cell.text)
    return "\n".join(lines).strip()


def _clean_lines(text: str) -> List[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def _heading_for(line: str) -> Optional[str]:
    key = line.strip().strip(":：-_=*#").strip().lower()
    return _HEADING_LOOKUP.get(key)


def _is_contact_line(line: str) -> bool:
    return bool(_EMAIL_RE.search(line) or _URL_RE.search(line) or _PHONE_RE.fullmatch(line.strip()))


def _split_sections(lines: List[str]) -> Tuple[List[str], Dict[str, List[str]]]:
    header: List[str] = []
    sections: Dict[str, List[str]] = {}
    current: Optional[str] = None
    for line in lines:
        section = _heading_for(line)
        if section:
            current = section
            sections.setdefault(section, [])
            continue
        if current is None:
            header.append(line)
        else:
            sections[current].append(line)
    return header, sections


def _split_list(lines: List[str]) -> List[str]:
    items: List[str] = []
    for line in lines:
        for part in _LIST_SPLIT_RE.split(_BULLET_RE.sub("", line)):
            part = part.strip()
            if part and part not in items:
                items.append(part)
    return items


def _year_month(year: Optional[str], month: Optional[str], default_month: int) -> str:
    if not year:
        return ""
    m = int(month) if month and 1 <= int(month) <= 12 else default_month
    return f"{year}-{m:02d}"


def _dated_entries(lines: List[str]) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []
    preamble: List[str] = []
    for line in lines:
        match = _DATE_RANGE_RE.search(line)
        if not match:
            target = entries[-1]["body"] if entries else preamble
            target.append(_BULLET_RE.sub("", line))
            continue

        header = (line[: match.start()] + " " + line[match.end():]).strip(" ,|-–—()[]\t")
        if not header:
            source = entries[-1]["body"] if entries else preamble
            if source:
                header = source.pop()

        start_year, start_month, end_year, end_month, current = match.groups()
        entries.append(
            {
                "header": header,
                "start": _year_month(start_year, start_month, 1),
                "end": None if current else _year_month(end_year, end_month, 12),
                "body": [],
            }
        )
    return entries


def _split_header(header: str) -> Tuple[str, str]:
    parts = [p.strip() for p in _ENTRY_SPLIT_RE.split(header, maxsplit=1) if p and p.strip()]
    if len(parts) == 2:
        return parts[0], parts[1]
    return header.strip(), ""


def _experience(lines: List[str]) -> List[ExperienceItem]:
    items: List[ExperienceItem] = []
    for entry in _dated_entries(lines):
        role, company = _split_header(entry["header"])
        items.append(
            ExperienceItem(
                role=role,
                company=company,
                start_date=entry["start"],
                end_date=entry["end"],
                description="\n".join(entry["body"]) or None,
            )
        )
    return items


def _education(lines: List[str]) -> List[EducationItem]:
    items: List[EducationItem] = []
    for entry in _dated_entries(lines):
        first, second = _split_header(entry["header"])
        if second and _SCHOOL_HINT_RE.search(first) and not _SCHOOL_HINT_RE.search(second):
            degree, school = second, first
        elif second:
            degree, school = first, second
        elif _SCHOOL_HINT_RE.search(first):
            degree, school = (entry["body"][0] if entry["body"] else ""), first
        else:
            degree, school = first, (entry["body"][0] if entry["body"] else "")
        items.append(EducationItem(school=school, degree=degree, start_date=entry["start"], end_date=entry["end"]))
    return items


def detect_cv_language(text: str) -> str:
    if not text.strip():
        return "en"
    try:
        return "ar" if detect(text) == "ar" else "en"
    except LangDetectException:
        return "en"


def parse_cv_text(text: str) -> CvData:
    lines = _clean_lines(text)
    header, sections = _split_sections(lines)

    email = _EMAIL_RE.search(text or "")
    phone = _PHONE_RE.search(_EMAIL_RE.sub(" ", text or ""))
    url = _URL_RE.search(text or "")

    plain_header = [line for line in header if not _is_contact_line(line)]
    full_name = plain_header[0] if plain_header and len(plain_header[0]) <= 60 else ""
    title = plain_header[1] if len(plain_header) > 1 and len(plain_header[1]) <= 80 else ""

    cv = CvData(
        full_name=full_name,
        title=title,
        summary=" ".join(sections.get("summary", [])),
        contact=Contact(
            email=email.group(0) if email else "",
            phone=phone.group(0).strip() if phone else "",
            website=url.group(0) if url else "",
        ),
        experience=_experience(sections.get("experience", [])),
        education=_education(sections.get("education", [])),
        skills=_split_list(sections.get("skills", [])),
        languages=_split_list(sections.get("languages", [])),
        certifications=[_BULLET_RE.sub("", line) for line in sections.get("certifications", [])],
        cv_language=detect_cv_language(text or ""),
    )
    logger.info(
        "Parsed CV text: %d experience, %d education, %d skills (language=%s)",
        len(cv.experience),
        len(cv.education),
        len(cv.skills),
        cv.cv_language,
    )
    return cv


def import_cv_file(
    filename: Optional[str],
    content_type: Optional[str],
    data: Optional[bytes],
    max_bytes: int,
) -> Dict[str, Any]:
    """Validate an upload and return the JSON body for the import route."""
    if data is None:
        raise CvImportError("No file provided.")

    kind = detect_file_kind(filename, content_type)
    if kind is None:
        raise CvImportError("Unsupported file format. Please upload PDF, DOCX, or DOC.")
    if len(data) > max_bytes:
        raise CvImportError(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")

    if kind == "doc":
        return {
            "success": False,
            "error": "Legacy .doc files cannot be parsed.",
            "message": "Please save your CV as PDF or DOCX, or use LinkedIn import or manual entry.",
        }

    text = extract_text_from_pdf(data) if kind == "pdf" else extract_text_from_docx(data)
    if not text:
        return {
            "success": False,
            "error": "No text could be extracted from this file.",
            "message": "The file looks empty or scanned. Please upload a text-based PDF or DOCX, or enter your information manually.",
        }

    cv = parse_cv_text(text)
    return {
        "success": True,
        "data": cv.to_wire(),
        "source": "cv_file",
        "message": "CV imported successfully. Please review the extracted information.",
    }
