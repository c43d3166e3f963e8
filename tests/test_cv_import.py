import io
from types import SimpleNamespace

import fitz
import pytest
from docx import Document

from src.api.endpoints import imports as imports_endpoint
from src.importers.cv_file import (
    DOCX_MIME,
    CvImportError,
    detect_file_kind,
    import_cv_file,
    parse_cv_text,
)

ENGLISH_CV = """Mona Adel
Data Analyst
mona.adel@example.com | +20 100 123 4567
linkedin.com/in/mona-adel

Summary
Analyst with six years of experience.

Experience
Senior Analyst at Vodafone Egypt 2019-03 - Present
- Built dashboards
Analyst at CIB 2016 - 2019
- Reporting

Education
BSc Statistics, Cairo University 2010 - 2014

Skills
SQL, Python, Power BI
"""

ARABIC_CV = """أحمد علي
مهندس برمجيات
ahmed@example.com

الملخص
مهندس برمجيات يعمل على تطوير أنظمة الدفع الإلكتروني في مصر منذ سنوات

الخبرة
مطور لدى شركة فودافون 2018 - حتى الآن
تطوير واجهات برمجية

المهارات
بايثون، جافا
"""


def _docx_bytes(lines):
    doc = Document()
    for line in lines:
        doc.add_paragraph(line)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def _pdf_bytes(text):
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def test_detect_file_kind_prefers_mime_then_extension():
    assert detect_file_kind("cv.bin", "application/pdf") == "pdf"
    assert detect_file_kind("CV.DOCX", "application/octet-stream") == "docx"
    assert detect_file_kind("cv.doc", None) == "doc"
    assert detect_file_kind("cv.txt", "text/plain") is None


def test_parse_english_cv_text():
    cv = parse_cv_text(ENGLISH_CV)

    assert cv.full_name == "Mona Adel"
    assert cv.title == "Data Analyst"
    assert cv.contact.email == "mona.adel@example.com"
    assert cv.contact.phone == "+20 100 123 4567"
    assert cv.contact.website == "linkedin.com/in/mona-adel"
    assert cv.summary == "Analyst with six years of experience."
    assert cv.cv_language == "en"

    senior, analyst = cv.experience
    assert (senior.role, senior.company, senior.start_date, senior.end_date) == (
        "Senior Analyst",
        "Vodafone Egypt",
        "2019-03",
        None,
    )
    assert senior.description == "Built dashboards"
    assert (analyst.start_date, analyst.end_date) == ("2016-01", "2019-12")

    edu = cv.education[0]
    assert (edu.degree, edu.school) == ("BSc Statistics", "Cairo University")
    assert cv.skills == ["SQL", "Python", "Power BI"]


def test_parse_arabic_cv_text():
    cv = parse_cv_text(ARABIC_CV)

    assert cv.cv_language == "ar"
    assert cv.full_name == "أحمد علي"
    job = cv.experience[0]
    assert (job.role, job.company, job.start_date, job.end_date) == ("مطور", "شركة فودافون", "2018-01", None)
    assert cv.skills == ["بايثون", "جافا"]


def test_import_rejects_missing_unsupported_and_oversized():
    with pytest.raises(CvImportError):
        import_cv_file("cv.pdf", "application/pdf", None, 100)
    with pytest.raises(CvImportError):
        import_cv_file("cv.txt", "text/plain", b"hello", 100)
    with pytest.raises(CvImportError):
        import_cv_file("cv.pdf", "application/pdf", b"x" * 101, 100)


def test_import_rejects_unreadable_files():
    with pytest.raises(CvImportError, match="Could not read"):
        import_cv_file("cv.pdf", "application/pdf", b"not a pdf", 1024)
    with pytest.raises(CvImportError, match="Could not read"):
        import_cv_file("cv.docx", DOCX_MIME, b"not a zip archive", 1024)


def test_import_legacy_doc_is_not_parsed():
    result = import_cv_file("old.doc", "application/msword", b"\xd0\xcf\x11\xe0", 1024)
    assert result["success"] is False


def test_import_empty_docx_reports_no_text():
    result = import_cv_file("empty.docx", DOCX_MIME, _docx_bytes([]), 10 * 1024 * 1024)
    assert result["success"] is False


def test_cv_import_route_with_docx(client):
    data = _docx_bytes(ENGLISH_CV.splitlines())

    resp = client.post("/api/cv/import", files={"file": ("cv.docx", data, DOCX_MIME)})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["source"] == "cv_file"
    assert body["data"]["fullName"] == "Mona Adel"
    assert body["data"]["experience"][0]["company"] == "Vodafone Egypt"


def test_cv_import_route_with_pdf(client):
    data = _pdf_bytes("Mona Adel\nData Analyst\nmona.adel@example.com\n\nSkills\nSQL, Python")

    resp = client.post("/api/cv/import", files={"file": ("cv.pdf", data, "application/pdf")})

    assert resp.status_code == 200
    body = resp.json()
    assert body["data"]["fullName"] == "Mona Adel"
    assert body["data"]["contact"]["email"] == "mona.adel@example.com"
    assert body["data"]["skills"] == ["SQL", "Python"]


def test_cv_import_route_errors(client, monkeypatch):
    assert client.post("/api/cv/import").status_code == 400

    unsupported = client.post("/api/cv/import", files={"file": ("cv.txt", b"hello", "text/plain")})
    assert unsupported.status_code == 400

    monkeypatch.setattr(
        imports_endpoint,
        "get_app_config",
        lambda: SimpleNamespace(imports=SimpleNamespace(max_upload_bytes=10)),
    )
    too_big = client.post("/api/cv/import", files={"file": ("cv.pdf", b"%PDF-" + b"0" * 64, "application/pdf")})
    assert too_big.status_code == 400
    assert "too large" in too_big.json()["error"]

    corrupt = client.post("/api/cv/import", files={"file": ("cv.pdf", b"not a pdf", "application/pdf")})
    assert corrupt.status_code == 400
    assert corrupt.json()["error"].startswith("Could not read the file")
