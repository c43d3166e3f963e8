"""
Server-side CV rendering to A4 PDF with reportlab.

Arabic CVs are shaped with arabic-reshaper, reordered with python-bidi and
drawn right-aligned. Arabic glyphs need a TTF font; set PDF_ARABIC_FONT_PATH
or install one of the fonts listed in ARABIC_FONT_CANDIDATES.
"""

from __future__ import annotations

import logging
import os
import re
from functools import lru_cache
from io import BytesIO
from typing import List, Optional

import arabic_reshaper
from bidi.algorithm import get_display
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from src.cv.helpers import section_headers
from src.cv.models import CvData
from src.cv.templates import Template

logger = logging.getLogger(__name__)

# ===============================
# Typography & spacing (A4 tuned)
# ===============================
PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 18 * mm
NAME_SIZE = 20
TITLE_SIZE = 13
HEADING_SIZE = 13
TEXT_SIZE = 10.5
SMALL_SIZE = 9
LEADING = 14
GAP_AFTER_HEADING = 8
GAP_BETWEEN_ITEMS = 6
GAP_BETWEEN_SECTIONS = 12

LATIN_FONT = "Helvetica"
LATIN_FONT_BOLD = "Helvetica-Bold"
MUTED = colors.HexColor("#6C757D")

WATERMARK_TEXT = "Created with SeraPro CV"

ARABIC_FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/noto/NotoNaskhArabic-Regular.ttf",
    "/usr/share/fonts/truetype/noto/NotoSansArabic-Regular.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
]


def rtl(text: str) -> str:
    if not text:
        return ""
    return get_display(arabic_reshaper.reshape(text))


def register_font(path: str, name: str) -> Optional[str]:
    try:
        pdfmetrics.registerFont(TTFont(name, path))
        return name
    except Exception as e:  # reportlab raises TTFError or IOError depending on version
        logger.warning("Could not register font %s from %s: %s", name, path, e)
        return None


@lru_cache(maxsize=1)
def arabic_font() -> str:
    configured = os.getenv("PDF_ARABIC_FONT_PATH")
    for path in ([configured] if configured else []) + ARABIC_FONT_CANDIDATES:
        if path and os.path.exists(path):
            name = register_font(path, "CvArabic")
            if name:
                return name
    logger.warning("No Arabic-capable font found; Arabic text will not render correctly")
    return LATIN_FONT


def pdf_filename(full_name: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", full_name or "").strip("_")
    return f"{slug or 'cv'}.pdf"


class CvPdfRenderer:
    def __init__(self, cv: CvData, template: Template, watermark: bool = False) -> None:
        self.cv = cv
        self.template = template
        self.watermark = watermark
        self.is_rtl = cv.cv_language == "ar"
        self.labels = section_headers(cv.cv_language)

        palette = template.preview_colors
        self.primary = colors.HexColor(palette.get("primary", "#0d47a1"))
        self.accent = colors.HexColor(palette.get("accent", "#1976d2"))
        self.text_color = colors.HexColor(palette.get("text", "#212121"))

        if self.is_rtl:
            self.font = self.font_bold = arabic_font()
        else:
            self.font, self.font_bold = LATIN_FONT, LATIN_FONT_BOLD

        self.buffer = BytesIO()
        self.c = canvas.Canvas(self.buffer, pagesize=A4)
        self.c.setTitle(cv.full_name or "CV")
        self.y = PAGE_HEIGHT - MARGIN
        self.content_width = PAGE_WIDTH - 2 * MARGIN

    # ---------------- page handling ----------------
    def _draw_watermark(self) -> None:
        if not self.watermark:
            return
        c = self.c
        c.saveState()
        c.setFont(LATIN_FONT_BOLD, 40)
        c.setFillColor(colors.lightgrey)
        c.setFillAlpha(0.35)
        c.translate(PAGE_WIDTH / 2, PAGE_HEIGHT / 2)
        c.rotate(45)
        c.drawCentredString(0, 0, WATERMARK_TEXT)
        c.restoreState()

    def _ensure_space(self, needed: float) -> None:
        if self.y - needed >= MARGIN:
            return
        self.c.showPage()
        self._draw_watermark()
        self.y = PAGE_HEIGHT - MARGIN

    # ---------------- text primitives ----------------
    def _line(self, text: str, font: str, size: float, color) -> None:
        self._ensure_space(LEADING)
        c = self.c
        c.setFont(font, size)
        c.setFillColor(color)
        if self.is_rtl:
            c.drawRightString(PAGE_WIDTH - MARGIN, self.y, rtl(text))
        else:
            c.drawString(MARGIN, self.y, text)
        self.y -= max(LEADING, size + 4)

    def _paragraph(self, text: str, font: Optional[str] = None, size: float = TEXT_SIZE, color=None) -> None:
        font = font or self.font
        color = color or self.text_color
        for raw in (text or "").splitlines():
            raw = raw.strip()
            if not raw:
                continue
            # Wrap on logical order, shape each visual line afterwards
            for part in simpleSplit(raw, font, size, self.content_width):
                self._line(part, font, size, color)

    def _heading(self, label: str) -> None:
        self._ensure_space(HEADING_SIZE + GAP_AFTER_HEADING + LEADING * 2)
        self.y -= GAP_BETWEEN_SECTIONS / 2
        self._line(label, self.font_bold, HEADING_SIZE, self.primary)
        c = self.c
        c.setStrokeColor(self.accent)
        c.setLineWidth(0.8)
        rule_y = self.y + LEADING - 4
        c.line(MARGIN, rule_y, PAGE_WIDTH - MARGIN, rule_y)
        self.y -= GAP_AFTER_HEADING / 2

    def _date_range(self, start: str, end: Optional[str]) -> str:
        if not start and not end:
            return ""
        return f"{start or ''} - {end or self.labels['present']}"

    # ---------------- sections ----------------
    def _header(self) -> None:
        cv = self.cv
        self._line(cv.full_name or "", self.font_bold, NAME_SIZE, self.primary)
        if cv.title:
            self._line(cv.title, self.font, TITLE_SIZE, self.text_color)
        contact = [v for v in (cv.contact.email, cv.contact.phone, cv.contact.location, cv.contact.website) if v]
        if contact:
            self._paragraph(" | ".join(contact), size=SMALL_SIZE, color=MUTED)
        self.y -= GAP_BETWEEN_ITEMS

    def _experience(self) -> None:
        if not self.cv.experience:
            return
        self._heading(self.labels["experience"])
        for item in self.cv.experience:
            title = " - ".join(p for p in (item.role, item.company) if p)
            self._paragraph(title, font=self.font_bold)
            dates = self._date_range(item.start_date, item.end_date)
            if dates:
                self._line(dates, self.font, SMALL_SIZE, MUTED)
            if item.description:
                self._paragraph(item.description)
            self.y -= GAP_BETWEEN_ITEMS

    def _projects(self) -> None:
        if not self.cv.projects:
            return
        self._heading(self.labels["projects"])
        for item in self.cv.projects:
            self._paragraph(item.title, font=self.font_bold)
            dates = self._date_range(item.start_date, item.end_date)
            if dates:
                self._line(dates, self.font, SMALL_SIZE, MUTED)
            if item.description:
                self._paragraph(item.description)
            self.y -= GAP_BETWEEN_ITEMS

    def _education(self) -> None:
        if not self.cv.education:
            return
        self._heading(self.labels["education"])
        for item in self.cv.education:
            title = " - ".join(p for p in (item.degree, item.school) if p)
            self._paragraph(title, font=self.font_bold)
            dates = self._date_range(item.start_date, item.end_date)
            if dates:
                self._line(dates, self.font, SMALL_SIZE, MUTED)
            self.y -= GAP_BETWEEN_ITEMS

    def _list_section(self, key: str, values: List[str], inline: bool) -> None:
        values = [v for v in values if v]
        if not values:
            return
        self._heading(self.labels[key])
        if inline:
            self._paragraph(" • ".join(values))
        else:
            for value in values:
                self._paragraph(f"• {value}")

    def render(self) -> bytes:
        self._draw_watermark()
        self._header()
        if self.cv.summary:
            self._heading(self.labels["summary"])
            self._paragraph(self.cv.summary)
        self._experience()
        self._projects()
        self._education()
        self._list_section("skills", self.cv.skills, inline=True)
        self._list_section("languages", self.cv.languages, inline=True)
        self._list_section("certifications", self.cv.certifications, inline=False)
        self.c.save()
        return self.buffer.getvalue()


def render_cv_pdf(cv: CvData, template: Template, watermark: bool = False) -> bytes:
    return CvPdfRenderer(cv, template, watermark=watermark).render()
