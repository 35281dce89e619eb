"""
Case Summary Exporter
=====================

Renders a CaseDraft into a one-document PDF summary with reportlab.
"""

import re
from datetime import date
from io import BytesIO
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .schemas import CaseDraft

DEFAULT_ORGANIZATION = "Legal Services"
DEFAULT_BRAND_COLOR = "#334e68"

DISCLAIMER = (
    "This summary was prepared from information provided during an intake conversation. "
    "It is not legal advice and has not been reviewed by an attorney."
)


def _slug(value: str) -> str:
    return re.sub(r'[^a-z0-9\-]+', '', re.sub(r'\s+', '-', value.strip().lower()))


def generate_filename(draft: CaseDraft, client_name: Optional[str] = None, on: Optional[date] = None) -> str:
    """case-summary-<matter>[-<client>]-<YYYY-MM-DD>.pdf"""
    day = (on or date.today()).isoformat()
    matter = _slug(draft.matter_type) or "matter"
    client = f"-{_slug(client_name)}" if client_name and _slug(client_name) else ""
    return f"case-summary-{matter}{client}-{day}.pdf"


def _brand_color(value: Optional[str]) -> colors.Color:
    if value and re.fullmatch(r'#[0-9a-fA-F]{6}', value):
        return colors.HexColor(value)
    return colors.HexColor(DEFAULT_BRAND_COLOR)


def build_case_summary_pdf(
    draft: CaseDraft,
    client_name: Optional[str] = None,
    organization_name: str = DEFAULT_ORGANIZATION,
    brand_color: str = DEFAULT_BRAND_COLOR,
) -> bytes:
    """
    Render a case draft to PDF bytes.

    Args:
        draft: Case draft to render
        client_name: Client shown in the header, if known
        organization_name: Team name for the header band
        brand_color: Hex color for the header band and headings

    Returns:
        PDF file content
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=LETTER)
    c.setTitle(f"Case Summary - {draft.matter_type}")

    width, height = LETTER
    margin = 54
    text_width = width - 2 * margin
    accent = _brand_color(brand_color)

    # Header band
    c.setFillColor(accent)
    c.rect(0, height - 80, width, 80, stroke=0, fill=1)
    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 18)
    c.drawString(margin, height - 45, organization_name or DEFAULT_ORGANIZATION)
    c.setFont("Helvetica", 11)
    c.drawString(margin, height - 65, "Case Summary")

    y = height - 110

    def new_page_if_needed(needed: float = 20):
        nonlocal y
        if y - needed < margin:
            c.showPage()
            y = height - margin

    def heading(text: str):
        nonlocal y
        new_page_if_needed(30)
        y -= 6
        c.setFillColor(accent)
        c.setFont("Helvetica-Bold", 13)
        c.drawString(margin, y, text)
        y -= 18

    def paragraph(text: str, size: int = 11, indent: float = 0):
        nonlocal y
        c.setFillColor(colors.black)
        c.setFont("Helvetica", size)
        for line in simpleSplit(text, "Helvetica", size, text_width - indent):
            new_page_if_needed(size + 4)
            c.drawString(margin + indent, y, line)
            y -= size + 4

    def bullets(items: List[str]):
        for item in items:
            paragraph(f"• {item}", indent=10)

    heading("Overview")
    overview = [
        ("Client", client_name or "Not provided"),
        ("Matter Type", draft.matter_type),
        ("Jurisdiction", draft.jurisdiction or "Unknown"),
        ("Urgency", draft.urgency.value.title()),
        ("Status", draft.status.value.title()),
        ("Prepared", date.today().isoformat()),
    ]
    for label, value in overview:
        paragraph(f"{label}: {value}")

    heading("Key Facts")
    if draft.key_facts:
        for idx, fact in enumerate(draft.key_facts, start=1):
            paragraph(f"{idx}. {fact}", indent=10)
    else:
        paragraph("No key facts recorded yet.")

    if draft.timeline:
        heading("Timeline")
        paragraph(draft.timeline)

    if draft.parties:
        heading("Parties")
        bullets([
            " - ".join(part for part in (p.role, p.name, p.relationship) if part)
            for p in draft.parties
        ])

    if draft.documents:
        heading("Documents")
        bullets(draft.documents)

    if draft.evidence:
        heading("Evidence")
        bullets(draft.evidence)

    y -= 10
    paragraph(DISCLAIMER, size=8)

    c.showPage()
    c.save()
    return buf.getvalue()
