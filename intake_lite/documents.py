"""
Document Text Extraction
========================

Turns an uploaded file into plain text for analysis.

Supports:
- Plain text (encoding detected with chardet)
- Text-based PDFs (pypdf)
- DOCX (python-docx)

Images and scanned PDFs yield no text; the analyzer reports them as
unreadable rather than guessing.
"""

import io
import logging
from typing import Optional

import chardet
from docx import Document
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .errors import CapabilityError

logger = logging.getLogger(__name__)

TEXT_MIMES = {"text/plain", "text/csv", "text/markdown", "text/x-markdown", "application/json"}
PDF_MIMES = {"application/pdf", "application/x-pdf"}
DOCX_MIMES = {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}


def normalize_text(text: str) -> str:
    """Collapse whitespace and drop zero-width characters"""
    if not text:
        return ""
    text = text.replace('\u200b', '').replace('\ufeff', '')
    lines = [' '.join(line.split()) for line in text.splitlines()]
    return '\n'.join(line for line in lines if line).strip()


def decode_text(data: bytes) -> str:
    detected = chardet.detect(data)
    encoding = detected.get('encoding') or 'utf-8'
    try:
        return data.decode(encoding)
    except (UnicodeDecodeError, LookupError):
        return data.decode('utf-8', errors='replace')


def extract_pdf_text(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
    except PdfReadError as e:
        raise CapabilityError(f"Unreadable PDF: {e}") from e

    parts = []
    for page_no, page in enumerate(reader.pages, start=1):
        try:
            parts.append(page.extract_text() or "")
        except Exception as e:
            logger.warning(f"PDF page {page_no} text extraction failed: {e}")
    return "\n".join(parts)


def extract_docx_text(data: bytes) -> str:
    try:
        doc = Document(io.BytesIO(data))
    except Exception as e:
        raise CapabilityError(f"Unreadable DOCX: {e}") from e
    return "\n".join(p.text for p in doc.paragraphs if p.text)


def guess_mime(filename: str) -> Optional[str]:
    name = (filename or "").lower()
    if name.endswith(".pdf"):
        return "application/pdf"
    if name.endswith(".docx"):
        return next(iter(DOCX_MIMES))
    if name.endswith((".txt", ".md", ".csv", ".json")):
        return "text/plain"
    return None


def extract_text(data: bytes, mime_type: Optional[str] = None, filename: str = "",
                 max_chars: Optional[int] = None) -> str:
    """
    Extract normalized text from file bytes.

    Args:
        data: Raw file content
        mime_type: Declared MIME type (falls back to the file extension)
        filename: Original file name
        max_chars: Truncate the result to this many characters

    Returns:
        Extracted text, "" for types without a text layer

    Raises:
        CapabilityError: File is corrupt or unreadable
    """
    mime = (mime_type or guess_mime(filename) or "").split(";")[0].strip().lower()

    if mime in PDF_MIMES:
        text = extract_pdf_text(data)
    elif mime in DOCX_MIMES:
        text = extract_docx_text(data)
    elif mime in TEXT_MIMES or mime.startswith("text/"):
        text = decode_text(data)
    else:
        logger.info(f"No text layer for {filename or 'file'} ({mime or 'unknown type'})")
        return ""

    text = normalize_text(text)
    if max_chars is not None and len(text) > max_chars:
        text = text[:max_chars]
    return text
