"""Raw text from uploaded CV files (PDF, DOCX, TXT), read in memory only."""

import re
import unicodedata
from io import BytesIO
from typing import Optional

import pdfplumber
from docx import Document

from cv_builder_ai.config import UPLOAD_TEXT_MAX_CHARS
from cv_builder_ai.utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".docx", ".txt")


def clean_cv_text(text: str, max_chars: int = UPLOAD_TEXT_MAX_CHARS) -> str:
    """NFC-normalize, collapse runs of spaces and blank lines, truncate."""
    if not text or not text.strip():
        return ""
    t = unicodedata.normalize("NFC", text)
    t = re.sub(r"[ \t]+", " ", t)
    t = re.sub(r"\n\s*\n\s*\n", "\n\n", t)
    t = t.strip()
    if len(t) > max_chars:
        t = t[:max_chars] + "\n\n[Content truncated.]"
    return t


def _extract_pdf(bytes_io: BytesIO) -> Optional[str]:
    try:
        with pdfplumber.open(bytes_io) as pdf:
            parts = [p for p in (page.extract_text() for page in pdf.pages) if p]
            return "\n\n".join(parts) if parts else None
    except Exception as e:
        logger.exception("PDF extraction failed: %s", e)
        return None


def _extract_docx(bytes_io: BytesIO) -> Optional[str]:
    try:
        doc = Document(bytes_io)
    except Exception as e:
        logger.exception("DOCX extraction failed: %s", e)
        return None
    parts = [p.text for p in doc.paragraphs if p.text.strip()]
    # Two-column CV templates keep most content in tables
    for table in doc.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                parts.append(" | ".join(dict.fromkeys(cells)))
    return "\n\n".join(parts) if parts else None


def extract_text_from_file(file_bytes: bytes, filename: str) -> Optional[str]:
    """
    Extract and clean text from an uploaded CV file.
    Returns None for unsupported types, unreadable files, or files with no text.
    """
    name_lower = (filename or "").lower().strip()
    if not name_lower.endswith(SUPPORTED_EXTENSIONS):
        logger.warning("Unsupported file type: %s", filename)
        return None

    bio = BytesIO(file_bytes)
    raw: Optional[str]
    if name_lower.endswith(".pdf"):
        raw = _extract_pdf(bio)
    elif name_lower.endswith(".docx"):
        raw = _extract_docx(bio)
    else:
        raw = file_bytes.decode("utf-8", errors="replace")

    if not raw or not raw.strip():
        logger.warning("No text extracted from %s", filename)
        return None
    text = clean_cv_text(raw)
    logger.info("Extracted %s characters from %s", len(text), filename)
    return text
