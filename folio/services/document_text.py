"""
Document text extraction - Folio Pipeline Engine
folio/services/document_text.py

Plain-text extraction from uploaded resumes. PDF goes through pdfplumber,
DOCX through python-docx, text formats are decoded as UTF-8.
"""
import logging
from io import BytesIO
from pathlib import PurePosixPath
from typing import Optional

import docx
import pdfplumber

from folio.core.exceptions import StepValidationError

logger = logging.getLogger(__name__)

PDF = "pdf"
DOCX = "docx"
TEXT = "text"

_MIME_KINDS = {
    "application/pdf": PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DOCX,
    "text/plain": TEXT,
    "text/markdown": TEXT,
}
_EXTENSION_KINDS = {".pdf": PDF, ".docx": DOCX, ".txt": TEXT, ".md": TEXT}


def detect_kind(filename: str, mime_type: Optional[str] = None) -> str:
    """Resolve the document format from its MIME type, then its extension."""
    if mime_type and mime_type in _MIME_KINDS:
        return _MIME_KINDS[mime_type]
    suffix = PurePosixPath(filename or "").suffix.lower()
    if suffix in _EXTENSION_KINDS:
        return _EXTENSION_KINDS[suffix]
    raise StepValidationError(
        f"Unsupported document format: {filename!r} ({mime_type or 'unknown type'})",
        step="ingest",
    )


def _pdf_text(content: bytes) -> str:
    pages = []
    with pdfplumber.open(BytesIO(content)) as pdf:
        logger.info(f"PDF has {len(pdf.pages)} pages")
        for page in pdf.pages:
            page_text = page.extract_text()
            if page_text:
                pages.append(page_text)
    return "\n\n".join(pages)


def _docx_text(content: bytes) -> str:
    document = docx.Document(BytesIO(content))
    return "\n".join(p.text for p in document.paragraphs if p.text)


def extract_text(content: bytes, filename: str, mime_type: Optional[str] = None) -> str:
    """
    Extract text from document bytes.

    Raises StepValidationError for unsupported formats, unreadable files or
    documents with no extractable text.
    """
    kind = detect_kind(filename, mime_type)
    try:
        if kind == PDF:
            text = _pdf_text(content)
        elif kind == DOCX:
            text = _docx_text(content)
        else:
            text = content.decode("utf-8", errors="replace")
    except StepValidationError:
        raise
    except Exception as e:
        logger.error(f"Text extraction failed for {filename}: {e}")
        raise StepValidationError(f"Could not read document {filename!r}: {e}", step="ingest") from e

    text = text.strip()
    if not text:
        raise StepValidationError(f"No extractable text in {filename!r}", step="ingest")
    return text
