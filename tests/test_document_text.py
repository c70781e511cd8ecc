# tests/test_document_text.py

"""
Document Text Tests - format detection and text extraction
"""

from io import BytesIO

import docx
import pytest

from folio.core.exceptions import StepValidationError
from folio.services.document_text import DOCX, PDF, TEXT, detect_kind, extract_text


class TestDetectKind:

    @pytest.mark.parametrize("filename,mime_type,expected", [
        ("resume.pdf", None, PDF),
        ("RESUME.PDF", None, PDF),
        ("resume.docx", None, DOCX),
        ("notes.md", None, TEXT),
        ("upload", "application/pdf", PDF),
        ("resume.bin", "text/plain", TEXT),
    ])
    def test_known_formats(self, filename, mime_type, expected):
        assert detect_kind(filename, mime_type) == expected

    def test_unsupported_format(self):
        with pytest.raises(StepValidationError):
            detect_kind("resume.pages", "application/x-iwork")


class TestExtractText:

    def test_plain_text(self):
        content = "Ada Lovelace\nStaff Engineer at Acme\n".encode("utf-8")
        assert extract_text(content, "resume.txt") == "Ada Lovelace\nStaff Engineer at Acme"

    def test_docx(self):
        document = docx.Document()
        document.add_paragraph("Ada Lovelace")
        document.add_paragraph("")
        document.add_paragraph("Led the analytics engine rewrite")
        buffer = BytesIO()
        document.save(buffer)

        assert extract_text(buffer.getvalue(), "resume.docx") == "Ada Lovelace\nLed the analytics engine rewrite"

    def test_empty_document_is_rejected(self):
        with pytest.raises(StepValidationError, match="No extractable text"):
            extract_text(b"   \n", "resume.txt")

    def test_corrupt_docx_is_rejected(self):
        with pytest.raises(StepValidationError, match="Could not read document"):
            extract_text(b"not a zip archive", "resume.docx")
