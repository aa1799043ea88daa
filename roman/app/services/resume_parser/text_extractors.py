"""
Raw text extraction per detected file type.
PDF via pdfplumber, DOCX via python-docx. Images have no text layer and return None.
"""
from __future__ import annotations

import io

import pdfplumber
from docx import Document

from roman.app.core.errors import ExtractionError
from roman.app.core.logging_config import get_logger
from roman.app.schemas.resume import FileType

logger = get_logger("services.resume_parser.extractors")


def extract_text_from_pdf_bytes(data: bytes) -> str:
    """Extract raw text from PDF bytes using pdfplumber."""
    logger.info("Extracting text from PDF size_bytes=%d", len(data))
    text_parts = []
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(page_text)
    except Exception as e:
        logger.error("Failed to extract PDF text: %s", e)
        raise ExtractionError(f"Failed to extract PDF text: {e}") from e
    text = "\n".join(text_parts)
    logger.info("PDF text extracted chars=%d", len(text))
    return text


def _conversion_warnings(document) -> list[str]:
    """Elements python-docx cannot turn into text; reported, never fatal."""
    warnings = []
    shapes = len(document.inline_shapes)
    if shapes:
        warnings.append(f"{shapes} inline image(s)/shape(s) skipped")
    return warnings


def extract_text_from_docx_bytes(data: bytes) -> str:
    """Extract paragraphs then table cells from a Word document."""
    logger.info("Extracting text from DOCX/DOC size_bytes=%d", len(data))
    try:
        document = Document(io.BytesIO(data))
    except Exception as e:
        logger.error("Failed to extract DOCX/DOC text: %s", e)
        raise ExtractionError(f"Failed to extract DOCX/DOC text: {e}") from e

    lines = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                lines.append(" | ".join(cells))

    warnings = _conversion_warnings(document)
    if warnings:
        logger.warning("DOCX conversion warnings: %s", "; ".join(warnings))

    text = "\n".join(lines)
    logger.info("DOCX/DOC text extracted chars=%d", len(text))
    return text


def extract_text(data: bytes, file_type: FileType) -> str | None:
    if file_type == "pdf":
        return extract_text_from_pdf_bytes(data)
    if file_type in ("docx", "doc"):
        return extract_text_from_docx_bytes(data)
    return None
