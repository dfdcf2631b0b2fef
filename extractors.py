"""
extractors.py — Plain-text extraction from uploaded files (PDF, DOCX, TXT).

Scanned PDFs with no usable text layer fall back to OCR.
"""

import io
import logging
import os

import PyPDF2
from docx import Document

from errors import ExtractionFailure, InvalidInput

logger = logging.getLogger(__name__)

MAX_UPLOAD_MB    = int(os.environ.get("MAX_UPLOAD_MB", "10"))
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024

ALLOWED_TEXT = {".txt"}
ALLOWED_PDF  = {".pdf"}
ALLOWED_DOCX = {".docx"}
ALL_ALLOWED  = ALLOWED_TEXT | ALLOWED_PDF | ALLOWED_DOCX

MIN_PDF_TEXT_CHARS = 100


def _ext(fn: str) -> str:
    return os.path.splitext(fn.lower())[1]


def _from_txt(raw: bytes) -> str:
    return raw.decode("utf-8", errors="ignore")


def _from_pdf(raw: bytes) -> str:
    try:
        reader = PyPDF2.PdfReader(io.BytesIO(raw))
        text = "\n".join(p.extract_text() or "" for p in reader.pages)
    except Exception as e:
        logger.warning("PDF parsing error: %s", e)
        raise ExtractionFailure("Failed to parse PDF. The file might be corrupted or password-protected.") from e
    return text if len(text.strip()) >= MIN_PDF_TEXT_CHARS else _pdf_ocr_fallback(raw, text)


def _pdf_ocr_fallback(raw: bytes, text_layer: str) -> str:
    from pdf2image import convert_from_bytes
    import pytesseract
    try:
        return "\n".join(pytesseract.image_to_string(p) for p in convert_from_bytes(raw, dpi=200))
    except Exception as e:
        # OCR tooling (poppler / tesseract) may be missing; keep whatever text layer there was
        logger.warning("PDF OCR failed: %s", e)
        return text_layer


def _from_docx(raw: bytes) -> str:
    try:
        doc = Document(io.BytesIO(raw))
    except Exception as e:
        logger.warning("DOCX parsing error: %s", e)
        raise ExtractionFailure("Failed to parse DOCX file. The file might be corrupted.") from e
    parts = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells if cell.text.strip())
    return "\n".join(parts)


def extract_text(filename: str, raw: bytes) -> str:
    """Return the text of an uploaded file, or raise InvalidInput / ExtractionFailure."""
    ext = _ext(filename or "")
    if ext not in ALL_ALLOWED:
        raise InvalidInput(f"Unsupported file type '{ext or filename}'. Only PDF, DOCX and TXT files are allowed.")
    if len(raw) > MAX_UPLOAD_BYTES:
        raise InvalidInput(f"File size too large. Maximum size is {MAX_UPLOAD_MB}MB.")

    logger.info("Processing file: %s (%d bytes)", filename, len(raw))
    if ext in ALLOWED_TEXT:
        return _from_txt(raw)
    if ext in ALLOWED_PDF:
        return _from_pdf(raw)
    return _from_docx(raw)
