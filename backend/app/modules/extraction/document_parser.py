"""Project Intake Document Parser — PDF / DOCX / TXT to plain text.

Dispatches on the declared MIME type first and the filename extension second.
Decoder failures are wrapped in ``ParseError`` with the underlying message;
nothing is swallowed.
"""

from __future__ import annotations

import asyncio
import io
import re
from collections.abc import Callable
from pathlib import PurePath

import docx  # python-docx
import fitz  # PyMuPDF
import structlog

from app.core.config import settings
from app.modules.extraction.errors import InsufficientText, ParseError, UnsupportedFormat
from app.modules.extraction.schemas import DocumentFile

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Format decoders
# ---------------------------------------------------------------------------


def parse_pdf(pdf_bytes: bytes) -> str:
    """Extract the text layer of every page via PyMuPDF."""
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        pages = [(page.get_text("text") or "").strip() for page in doc]
    finally:
        doc.close()
    return "\n\n".join(p for p in pages if p)


def parse_docx(docx_bytes: bytes) -> str:
    """Extract paragraph text from a Word document via python-docx."""
    document = docx.Document(io.BytesIO(docx_bytes))
    return "\n".join(para.text for para in document.paragraphs if para.text.strip())


def parse_txt(txt_bytes: bytes) -> str:
    """Decode plain text as UTF-8, falling back to latin-1."""
    try:
        return txt_bytes.decode("utf-8")
    except UnicodeDecodeError:
        return txt_bytes.decode("latin-1", errors="replace")


# ---------------------------------------------------------------------------
# Format detection
# ---------------------------------------------------------------------------

_DECODERS: dict[str, Callable[[bytes], str]] = {
    "PDF": parse_pdf,
    "DOCX": parse_docx,
    "TXT": parse_txt,
}

_MIME_FORMATS: dict[str, str] = {
    "application/pdf": "PDF",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "DOCX",
    "application/msword": "DOCX",
    "text/plain": "TXT",
}

_EXTENSION_FORMATS: dict[str, str] = {
    ".pdf": "PDF",
    ".docx": "DOCX",
    ".doc": "DOCX",
    ".txt": "TXT",
}


def detect_format(file: DocumentFile) -> str:
    """Return the decoder key for a file, or raise UnsupportedFormat."""
    mime = (file.mime_type or "").split(";")[0].strip().lower()
    if mime in _MIME_FORMATS:
        return _MIME_FORMATS[mime]

    suffix = PurePath(file.name).suffix.lower()
    if suffix in _EXTENSION_FORMATS:
        return _EXTENSION_FORMATS[suffix]

    raise UnsupportedFormat(file.mime_type or file.name)


async def extract_text(file: DocumentFile) -> str:
    """Convert one document's bytes into raw text.

    Decoding runs in a worker thread so the event loop stays free while
    PyMuPDF / python-docx chew through the bytes.
    """
    fmt = detect_format(file)
    decoder = _DECODERS[fmt]

    try:
        text = await asyncio.to_thread(decoder, file.content)
    except Exception as exc:
        logger.warning("Document decode failed", file=file.name, format=fmt, error=str(exc))
        raise ParseError(fmt, str(exc)) from exc

    logger.info("Document parsed", file=file.name, format=fmt, chars=len(text))
    return text


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

_WHITESPACE_RE = re.compile(r"\s+")
_NEWLINE_RUN_RE = re.compile(r"\n{3,}")


def clean_extracted_text(text: str | None) -> str:
    """Collapse whitespace runs to single spaces and trim.

    The newline rule cannot match after the whitespace pass.
    """
    if not text:
        return ""
    text = _WHITESPACE_RE.sub(" ", text)
    text = _NEWLINE_RUN_RE.sub("\n\n", text)
    return text.strip()


def normalize_text(text: str | None, min_length: int | None = None) -> str:
    """Clean text and enforce the minimum usable length."""
    if min_length is None:
        min_length = settings.extraction_min_text_length
    cleaned = clean_extracted_text(text)
    if len(cleaned) < min_length:
        raise InsufficientText(len(cleaned), min_length)
    return cleaned
