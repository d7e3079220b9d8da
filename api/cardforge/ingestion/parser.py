from __future__ import annotations

import hashlib
import io
import logging
from typing import Callable, Dict, List

import docx
import fitz
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

from cardforge.core.errors import (
    DecodeError,
    ExtractionError,
    FileTooLargeError,
    UnsupportedTypeError,
)

logger = logging.getLogger("ingestion")

MEDIA_TXT = "text/plain"
MEDIA_PDF = "application/pdf"
MEDIA_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_MEDIA_TYPES = frozenset({MEDIA_TXT, MEDIA_PDF, MEDIA_DOCX})


def sha256_bytes(data: bytes) -> str:
    h = hashlib.sha256()
    h.update(data)
    return h.hexdigest()


def base_media_type(media_type: str) -> str:
    """'text/plain; charset=utf-8' -> 'text/plain'"""
    return (media_type or "").split(";", 1)[0].strip().lower()


def check_upload(media_type: str, size: int, max_bytes: int) -> None:
    """
    Upload gate applied by the HTTP layer before a file reaches the normalizer.
    """
    mt = base_media_type(media_type)
    if mt not in ALLOWED_MEDIA_TYPES:
        logger.warning("upload rejected media_type=%s", media_type)
        raise UnsupportedTypeError(media_type or "unbekannt")
    if size > max_bytes:
        logger.warning("upload rejected size=%s limit=%s", size, max_bytes)
        raise FileTooLargeError(size, max_bytes)


def extract_plain_text(data: bytes) -> str:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.error("txt decode failed err=%s", e)
        raise DecodeError(
            "Textdatei konnte nicht gelesen werden (keine gültige UTF-8-Kodierung).",
            context={"error": str(e)},
        ) from e
    logger.info("extracted chars=%s from txt", len(text))
    return text


def extract_pdf_text(data: bytes) -> str:
    hint = "PDF-Verarbeitung fehlgeschlagen. Ist die Datei beschädigt oder passwortgeschützt?"
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        logger.error("pdf open failed err=%s", e)
        raise ExtractionError(hint, context={"error": str(e)}) from e

    try:
        if doc.needs_pass:
            logger.warning("pdf is password protected pages=%s", doc.page_count)
            raise ExtractionError(
                "Die PDF-Datei ist passwortgeschützt und kann nicht gelesen werden.",
                context={"encrypted": True},
            )
        pages: List[str] = []
        for i in range(doc.page_count):
            page = doc.load_page(i)
            pages.append((page.get_text("text") or "").strip())
    except ExtractionError:
        raise
    except Exception as e:
        logger.error("pdf parse failed err=%s", e)
        raise ExtractionError(hint, context={"error": str(e)}) from e
    finally:
        doc.close()

    text = "\n\n".join(p for p in pages if p)
    logger.info("extracted chars=%s pages=%s from pdf", len(text), len(pages))
    return text


def extract_docx_text(data: bytes) -> str:
    """
    Raw text of a .docx in document order: paragraphs as lines, table rows
    as 'a | b | c' at the position the table appears.
    """
    try:
        document = docx.Document(io.BytesIO(data))
        parts: List[str] = []
        for child in document.element.body.iterchildren():
            if child.tag == qn("w:p"):
                line = Paragraph(child, document).text
                if line.strip():
                    parts.append(line)
            elif child.tag == qn("w:tbl"):
                for row in Table(child, document).rows:
                    cells = [c.text.strip() for c in row.cells if c.text.strip()]
                    if cells:
                        parts.append(" | ".join(cells))
    except Exception as e:
        logger.error("docx parse failed err=%s", e)
        raise ExtractionError("DOCX-Verarbeitung fehlgeschlagen. Ist die Datei beschädigt?", context={"error": str(e)}) from e

    text = "\n".join(parts)
    logger.info("extracted chars=%s from docx", len(text))
    return text


EXTRACTORS: Dict[str, Callable[[bytes], str]] = {
    MEDIA_TXT: extract_plain_text,
    MEDIA_PDF: extract_pdf_text,
    MEDIA_DOCX: extract_docx_text,
}


def extract_file_text(data: bytes, media_type: str) -> str:
    mt = base_media_type(media_type)
    extractor = EXTRACTORS.get(mt)
    if extractor is None:
        logger.warning("unsupported media_type=%s", media_type)
        raise UnsupportedTypeError(media_type or "unbekannt")
    return extractor(data)
