from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from cardforge.core.errors import InputError, UnsupportedTypeError
from cardforge.ingestion.inputs import InlineText, InputSpec, RemoteDocument, UploadedFile
from cardforge.ingestion.parser import (
    ALLOWED_MEDIA_TYPES,
    base_media_type,
    extract_file_text,
    sha256_bytes,
)
from cardforge.ingestion.result import NormalizedContent
from cardforge.ingestion.web import fetch_url_text

logger = logging.getLogger("ingestion")


async def normalize(
    spec: InputSpec, http_client: Optional[httpx.AsyncClient] = None
) -> NormalizedContent:
    """
    Reduce one request input to plain text.

    No length bound is applied here; the generator truncates at its own
    boundary.
    """
    if isinstance(spec, InlineText):
        text = spec.content.strip()
        if not text:
            raise InputError("Kein Text angegeben.")
        logger.info("inline text chars=%s", len(text))
        return NormalizedContent.extracted(text, source="text")

    if isinstance(spec, UploadedFile):
        return await _normalize_file(spec)

    if isinstance(spec, RemoteDocument):
        return await fetch_url_text(spec.url, client=http_client)

    raise InputError(f"Ungültiger Input-Typ: {type(spec).__name__}")


async def _normalize_file(upload: UploadedFile) -> NormalizedContent:
    # The upload gate already enforced the allow-list; check the tag again
    # before handing bytes to a parser.
    media_type = base_media_type(upload.media_type)
    if media_type not in ALLOWED_MEDIA_TYPES:
        logger.warning(
            "unsupported upload name=%s media_type=%s", upload.filename, upload.media_type
        )
        raise UnsupportedTypeError(upload.media_type)

    logger.info(
        "processing file name=%s media_type=%s size=%s sha256=%s",
        upload.filename,
        media_type,
        upload.size,
        sha256_bytes(upload.data)[:12],
    )
    # PyMuPDF and python-docx are blocking
    text = await asyncio.to_thread(extract_file_text, upload.data, media_type)
    return NormalizedContent.extracted(text, source=upload.filename or media_type)
