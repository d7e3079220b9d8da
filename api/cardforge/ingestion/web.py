from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlsplit

import httpx
from bs4 import BeautifulSoup

from cardforge.core.config import settings
from cardforge.core.errors import (
    FetchError,
    InvalidURLError,
    NetworkTimeoutError,
    NetworkUnreachableError,
)
from cardforge.ingestion.result import NormalizedContent

logger = logging.getLogger("web")

BINARY_EXTENSIONS = frozenset(
    {
        # images
        "jpg", "jpeg", "png", "gif", "bmp", "webp", "ico", "tif", "tiff",
        # audio / video
        "mp3", "wav", "ogg", "flac", "m4a", "mp4", "m4v", "avi", "mov", "mkv", "webm",
        # archives / executables
        "zip", "rar", "7z", "tar", "gz", "bz2", "xz", "exe", "msi", "dmg", "iso", "apk", "bin",
    }
)

STRIP_SELECTORS = (
    "script, style, noscript, iframe, header, footer, nav, aside, form, "
    '[aria-hidden="true"]'
)
CONTENT_SELECTORS = ("main", "article", ".content", ".post-content", "body")

_WHITESPACE_RE = re.compile(r"\s+")


def is_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        # e.g. unbalanced IPv6 brackets
        return False
    return parts.scheme.lower() in ("http", "https") and bool(parts.netloc)


def has_binary_extension(url: str) -> bool:
    try:
        path = urlsplit(url).path
    except ValueError:
        return False
    if "." not in path.rsplit("/", 1)[-1]:
        return False
    return path.rsplit(".", 1)[-1].lower() in BINARY_EXTENSIONS


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def html_to_text(html: str) -> str:
    """
    Visible article text of an HTML page.

    Boilerplate elements are removed first, then the first non-empty region
    of main > article > .content > .post-content > body wins. Every element
    matching that selector contributes, in document order.
    """
    soup = BeautifulSoup(html, "html.parser")
    for el in soup.select(STRIP_SELECTORS):
        el.decompose()

    for selector in CONTENT_SELECTORS:
        nodes = soup.select(selector)
        if not nodes:
            continue
        # nested matches are already part of their outer match
        ids = {id(n) for n in nodes}
        nodes = [n for n in nodes if not any(id(p) in ids for p in n.parents)]
        text = collapse_whitespace(" ".join(n.get_text(" ") for n in nodes))
        if text:
            return text

    if soup.body is not None:
        return ""
    # fragment without <body>
    return collapse_whitespace(soup.get_text(" "))


async def _get(client: httpx.AsyncClient, url: str) -> httpx.Response:
    return await client.get(
        url,
        timeout=settings.fetch_timeout_s,
        headers={"User-Agent": settings.fetch_user_agent},
        follow_redirects=True,
    )


async def fetch_url_text(
    url: str, client: Optional[httpx.AsyncClient] = None
) -> NormalizedContent:
    """
    Fetch a web page and reduce it to plain text.

    Binary links, non-HTML bodies and pages without extractable text come back
    as skipped results instead of errors. Bad URLs, HTTP >= 400 and transport
    failures raise.
    """
    url = (url or "").strip()
    if not is_http_url(url):
        raise InvalidURLError(
            "Ungültige URL. Die Adresse muss mit http:// oder https:// beginnen.",
            context={"url": url},
        )

    if has_binary_extension(url):
        logger.info("binary url skipped url=%s", url)
        return NormalizedContent.skipped("binary_url", f"[Binärdatei ({url})]", source=url)

    logger.info("fetching url=%s timeout=%s", url, settings.fetch_timeout_s)
    try:
        if client is None:
            async with httpx.AsyncClient() as own_client:
                resp = await _get(own_client, url)
        else:
            resp = await _get(client, url)
    except httpx.TimeoutException as e:
        logger.error("url timeout url=%s err=%r", url, e)
        raise NetworkTimeoutError(
            f"Zeitüberschreitung beim Abrufen der URL (nach {settings.fetch_timeout_s:g} s).",
            context={"url": url, "error": repr(e)},
        ) from e
    except httpx.ConnectError as e:
        logger.error("url unreachable url=%s err=%r", url, e)
        raise NetworkUnreachableError(
            "URL nicht erreichbar: keine Antwort vom Server.",
            context={"url": url, "error": repr(e)},
        ) from e
    except httpx.HTTPError as e:
        logger.error("url fetch failed url=%s err=%r", url, e)
        raise FetchError(
            f"URL konnte nicht abgerufen werden: {e}",
            context={"url": url, "error": repr(e)},
        ) from e

    content_type = resp.headers.get("content-type", "")
    logger.info("url status=%s content_type=%s url=%s", resp.status_code, content_type, url)

    if resp.status_code >= 400:
        raise FetchError(
            f"URL-Fehler: Status {resp.status_code}",
            status_code=resp.status_code,
            context={"url": url},
        )

    ct = content_type.lower()
    if "html" not in ct:
        if "text/plain" in ct:
            text = resp.text[: settings.url_plain_text_chars]
            logger.info("plain text url chars=%s", len(text))
            return NormalizedContent.extracted(text, source=url)
        logger.info("non-html url skipped content_type=%s", content_type or None)
        return NormalizedContent.skipped(
            "non_html", f"[Kein HTML ({content_type or 'unbekannter Typ'})]", source=url
        )

    text = html_to_text(resp.text)
    logger.info("extracted chars=%s from url", len(text))

    if not text:
        logger.warning("extracted text from url is empty url=%s", url)
        return NormalizedContent.skipped(
            "empty_html",
            "[Kein Text von URL extrahiert. Die Seite wird möglicherweise per JavaScript geladen.]",
            source=url,
        )
    if len(text) < settings.short_text_warn_chars:
        logger.warning("extracted text from url very short chars=%s url=%s", len(text), url)

    return NormalizedContent.extracted(text, source=url)
