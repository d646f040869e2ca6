import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import requests
from bs4 import UnicodeDammit

from .models import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15  # seconds
MAX_CONTENT_BYTES = 5 * 1024 * 1024  # 5 MB ceiling to avoid runaway pages

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


class FetchOutcome(enum.Enum):
    PAGE = "page"       # 2xx HTML -> extract
    ASSET = "asset"     # 2xx non-HTML -> asset record
    ERROR = "error"     # non-2xx -> error page record


@dataclass
class FetchResponse:
    url: str
    final_url: str                      # may differ from input after redirects
    status_code: int
    elapsed_ms: int
    content_type: str = ""              # primary token only, e.g. "text/html"
    content_length: Optional[int] = None
    headers: dict[str, str] = field(default_factory=dict)   # lowercased names
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def size(self) -> int:
        return self.content_length or 0


def primary_content_type(header: Optional[str]) -> str:
    return (header or "").split(";", 1)[0].strip().lower()


def declared_charset(header: Optional[str]) -> Optional[str]:
    """Charset named in a Content-Type header, or None when the header is silent."""
    for param in (header or "").split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip("\"'").lower()
    return None


def decode_html(raw: bytes, charset: Optional[str] = None) -> str:
    """
    Decode a page body. A charset from the response header wins; otherwise the
    document's own <meta charset> (or a BOM, or a guess) decides.
    """
    known = [charset] if charset else []
    dammit = UnicodeDammit(raw, known_definite_encodings=known, is_html=True)
    if dammit.unicode_markup is None:
        return raw.decode("utf-8", errors="replace")
    return dammit.unicode_markup


def _content_length(header: Optional[str]) -> Optional[int]:
    try:
        return int(header) if header is not None else None
    except ValueError:
        return None


def is_html(content_type: str) -> bool:
    # servers that omit Content-Type are treated as serving a page
    return not content_type or content_type in HTML_CONTENT_TYPES


def classify(response: FetchResponse) -> FetchOutcome:
    if not response.ok:
        return FetchOutcome.ERROR
    if not is_html(response.content_type):
        return FetchOutcome.ASSET
    return FetchOutcome.PAGE


def _sync_fetch(url: str, user_agent: str, follow_redirects: bool, timeout: int) -> FetchResponse:
    """Synchronous fetch using requests; runs inside a thread executor."""
    headers = {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }
    start = time.perf_counter()
    response = requests.get(url, headers=headers, timeout=timeout, allow_redirects=follow_redirects, stream=True)
    try:
        content_type = primary_content_type(response.headers.get("Content-Type"))
        body = ""
        # only pages are read; assets are recorded from headers alone
        if response.ok and is_html(content_type):
            raw = response.raw.read(MAX_CONTENT_BYTES, decode_content=True) or b""
            body = decode_html(raw, declared_charset(response.headers.get("Content-Type")))
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        return FetchResponse(
            url=url,
            final_url=response.url,
            status_code=response.status_code,
            elapsed_ms=elapsed_ms,
            content_type=content_type,
            content_length=_content_length(response.headers.get("Content-Length")),
            headers={k.lower(): v for k, v in response.headers.items()},
            body=body,
        )
    finally:
        response.close()


async def fetch_url(
    url: str,
    user_agent: str = DEFAULT_USER_AGENT,
    follow_redirects: bool = True,
    timeout: int = DEFAULT_TIMEOUT,
) -> FetchResponse:
    """
    Issue one GET for `url` without blocking the event loop.

    Raises requests.RequestException on network failure; HTTP error statuses
    are returned, not raised, so the caller can record them.
    """
    loop = asyncio.get_running_loop()
    response = await loop.run_in_executor(None, _sync_fetch, url, user_agent, follow_redirects, timeout)
    logger.debug("GET %s -> %d (%dms)", url, response.status_code, response.elapsed_ms)
    return response
