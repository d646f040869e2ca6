import time

import requests

from siteinspector.fetcher import FetchResponse
from siteinspector.models import Project

# headers that keep the security-header checks quiet
SECURE_HEADERS = {
    "content-security-policy": "default-src 'self'",
    "x-frame-options": "DENY",
    "strict-transport-security": "max-age=31536000",
    "x-content-type-options": "nosniff",
}


def page(body: str, status: int = 200, content_type: str = "text/html", headers: dict = None, length: int = None):
    """Build a canned response; the URL is filled in by FakeSite."""
    return {
        "status_code": status,
        "content_type": content_type,
        "headers": {**SECURE_HEADERS, **(headers or {})},
        "content_length": length,
        "body": body,
    }


def html(*links: str, title: str = "Page", extra: str = "") -> str:
    anchors = "".join(f'<a href="{href}">link</a>' for href in links)
    return (
        f"<html><head><title>{title}</title>"
        f'<meta name="description" content="About {title}">'
        f'<meta name="viewport" content="width=device-width"></head>'
        f"<body><h1>{title}</h1>{anchors}{extra}</body></html>"
    )


class FakeSite:
    """Stands in for fetch_url: serves canned responses and records every request."""

    def __init__(self, pages: dict, failing: tuple = (), redirects: dict = None):
        self.pages = pages
        self.failing = set(failing)
        self.redirects = redirects or {}
        self.calls: list[str] = []
        self.times: list[float] = []

    async def fetch(self, url, user_agent=None, follow_redirects=True, timeout=15):
        self.calls.append(url)
        self.times.append(time.monotonic())
        if url in self.failing:
            raise requests.ConnectionError(f"connection refused: {url}")
        final_url = self.redirects.get(url, url) if follow_redirects else url
        canned = self.pages.get(final_url) or page("not found", status=404)
        return FetchResponse(
            url=url,
            final_url=final_url,
            status_code=canned["status_code"],
            elapsed_ms=5,
            content_type=canned["content_type"],
            content_length=canned["content_length"],
            headers=canned["headers"],
            body=canned["body"] if canned["status_code"] < 300 else "",
        )


def make_project(**overrides) -> Project:
    values = {
        "id": "proj-1",
        "owner_id": "user-1",
        "start_url": "https://example.com/",
        "crawl_delay": 0,
        "respect_robots": False,
    }
    values.update(overrides)
    return Project(**values)
