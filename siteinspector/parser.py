import re
import logging
from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# href prefixes that never lead to another page
_SKIP_LINK_PREFIXES = ("#", "mailto:", "tel:", "javascript:")


def _get_meta(soup: BeautifulSoup, name: str = None, prop: str = None) -> Optional[str]:
    """Pull content from a <meta> tag by name or property attribute."""
    tag = None
    if name:
        tag = soup.find("meta", attrs={"name": name})
    if not tag and prop:
        tag = soup.find("meta", attrs={"property": prop})
    if tag:
        return (tag.get("content") or "").strip() or None
    return None


def _clean_text(raw: str) -> str:
    """Collapse whitespace and strip control characters from extracted text."""
    text = re.sub(r"[\r\n\t]+", " ", raw)
    text = re.sub(r" {2,}", " ", text)
    return text.strip()


def _has_rel(tag, *values: str) -> bool:
    # bs4 exposes rel as a list of tokens
    rel = [r.lower() for r in (tag.get("rel") or [])]
    return any(any(v in token for token in rel) for v in values)


def _rel_equals(tag, value: str) -> bool:
    # whole attribute, as link[rel=stylesheet] matches: "alternate stylesheet" does not
    return " ".join(tag.get("rel") or []).strip().lower() == value


def resolve_url(href: str, base_url: str) -> Optional[str]:
    """
    Resolve a reference against the page URL.
    Protocol-relative `//host/path` inherits the page scheme.
    Returns None when the reference cannot be resolved.
    """
    href = (href or "").strip()
    if not href:
        return None
    if href.startswith(("http://", "https://")):
        return href
    if href.startswith("//"):
        return f"{urlparse(base_url).scheme}:{href}"
    try:
        return urljoin(base_url, href)
    except ValueError:
        # malformed reference: dropped rather than guessed
        logger.debug("Could not resolve %r against %s", href, base_url)
        return None


def _collect_assets(soup: BeautifulSoup, url: str, scripts, stylesheets, images) -> list[dict]:
    """Asset references in document order, resolved and deduplicated by URL."""
    entries: list[tuple[str, str]] = []

    for el in scripts:
        if el.get("src"):
            entries.append((el["src"], "script"))
    for el in stylesheets:
        if el.get("href"):
            entries.append((el["href"], "stylesheet"))
    for el in images:
        if el.get("src"):
            entries.append((el["src"], "image"))
    for el in soup.find_all("link", href=True):
        if _has_rel(el, "icon"):
            entries.append((el["href"], "image"))
        elif _has_rel(el, "preload", "prefetch"):
            # kind decided later from the file extension
            entries.append((el["href"], None))
        elif _has_rel(el, "manifest"):
            entries.append((el["href"], "manifest"))
    for el in soup.select("video source[src], audio source[src]"):
        entries.append((el["src"], "video" if el.find_parent("video") else "audio"))

    seen = set()
    assets = []
    for href, kind in entries:
        resolved = resolve_url(href, url)
        if not resolved or resolved in seen:
            continue
        seen.add(resolved)
        assets.append({"url": resolved, "kind": kind})
    return assets


def _collect_links(anchors, url: str) -> list[str]:
    links = []
    for el in anchors:
        href = el["href"].strip()
        if not href or href.lower().startswith(_SKIP_LINK_PREFIXES):
            continue
        resolved = resolve_url(href, url)
        if resolved:
            links.append(resolved)
    return links


def parse_html(html: str, url: str = "") -> dict:
    """
    Parse raw HTML and return a flat dict of all extractable signals.
    The extractor layer turns this into page and asset records.
    """
    soup = BeautifulSoup(html, "lxml")

    # --- title: <title>, else og:title ---
    title_tag = soup.find("title")
    title = _clean_text(title_tag.get_text()) if title_tag else ""
    if not title:
        title = _get_meta(soup, prop="og:title") or ""

    # --- description: meta description, else og:description ---
    description = _get_meta(soup, name="description") or _get_meta(soup, prop="og:description") or ""

    # --- canonical ---
    canonical_tag = soup.find("link", rel="canonical")
    canonical = canonical_tag.get("href") if canonical_tag else None

    # --- resource elements ---
    scripts = soup.find_all("script")
    stylesheets = [el for el in soup.find_all("link") if _rel_equals(el, "stylesheet")]
    images = soup.find_all("img")
    anchors = soup.find_all("a", href=True)

    insecure_images = [el["src"] for el in images if el.get("src", "").startswith("http://")]

    return {
        "title": title,
        "description": description,
        "canonical": canonical,
        "scripts_count": len(scripts),
        "stylesheets_count": len(stylesheets),
        "images_count": len(images),
        "links_count": len(anchors),
        "assets": _collect_assets(soup, url, scripts, stylesheets, images),
        "links": _collect_links(anchors, url),
        "h1_count": len(soup.find_all("h1")),
        "has_viewport": soup.find("meta", attrs={"name": "viewport"}) is not None,
        "insecure_images": insecure_images,
    }
