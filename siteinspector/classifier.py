import re
from posixpath import splitext
from typing import Optional
from urllib.parse import urlparse


# Asset type labels used throughout the system
ASSET_TYPES = ("script", "stylesheet", "image", "font", "video", "audio", "document", "manifest", "other")

# --- signal tables ---

# file extension -> asset type
_EXTENSION_MAP: dict[str, str] = {
    ".js":    "script",
    ".mjs":   "script",
    ".cjs":   "script",
    ".css":   "stylesheet",
    ".png":   "image",
    ".jpg":   "image",
    ".jpeg":  "image",
    ".gif":   "image",
    ".svg":   "image",
    ".webp":  "image",
    ".avif":  "image",
    ".ico":   "image",
    ".bmp":   "image",
    ".woff":  "font",
    ".woff2": "font",
    ".ttf":   "font",
    ".otf":   "font",
    ".eot":   "font",
    ".mp4":   "video",
    ".webm":  "video",
    ".mov":   "video",
    ".m3u8":  "video",
    ".mp3":   "audio",
    ".ogg":   "audio",
    ".wav":   "audio",
    ".pdf":   "document",
    ".json":  "document",
    ".xml":   "document",
    ".webmanifest": "manifest",
}

# element kinds that are already unambiguous, whatever the extension says
_FIXED_KINDS = {"video", "audio", "manifest"}


def asset_type_from_extension(url: str) -> str:
    path = urlparse(url).path.lower()
    ext = splitext(path)[1]
    return _EXTENSION_MAP.get(ext, "other")


def classify_asset(url: str, kind: Optional[str] = None) -> str:
    """
    Infer an asset's type.

    Priority order:
      1. fixed element kinds (video/audio source, manifest link)
      2. file extension table
      3. the referencing element's kind (script src, img src, ...)
      4. "other"
    """
    if kind in _FIXED_KINDS:
        return kind
    by_extension = asset_type_from_extension(url)
    if by_extension != "other":
        return by_extension
    return kind or "other"


def asset_type_from_content_type(content_type: str) -> str:
    """Top-level non-HTML responses keep their MIME type, e.g. image/png."""
    return content_type or "other"


# --- technology fingerprints ---

# (name, pattern, category)
_TECH_SIGNATURES: list[tuple[str, re.Pattern, str]] = [
    ("React",              re.compile(r"__REACT_DEVTOOLS|react\.production|react-dom", re.I), "framework"),
    ("Vue.js",             re.compile(r"__VUE__|vue\.runtime|vue\.global", re.I), "framework"),
    ("Angular",            re.compile(r"ng-version|angular\.js|@angular", re.I), "framework"),
    ("Next.js",            re.compile(r"__NEXT_DATA__|next/dist|_next/", re.I), "framework"),
    ("Nuxt",               re.compile(r"__NUXT__|nuxt\.js", re.I), "framework"),
    ("Svelte",             re.compile(r"svelte-|__svelte", re.I), "framework"),
    ("jQuery",             re.compile(r"jquery[.\-/]|jQuery\.", re.I), "library"),
    ("Tailwind CSS",       re.compile(r"tailwindcss", re.I), "css"),
    ("Bootstrap",          re.compile(r"bootstrap[.\-/]|\.btn-primary", re.I), "css"),
    ("Webpack",            re.compile(r"webpackChunk|__webpack_require__", re.I), "bundler"),
    ("Vite",               re.compile(r"@vite/client|import\.meta\.hot", re.I), "bundler"),
    ("Google Analytics",   re.compile(r"gtag\(|google-analytics|analytics\.js", re.I), "analytics"),
    ("Google Tag Manager", re.compile(r"googletagmanager|gtm\.js", re.I), "analytics"),
    ("Sentry",             re.compile(r"sentry[.\-/]|@sentry|Sentry\.init", re.I), "monitoring"),
    ("Cloudflare",         re.compile(r"cloudflare|__cf_bm", re.I), "cdn"),
    ("WordPress",          re.compile(r"wp-content|wp-includes", re.I), "cms"),
    ("Shopify",            re.compile(r"cdn\.shopify\.com|Shopify\.theme", re.I), "cms"),
]


def _version_for(name: str, source: str) -> Optional[str]:
    match = re.search(re.escape(name) + r"[/@ ]?v?(\d+\.\d+[.\d]*)", source, re.I)
    return match.group(1) if match else None


def detect_tech(source: str) -> list[dict]:
    """Return [{name, category, version}] for every signature found in the source."""
    found = []
    for name, pattern, category in _TECH_SIGNATURES:
        if pattern.search(source):
            found.append({"name": name, "category": category, "version": _version_for(name, source)})
    return found


# --- API endpoints referenced from page source ---

# (pattern, fixed method); patterns with two groups capture (method, url)
_ENDPOINT_PATTERNS: list[tuple[re.Pattern, Optional[str]]] = [
    (re.compile(r"fetch\s*\(\s*[\"'`]([^\"'`]+)[\"'`]"), "GET"),
    (re.compile(r"axios\s*\.\s*(get|post|put|patch|delete)\s*\(\s*[\"'`]([^\"'`]+)[\"'`]", re.I), None),
    (re.compile(r"\.open\s*\(\s*[\"'](GET|POST|PUT|PATCH|DELETE)[\"']\s*,\s*[\"']([^\"']+)[\"']", re.I), None),
    (re.compile(r"new\s+WebSocket\s*\(\s*[\"'`]([^\"'`]+)[\"'`]"), "WS"),
]


def endpoint_type(url: str, method: str) -> str:
    if method == "WS" or url.startswith(("ws://", "wss://")):
        return "websocket"
    if "graphql" in url.lower():
        return "graphql"
    return "rest"


def detect_endpoints(source: str) -> list[dict]:
    """
    Return [{url, method, type, line}] for API calls found in the source:
    fetch(), axios.<verb>(), XMLHttpRequest .open() and new WebSocket().
    Each endpoint URL is reported once, at its first occurrence.
    """
    found = []
    seen = set()
    for pattern, fixed_method in _ENDPOINT_PATTERNS:
        for match in pattern.finditer(source):
            if fixed_method:
                method, url = fixed_method, match.group(1)
            else:
                method, url = match.group(1).upper(), match.group(2)
            url = url.strip()
            if not url or url in seen:
                continue
            seen.add(url)
            kind = endpoint_type(url, method)
            found.append({
                "url": url,
                "method": "WS" if kind == "websocket" else method,
                "type": kind,
                "line": source.count("\n", 0, match.start()) + 1,
            })
    return found
