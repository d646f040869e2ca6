import logging
import re
from functools import lru_cache
from typing import Optional
from urllib.parse import urldefrag, urlparse, urlunparse

from .models import Project
from .robots import is_disallowed

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Visited-set key: fragment dropped, scheme and host lowercased."""
    url, _ = urldefrag(url.strip())
    parsed = urlparse(url)
    return urlunparse(parsed._replace(scheme=parsed.scheme.lower(), netloc=parsed.netloc.lower()))


@lru_cache(maxsize=256)
def _glob_to_regex(pattern: str) -> re.Pattern:
    # only `*` is special; everything else is literal
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")))


def matches_any(url: str, patterns) -> bool:
    """True if any glob pattern occurs anywhere in the URL."""
    return any(_glob_to_regex(p).search(url) for p in patterns if p)


def hostname_of(url: str) -> Optional[str]:
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def admit(
    url: str,
    visited: set,
    base_host: str,
    project: Project,
    disallowed: list[str],
    check_includes: bool = True,
) -> bool:
    """
    Decide whether a discovered URL may enter the frontier.

    Checks, in order: parseable http(s) URL, already visited, domain scope,
    exclude patterns, include patterns, robots disallow prefixes.
    Does not mutate `visited`; the scheduler marks on admission.
    """
    try:
        parsed = urlparse(url)
        host = parsed.hostname
        key = normalize_url(url)
    except ValueError:
        logger.debug("Dropping unparseable URL: %s", url)
        return False

    if key in visited:
        return False
    if parsed.scheme not in ("http", "https") or not host:
        return False

    if project.same_domain_only and host != base_host:
        logger.debug("Out of scope (%s != %s): %s", host, base_host, url)
        return False

    if matches_any(url, project.exclude_patterns):
        logger.debug("Excluded by pattern: %s", url)
        return False

    if check_includes and project.include_patterns and not matches_any(url, project.include_patterns):
        logger.debug("Not matched by any include pattern: %s", url)
        return False

    if disallowed and is_disallowed(parsed.path or "/", disallowed):
        logger.debug("Disallowed by robots.txt: %s", url)
        return False

    return True
