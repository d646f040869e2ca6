import asyncio
import logging
from urllib.parse import urlparse

import requests

from .models import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

ROBOTS_TIMEOUT = 10  # seconds


def _robots_url(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}/robots.txt"


def agent_name(user_agent: str) -> str:
    """Product token of a user agent string: 'SiteInspector/1.0 (+x)' -> 'siteinspector'."""
    token = (user_agent or "").strip().split(" ", 1)[0]
    return token.split("/", 1)[0].strip().lower()


def parse_robots(text: str, user_agent: str = DEFAULT_USER_AGENT) -> list[str]:
    """
    Collect Disallow prefixes that apply to `user_agent`.

    A section applies when its User-agent token is `*` or the crawler's own
    product name (case-insensitive). Allow, wildcard paths and Crawl-delay are
    not supported; the caller does plain prefix matching.
    """
    ours = agent_name(user_agent)
    disallowed: list[str] = []
    in_our_section = False

    for raw_line in text.splitlines():
        line = raw_line.split("#", 1)[0].strip().lower()
        if line.startswith("user-agent:"):
            agent = line[len("user-agent:"):].strip()
            in_our_section = agent == "*" or (bool(ours) and agent == ours)
        elif in_our_section and line.startswith("disallow:"):
            path = line[len("disallow:"):].strip()
            if path and path not in disallowed:
                disallowed.append(path)

    return disallowed


def is_disallowed(path: str, disallowed: list[str]) -> bool:
    path = (path or "/").lower()
    return any(path.startswith(prefix) for prefix in disallowed)


def _sync_fetch_robots(url: str, user_agent: str) -> list[str]:
    robots_url = _robots_url(url)
    try:
        response = requests.get(robots_url, headers={"User-Agent": user_agent}, timeout=ROBOTS_TIMEOUT)
    except requests.RequestException as exc:
        # unreachable robots.txt: crawl unrestricted
        logger.warning("robots.txt unreachable at %s, assuming no restrictions: %s", robots_url, exc)
        return []

    if not response.ok:
        # missing robots.txt: crawl unrestricted
        logger.info("robots.txt returned %d at %s, assuming no restrictions", response.status_code, robots_url)
        return []

    disallowed = parse_robots(response.text, user_agent)
    logger.info("robots.txt at %s: %d disallowed prefixes", robots_url, len(disallowed))
    return disallowed


async def fetch_disallowed(url: str, user_agent: str = DEFAULT_USER_AGENT, respect_robots: bool = True) -> list[str]:
    """
    Fetch and parse the origin's robots.txt once per run.
    Returns an empty list when robots are not respected or cannot be read.
    """
    if not respect_robots:
        return []

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _sync_fetch_robots, url, user_agent)
