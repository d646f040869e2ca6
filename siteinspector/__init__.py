from .core import crawl_page
from .frontier import FrontierScheduler
from .runner import CrawlRunManager
from .robots import fetch_disallowed, parse_robots
from .filters import admit
from .parser import parse_html
from .models import AssetRecord, CrawlPageResult, CrawlRun, PageRecord, Project, RunSummary
from .store import CrawlStore, MemoryStore, RedisStore

__all__ = [
    "crawl_page",
    "FrontierScheduler",
    "CrawlRunManager",
    "fetch_disallowed",
    "parse_robots",
    "admit",
    "parse_html",
    "AssetRecord",
    "CrawlPageResult",
    "CrawlRun",
    "PageRecord",
    "Project",
    "RunSummary",
    "CrawlStore",
    "MemoryStore",
    "RedisStore",
]
