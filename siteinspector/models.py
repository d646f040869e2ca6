from dataclasses import dataclass, field, asdict
import hashlib
from datetime import datetime, timezone
from typing import Optional
import uuid


RUN_RUNNING = "running"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"

DEFAULT_USER_AGENT = "SiteInspector/1.0"


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def short_hash(value: str) -> str:
    """First 16 hex chars of SHA-256; used as a stable identity for URLs and secret values."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class Project:
    id: str
    owner_id: str
    start_url: str
    name: str = ""

    # traversal bounds
    max_depth: int = 3
    max_pages: int = 500
    concurrency: int = 5                # configured, not honored (strictly sequential engine)
    crawl_delay: int = 200              # milliseconds between fetches

    # politeness / scoping
    user_agent: str = DEFAULT_USER_AGENT
    same_domain_only: bool = True
    respect_robots: bool = True
    follow_redirects: bool = True
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        for key in ("include_patterns", "exclude_patterns"):
            if key in known:
                known[key] = tuple(p.strip() for p in known[key] or () if p and p.strip())
        return cls(**known)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["include_patterns"] = list(self.include_patterns)
        data["exclude_patterns"] = list(self.exclude_patterns)
        return data


@dataclass
class CrawlRun:
    project_id: str
    pages_total: int
    id: str = field(default_factory=_new_id)
    status: str = RUN_RUNNING
    started_at: str = field(default_factory=utcnow)
    ended_at: Optional[str] = None
    pages_scanned: int = 0
    errors_count: int = 0
    warnings_count: int = 0
    error: Optional[str] = None         # populated only when status == failed

    @property
    def is_terminal(self) -> bool:
        return self.status in (RUN_COMPLETED, RUN_FAILED)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CrawlRun":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass(frozen=True)
class PageRecord:
    crawl_run_id: str
    url: str
    status_code: int
    response_time: int                  # ms
    content_type: str = ""

    title: str = ""
    meta_description: str = ""
    canonical: Optional[str] = None

    scripts_count: int = 0
    stylesheets_count: int = 0
    images_count: int = 0
    links_count: int = 0

    depth: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AssetRecord:
    crawl_run_id: str
    url: str
    type: str                           # script | stylesheet | image | font | ... | other
    size: int = 0
    hash: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class NetworkRequest:
    crawl_run_id: str
    url: str
    status_code: int
    timing: int                         # ms
    size: int = 0
    method: str = "GET"
    type: str = "document"
    initiator: str = "crawler"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Finding:
    crawl_run_id: str
    title: str
    severity: str                       # high | medium | low | info
    type: str                           # seo | security | quality
    category: str
    location: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TechStackItem:
    crawl_run_id: str
    name: str
    category: str
    version: Optional[str] = None
    confidence: float = 0.8

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SecretMatch:
    """A credential-like string found in page source. The raw value is never stored."""
    crawl_run_id: str
    type: str                           # e.g. "AWS Access Key"
    masked_value: str
    severity: str
    location: str                       # page URL
    line: int
    context: str                        # surrounding source, secret masked
    hash: str                           # identity of the raw value

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Endpoint:
    crawl_run_id: str
    url: str
    method: str                         # GET | POST | ... | WS
    type: str                           # rest | graphql | websocket
    found_in: str                       # page URL
    line: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CrawlPageResult:
    """Outcome of fetching a single frontier URL."""
    url: str
    success: bool
    status: int                         # HTTP status; 0 when the request itself failed
    page: Optional[PageRecord] = None
    assets_count: int = 0
    links: list[str] = field(default_factory=list)
    is_asset: bool = False
    skipped: bool = False               # redirect target rejected; nothing recorded
    error: Optional[str] = None

    # audit tallies for the run row
    findings_count: int = 0
    errors_count: int = 0
    warnings_count: int = 0
    tech_count: int = 0
    endpoints_count: int = 0

    @property
    def responded(self) -> bool:
        return self.status > 0 and not self.skipped

    def to_dict(self) -> dict:
        if not self.success:
            data = {"success": False, "status": self.status}
            if self.error:
                data["error"] = self.error
            return data
        data = {
            "success": True,
            "page": self.page.to_dict() if self.page else None,
            "assetsCount": self.assets_count,
            "findingsCount": self.findings_count,
            "techCount": self.tech_count,
            "endpointsCount": self.endpoints_count,
            "linksFound": len(self.links),
            "links": list(self.links),
        }
        if self.is_asset:
            data["type"] = "asset"
        return data


@dataclass
class RunSummary:
    crawl_run_id: str
    pages_crawled: int
    urls_discovered: int
    status: str = RUN_COMPLETED

    def to_dict(self) -> dict:
        return {
            "success": True,
            "crawlRunId": self.crawl_run_id,
            "pagesCrawled": self.pages_crawled,
            "urlsDiscovered": self.urls_discovered,
        }
