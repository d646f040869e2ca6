from typing import Optional
from pydantic import BaseModel, field_validator


class StartRunRequest(BaseModel):
    # optional here so a missing id is reported as a 400, not a 422
    projectId: Optional[str] = None


class StartRunResponse(BaseModel):
    success: bool = True
    crawlRunId: str
    pagesCrawled: int
    urlsDiscovered: int


class CrawlPageRequest(BaseModel):
    url: Optional[str] = None
    crawlRunId: Optional[str] = None
    projectId: Optional[str] = None

    @field_validator("url")
    @classmethod
    def url_must_be_http(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v


class PageModel(BaseModel):
    crawl_run_id: str
    url: str
    status_code: int
    response_time: int
    content_type: str = ""
    title: str = ""
    meta_description: str = ""
    canonical: Optional[str] = None
    scripts_count: int = 0
    stylesheets_count: int = 0
    images_count: int = 0
    links_count: int = 0
    depth: int = 0


class CrawlPageResponse(BaseModel):
    success: bool
    status: Optional[int] = None        # set only when the target did not return 2xx
    error: Optional[str] = None

    type: Optional[str] = None          # "asset" for non-HTML responses
    page: Optional[PageModel] = None
    # success-only fields; left None so a failure serializes as {success, status[, error]}
    assetsCount: Optional[int] = None
    findingsCount: Optional[int] = None
    techCount: Optional[int] = None
    endpointsCount: Optional[int] = None
    linksFound: Optional[int] = None
    links: Optional[list[str]] = None


class RunResponse(BaseModel):
    id: str
    project_id: str
    status: str                         # running | completed | failed
    started_at: str
    ended_at: Optional[str] = None
    pages_scanned: int = 0
    pages_total: int = 0
    errors_count: int = 0
    warnings_count: int = 0
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    store: str  # "connected" or "unavailable"


class ErrorResponse(BaseModel):
    error: str
