import logging
from typing import Optional

from fastapi import APIRouter, Depends

from siteinspector.runner import CrawlRunManager
from siteinspector.store import CrawlStore
from .deps import get_caller_id, get_manager, get_store
from .schemas import (
    CrawlPageRequest,
    CrawlPageResponse,
    ErrorResponse,
    HealthResponse,
    RunResponse,
    StartRunRequest,
    StartRunResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_ERRORS = {code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 500)}


@router.post("/runs", response_model=StartRunResponse, responses=_ERRORS, summary="Crawl a project's site")
async def start_run(
    request: StartRunRequest,
    caller_id: Optional[str] = Depends(get_caller_id),
    manager: CrawlRunManager = Depends(get_manager),
) -> StartRunResponse:
    """
    Runs one breadth-first crawl of the project's start URL to completion.

    - Requires a bearer token belonging to the project owner.
    - Honors the project's robots, scope, pattern, depth, page cap and delay settings.
    - Returns once the run row is `completed`; progress can be polled at `GET /runs/{id}`.
    """
    summary = await manager.start_run(request.projectId, caller_id)
    return StartRunResponse(**summary.to_dict())


@router.post("/pages", response_model=CrawlPageResponse, response_model_exclude_none=True,
             responses=_ERRORS, summary="Fetch and record a single URL")
async def crawl_single_page(
    request: CrawlPageRequest,
    caller_id: Optional[str] = Depends(get_caller_id),
    manager: CrawlRunManager = Depends(get_manager),
) -> CrawlPageResponse:
    result = await manager.crawl_one(request.url, request.crawlRunId, caller_id, project_id=request.projectId)
    return CrawlPageResponse(**result.to_dict())


@router.get("/runs/{run_id}", response_model=RunResponse, responses=_ERRORS, summary="Poll a crawl run")
async def get_run(
    run_id: str,
    caller_id: Optional[str] = Depends(get_caller_id),
    manager: CrawlRunManager = Depends(get_manager),
) -> RunResponse:
    return RunResponse(**manager.get_run(run_id, caller_id).to_dict())


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(store: CrawlStore = Depends(get_store)) -> HealthResponse:
    store_status = "connected" if store.is_healthy() else "unavailable"
    return HealthResponse(status="ok", store=store_status)
