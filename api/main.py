import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from siteinspector.errors import CrawlFailedError, SiteInspectorError
from .deps import get_settings
from .middleware import RateLimitMiddleware, RequestLoggingMiddleware
from .routes import router

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="SiteInspector Crawl Engine",
    description=(
        "Crawls a project's website breadth-first within its robots, scope and rate "
        "limits, recording pages, assets, network requests and audit findings."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# middleware stack: outermost runs first on request, last on response
app.add_middleware(
    RateLimitMiddleware,
    requests_per_window=settings.rate_limit_requests,
    window_seconds=settings.rate_limit_window,
)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(SiteInspectorError)
async def siteinspector_error_handler(request: Request, exc: SiteInspectorError):
    content = {"error": exc.message}
    if isinstance(exc, CrawlFailedError):
        content["crawlRunId"] = exc.crawl_run_id
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logging.getLogger(__name__).error("Unhandled error: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content={"error": "An unexpected error occurred."})


app.include_router(router)
