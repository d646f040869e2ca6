import logging
from typing import Callable, Optional

import requests

from .classifier import asset_type_from_content_type
from .extractor import build_error_page_record, extract_page, url_hash
from .fetcher import DEFAULT_TIMEOUT, FetchOutcome, FetchResponse, classify, fetch_url
from .filters import normalize_url
from .findings import broken_page_finding, count_by_severity, network_error_finding
from .models import AssetRecord, CrawlPageResult, NetworkRequest, Project
from .parser import parse_html
from .store import CrawlStore

logger = logging.getLogger(__name__)


def redirected(url: str, final_url: str) -> bool:
    return bool(final_url) and normalize_url(final_url) != normalize_url(url)


def _record_asset(response: FetchResponse, run_id: str, store: CrawlStore) -> CrawlPageResult:
    store.add_assets([AssetRecord(
        crawl_run_id=run_id,
        url=response.url,
        type=asset_type_from_content_type(response.content_type),
        size=response.size,
        hash=url_hash(response.url),
    )])
    return CrawlPageResult(
        url=response.url, success=True, status=response.status_code, assets_count=1, is_asset=True,
    )


def _record_error_page(response: FetchResponse, run_id: str, store: CrawlStore, depth: int) -> CrawlPageResult:
    store.add_page(build_error_page_record(run_id, response, depth))
    findings = [broken_page_finding(run_id, response.url)] if response.status_code == 404 else []
    store.add_findings(findings)
    errors, warnings = count_by_severity(findings)
    return CrawlPageResult(
        url=response.url, success=False, status=response.status_code,
        findings_count=len(findings), errors_count=errors, warnings_count=warnings,
    )


def _record_page(response: FetchResponse, run_id: str, store: CrawlStore, depth: int) -> CrawlPageResult:
    parsed = parse_html(response.body, url=response.final_url)
    extraction = extract_page(parsed, response.body, run_id, response, depth)

    store.add_page(extraction.page)
    store.add_assets(extraction.assets)
    store.add_findings(extraction.findings)
    store.add_tech(extraction.tech)
    store.add_secrets(extraction.secrets)
    store.add_endpoints(extraction.endpoints)

    errors, warnings = count_by_severity(extraction.findings)
    return CrawlPageResult(
        url=response.url,
        success=True,
        status=response.status_code,
        page=extraction.page,
        assets_count=len(extraction.assets),
        links=extraction.links,
        findings_count=len(extraction.findings),
        errors_count=errors,
        warnings_count=warnings,
        tech_count=len(extraction.tech),
        endpoints_count=len(extraction.endpoints),
    )


async def crawl_page(
    url: str,
    run_id: str,
    project: Project,
    store: CrawlStore,
    depth: int = 0,
    timeout: int = DEFAULT_TIMEOUT,
    accept_redirect: Optional[Callable[[str], bool]] = None,
) -> CrawlPageResult:
    """
    Fetch one frontier URL and write its records.
    Never raises for per-URL failures; they are captured in the result.

    When redirects are followed, `accept_redirect` is asked about the final URL.
    A rejected target (out of scope, or already crawled) gets no page, asset
    or finding records and contributes no links.
    """
    try:
        response = await fetch_url(
            url, user_agent=project.user_agent, follow_redirects=project.follow_redirects, timeout=timeout,
        )
    except requests.RequestException as exc:
        logger.warning("Fetch failed for %s: %s", url, exc)
        finding = network_error_finding(run_id, url, str(exc))
        store.add_findings([finding])
        return CrawlPageResult(url=url, success=False, status=0, error=str(exc), findings_count=1, errors_count=1)

    store.add_network_request(NetworkRequest(
        crawl_run_id=run_id, url=url, status_code=response.status_code,
        timing=response.elapsed_ms, size=response.size,
    ))

    if accept_redirect and redirected(url, response.final_url) and not accept_redirect(response.final_url):
        logger.info("Redirect %s -> %s rejected by scope filters", url, response.final_url)
        return CrawlPageResult(
            url=url, success=False, status=response.status_code, skipped=True,
            error=f"Redirected to {response.final_url}, which is out of scope or already crawled",
        )

    outcome = classify(response)
    if outcome is FetchOutcome.ERROR:
        logger.info("HTTP %d for %s", response.status_code, url)
        return _record_error_page(response, run_id, store, depth)
    if outcome is FetchOutcome.ASSET:
        logger.info("Non-HTML response (%s) recorded as asset: %s", response.content_type, url)
        return _record_asset(response, run_id, store)

    try:
        return _record_page(response, run_id, store, depth)
    except Exception as exc:
        logger.error("Parse/extract failed for %s: %s", url, exc)
        return CrawlPageResult(url=url, success=False, status=response.status_code, error=str(exc))
