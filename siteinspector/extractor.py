import logging
from dataclasses import dataclass, field

from .classifier import classify_asset, detect_endpoints, detect_tech
from .fetcher import FetchResponse
from .findings import detect_secrets, header_findings, mixed_content_findings, secret_findings, seo_findings
from .models import AssetRecord, Endpoint, Finding, PageRecord, SecretMatch, TechStackItem, short_hash

logger = logging.getLogger(__name__)


def url_hash(url: str) -> str:
    """Identity hash of a resource, keyed by its URL (first 16 hex chars of SHA-256)."""
    return short_hash(url)


@dataclass
class Extraction:
    page: PageRecord
    assets: list[AssetRecord] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)
    tech: list[TechStackItem] = field(default_factory=list)
    secrets: list[SecretMatch] = field(default_factory=list)
    endpoints: list[Endpoint] = field(default_factory=list)
    links: list[str] = field(default_factory=list)


def build_page_record(parsed: dict, run_id: str, response: FetchResponse, depth: int = 0) -> PageRecord:
    return PageRecord(
        crawl_run_id=run_id,
        url=response.url,
        status_code=response.status_code,
        response_time=response.elapsed_ms,
        content_type=response.content_type,
        title=parsed.get("title") or "",
        meta_description=parsed.get("description") or "",
        canonical=parsed.get("canonical"),
        scripts_count=parsed.get("scripts_count", 0),
        stylesheets_count=parsed.get("stylesheets_count", 0),
        images_count=parsed.get("images_count", 0),
        links_count=parsed.get("links_count", 0),
        depth=depth,
    )


def build_error_page_record(run_id: str, response: FetchResponse, depth: int = 0) -> PageRecord:
    """Non-2xx responses keep status and timing; metadata stays empty."""
    return PageRecord(
        crawl_run_id=run_id,
        url=response.url,
        status_code=response.status_code,
        response_time=response.elapsed_ms,
        content_type=response.content_type,
        depth=depth,
    )


def build_asset_records(parsed: dict, run_id: str) -> list[AssetRecord]:
    # parser already deduplicated by resolved URL
    return [
        AssetRecord(
            crawl_run_id=run_id,
            url=asset["url"],
            type=classify_asset(asset["url"], asset.get("kind")),
            size=0,
            hash=url_hash(asset["url"]),
        )
        for asset in parsed.get("assets", [])
    ]


def extract_page(parsed: dict, html: str, run_id: str, response: FetchResponse, depth: int = 0) -> Extraction:
    """
    Combine parsed HTML signals and response headers into the records for one page.
    """
    url = response.url
    secrets = detect_secrets(html, run_id, url)

    findings = (
        seo_findings(parsed, run_id, url)
        + header_findings(response.headers, run_id, url)
        + mixed_content_findings(parsed, run_id, url)
        + secret_findings(secrets)
    )
    tech = [
        TechStackItem(crawl_run_id=run_id, name=t["name"], category=t["category"], version=t["version"])
        for t in detect_tech(html)
    ]
    endpoints = [
        Endpoint(crawl_run_id=run_id, url=e["url"], method=e["method"], type=e["type"], found_in=url, line=e["line"])
        for e in detect_endpoints(html)
    ]

    extraction = Extraction(
        page=build_page_record(parsed, run_id, response, depth),
        assets=build_asset_records(parsed, run_id),
        findings=findings,
        tech=tech,
        secrets=secrets,
        endpoints=endpoints,
        links=list(parsed.get("links", [])),
    )
    logger.debug(
        "Extracted %s: %d assets, %d links, %d findings, %d endpoints",
        url, len(extraction.assets), len(extraction.links), len(extraction.findings), len(extraction.endpoints),
    )
    return extraction
