"""
Record store used by the crawl engine.

The engine writes one CrawlRun plus page, asset, network request, finding,
tech-stack, secret and endpoint rows. Projects are read-only from the
engine's point of view.
`MemoryStore` keeps everything in process; `RedisStore` persists JSON rows
in Redis so runs can be polled from another process.
"""
import json
import logging
from typing import Optional

import redis

from .models import (
    AssetRecord,
    CrawlRun,
    Endpoint,
    Finding,
    NetworkRequest,
    PageRecord,
    Project,
    SecretMatch,
    TechStackItem,
)

logger = logging.getLogger(__name__)


class CrawlStore:
    """Interface for the persistence collaborator."""

    def get_project(self, project_id: str) -> Optional[Project]:
        raise NotImplementedError

    def save_project(self, project: Project) -> None:
        raise NotImplementedError

    def set_project_status(self, project_id: str, status: str) -> None:
        raise NotImplementedError

    def create_run(self, run: CrawlRun) -> CrawlRun:
        raise NotImplementedError

    def update_run(self, run: CrawlRun) -> None:
        raise NotImplementedError

    def get_run(self, run_id: str) -> Optional[CrawlRun]:
        raise NotImplementedError

    def add_page(self, page: PageRecord) -> None:
        raise NotImplementedError

    def add_assets(self, assets: list[AssetRecord]) -> None:
        raise NotImplementedError

    def add_network_request(self, request: NetworkRequest) -> None:
        raise NotImplementedError

    def add_findings(self, findings: list[Finding]) -> None:
        raise NotImplementedError

    def add_tech(self, items: list[TechStackItem]) -> None:
        raise NotImplementedError

    def add_secrets(self, secrets: list[SecretMatch]) -> None:
        raise NotImplementedError

    def add_endpoints(self, endpoints: list[Endpoint]) -> None:
        raise NotImplementedError

    def list_pages(self, run_id: str) -> list[dict]:
        raise NotImplementedError

    def list_assets(self, run_id: str) -> list[dict]:
        raise NotImplementedError

    def list_findings(self, run_id: str) -> list[dict]:
        raise NotImplementedError

    def list_endpoints(self, run_id: str) -> list[dict]:
        raise NotImplementedError

    def is_healthy(self) -> bool:
        return True


class MemoryStore(CrawlStore):
    def __init__(self):
        self.projects: dict[str, Project] = {}
        self.project_status: dict[str, str] = {}
        self.runs: dict[str, CrawlRun] = {}
        self.pages: list[PageRecord] = []
        self.assets: list[AssetRecord] = []
        self.network_requests: list[NetworkRequest] = []
        self.findings: list[Finding] = []
        self.tech: list[TechStackItem] = []
        self.secrets: list[SecretMatch] = []
        self.endpoints: list[Endpoint] = []

    def get_project(self, project_id):
        return self.projects.get(project_id)

    def save_project(self, project):
        self.projects[project.id] = project

    def set_project_status(self, project_id, status):
        self.project_status[project_id] = status

    def create_run(self, run):
        self.runs[run.id] = CrawlRun.from_dict(run.to_dict())
        return run

    def update_run(self, run):
        self.runs[run.id] = CrawlRun.from_dict(run.to_dict())

    def get_run(self, run_id):
        run = self.runs.get(run_id)
        return CrawlRun.from_dict(run.to_dict()) if run else None

    def add_page(self, page):
        self.pages.append(page)

    def add_assets(self, assets):
        self.assets.extend(assets)

    def add_network_request(self, request):
        self.network_requests.append(request)

    def add_findings(self, findings):
        self.findings.extend(findings)

    def add_tech(self, items):
        self.tech.extend(items)

    def add_secrets(self, secrets):
        self.secrets.extend(secrets)

    def add_endpoints(self, endpoints):
        self.endpoints.extend(endpoints)

    def list_pages(self, run_id):
        return [p.to_dict() for p in self.pages if p.crawl_run_id == run_id]

    def list_assets(self, run_id):
        return [a.to_dict() for a in self.assets if a.crawl_run_id == run_id]

    def list_findings(self, run_id):
        return [f.to_dict() for f in self.findings if f.crawl_run_id == run_id]

    def list_endpoints(self, run_id):
        return [e.to_dict() for e in self.endpoints if e.crawl_run_id == run_id]


class RedisStore(CrawlStore):
    """
    Rows are JSON documents:
      project:{id}, project:{id}:status   -> string
      run:{id}                            -> string
      run:{id}:{pages|assets|network|findings|tech|secrets|endpoints} -> list, append-only
    """

    def __init__(self, client: redis.Redis, prefix: str = "siteinspector"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisStore":
        client = redis.from_url(url, decode_responses=True, socket_connect_timeout=2)
        return cls(client, **kwargs)

    def _key(self, *parts: str) -> str:
        return ":".join((self.prefix, *parts))

    def _get_json(self, key: str) -> Optional[dict]:
        raw = self.client.get(key)
        return json.loads(raw) if raw else None

    def _append(self, run_id: str, kind: str, rows: list) -> None:
        if rows:
            self.client.rpush(self._key("run", run_id, kind), *(json.dumps(r.to_dict()) for r in rows))

    def _list(self, run_id: str, kind: str) -> list[dict]:
        return [json.loads(raw) for raw in self.client.lrange(self._key("run", run_id, kind), 0, -1)]

    def get_project(self, project_id):
        data = self._get_json(self._key("project", project_id))
        return Project.from_dict(data) if data else None

    def save_project(self, project):
        self.client.set(self._key("project", project.id), json.dumps(project.to_dict()))

    def set_project_status(self, project_id, status):
        self.client.set(self._key("project", project_id, "status"), status)

    def create_run(self, run):
        self.update_run(run)
        return run

    def update_run(self, run):
        self.client.set(self._key("run", run.id), json.dumps(run.to_dict()))

    def get_run(self, run_id):
        data = self._get_json(self._key("run", run_id))
        return CrawlRun.from_dict(data) if data else None

    def add_page(self, page):
        self._append(page.crawl_run_id, "pages", [page])

    def add_assets(self, assets):
        if assets:
            self._append(assets[0].crawl_run_id, "assets", assets)

    def add_network_request(self, request):
        self._append(request.crawl_run_id, "network", [request])

    def add_findings(self, findings):
        if findings:
            self._append(findings[0].crawl_run_id, "findings", findings)

    def add_tech(self, items):
        if items:
            self._append(items[0].crawl_run_id, "tech", items)

    def add_secrets(self, secrets):
        if secrets:
            self._append(secrets[0].crawl_run_id, "secrets", secrets)

    def add_endpoints(self, endpoints):
        if endpoints:
            self._append(endpoints[0].crawl_run_id, "endpoints", endpoints)

    def list_pages(self, run_id):
        return self._list(run_id, "pages")

    def list_assets(self, run_id):
        return self._list(run_id, "assets")

    def list_findings(self, run_id):
        return self._list(run_id, "findings")

    def list_endpoints(self, run_id):
        return self._list(run_id, "endpoints")

    def is_healthy(self) -> bool:
        try:
            self.client.ping()
            return True
        except redis.RedisError as exc:
            logger.warning("Redis health check failed: %s", exc)
            return False


def build_store(backend: str, redis_url: str) -> CrawlStore:
    if backend == "redis":
        logger.info("Using Redis record store at %s", redis_url)
        return RedisStore.from_url(redis_url)
    return MemoryStore()
