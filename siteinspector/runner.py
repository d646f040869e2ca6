import logging
from typing import Optional

from .auth import Authorizer
from .core import crawl_page
from .errors import CrawlFailedError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from .fetcher import DEFAULT_TIMEOUT
from .frontier import FrontierScheduler
from .models import RUN_COMPLETED, RUN_FAILED, CrawlPageResult, CrawlRun, Project, RunSummary, utcnow
from .robots import fetch_disallowed
from .store import CrawlStore

logger = logging.getLogger(__name__)


class CrawlRunManager:
    """
    Drives one crawl run end to end: checks, run row, robots, frontier, finalization.

    The run row always reaches a terminal status. If the frontier loop raises,
    the run is written as `failed` before the error propagates.
    """

    def __init__(self, store: CrawlStore, authorizer: Optional[Authorizer] = None, fetch_timeout: int = DEFAULT_TIMEOUT):
        self.store = store
        self.authorizer = authorizer or Authorizer()
        self.fetch_timeout = fetch_timeout

    def _load_owned_project(self, project_id: Optional[str], caller_id: Optional[str]) -> Project:
        if not project_id:
            raise ValidationError("projectId is required")
        if not caller_id:
            raise UnauthorizedError("Unauthorized")
        project = self.store.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        if not self.authorizer.is_project_owner(caller_id, project):
            raise ForbiddenError("Forbidden")
        return project

    async def start_run(self, project_id: Optional[str], caller_id: Optional[str]) -> RunSummary:
        project = self._load_owned_project(project_id, caller_id)

        run = self.store.create_run(CrawlRun(project_id=project.id, pages_total=project.max_pages))
        self.store.set_project_status(project.id, "running")
        logger.info("Run %s started for project %s (%s)", run.id, project.id, project.start_url)

        scheduler = None
        error: Optional[BaseException] = None
        try:
            disallowed = await fetch_disallowed(project.start_url, project.user_agent, project.respect_robots)

            async def page_step(url: str, depth: int) -> CrawlPageResult:
                return await crawl_page(
                    url, run.id, project, self.store, depth=depth, timeout=self.fetch_timeout,
                    accept_redirect=scheduler.accept_redirect,
                )

            def on_progress(pages_scanned: int, errors_count: int, warnings_count: int) -> None:
                run.pages_scanned = pages_scanned
                run.errors_count = errors_count
                run.warnings_count = warnings_count
                self.store.update_run(run)

            scheduler = FrontierScheduler(project, page_step, disallowed=disallowed, on_progress=on_progress)
            scheduler.seed()
            await scheduler.run()
        except Exception as exc:
            error = exc
            raise CrawlFailedError(f"Crawl run failed: {exc}", run.id) from exc
        except BaseException as exc:
            error = exc
            raise
        finally:
            self._finalize(run, project, scheduler, error)

        return RunSummary(
            crawl_run_id=run.id,
            pages_crawled=scheduler.pages_scanned,
            urls_discovered=scheduler.urls_discovered,
        )

    def _finalize(
        self,
        run: CrawlRun,
        project: Project,
        scheduler: Optional[FrontierScheduler],
        error: Optional[BaseException],
    ) -> None:
        run.status = RUN_FAILED if error else RUN_COMPLETED
        run.ended_at = utcnow()
        if scheduler is not None:
            run.pages_scanned = scheduler.pages_scanned
            run.errors_count = scheduler.errors_count
            run.warnings_count = scheduler.warnings_count
        if error is not None:
            run.error = str(error) or type(error).__name__
            logger.error("Run %s failed: %s", run.id, run.error)
        else:
            logger.info("Run %s completed: %d pages", run.id, run.pages_scanned)

        self.store.update_run(run)
        self.store.set_project_status(project.id, run.status)

    def get_run(self, run_id: str, caller_id: Optional[str]) -> CrawlRun:
        """Progress polling: the run row as last written."""
        if not caller_id:
            raise UnauthorizedError("Unauthorized")
        run = self.store.get_run(run_id)
        if run is None:
            raise NotFoundError("Crawl run not found")
        project = self.store.get_project(run.project_id)
        if project is None or not self.authorizer.is_run_owner(caller_id, run, project):
            raise ForbiddenError("Forbidden")
        return run

    async def crawl_one(
        self,
        url: Optional[str],
        run_id: Optional[str],
        caller_id: Optional[str],
        project_id: Optional[str] = None,
    ) -> CrawlPageResult:
        """Standalone "fetch one page" step for an existing run."""
        if not url or not run_id:
            raise ValidationError("url and crawlRunId are required")
        if not caller_id:
            raise UnauthorizedError("Unauthorized")
        run = self.store.get_run(run_id)
        if run is None:
            raise NotFoundError("Crawl run not found")
        if project_id and project_id != run.project_id:
            raise ForbiddenError("Forbidden")
        project = self.store.get_project(run.project_id)
        if project is None or not self.authorizer.is_run_owner(caller_id, run, project):
            raise ForbiddenError("Forbidden")

        result = await crawl_page(url, run.id, project, self.store, timeout=self.fetch_timeout)
        if result.responded:
            run.pages_scanned = min(run.pages_scanned + 1, run.pages_total)
        run.errors_count += result.errors_count
        run.warnings_count += result.warnings_count
        self.store.update_run(run)
        return result

