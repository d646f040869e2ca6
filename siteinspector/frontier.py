import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Optional

from .filters import admit, hostname_of, normalize_url
from .models import CrawlPageResult, Project

logger = logging.getLogger(__name__)

SEEDED = "seeded"
DRAINING = "draining"
EXHAUSTED = "exhausted"
CAPPED = "capped"

# (url, depth) -> result
PageStep = Callable[[str, int], Awaitable[CrawlPageResult]]


class FrontierScheduler:
    """
    Breadth-first frontier for one crawl run.

    Owns a FIFO queue of (url, depth) pairs and the visited set. URLs are
    filtered and marked visited when they are admitted, so each normalized URL
    is queued, and therefore fetched, at most once. Fetches are strictly
    sequential with `crawl_delay` ms between them (none before the first).
    """

    def __init__(
        self,
        project: Project,
        page_step: PageStep,
        disallowed: Optional[list[str]] = None,
        on_progress: Optional[Callable[[int, int, int], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.project = project
        self.page_step = page_step
        self.disallowed = disallowed or []
        self.on_progress = on_progress
        self._sleep = sleep

        self.base_host = hostname_of(project.start_url)
        self.queue: deque[tuple[str, int]] = deque()
        self.visited: set[str] = set()

        self.state = SEEDED
        self.pages_scanned = 0
        self.fetch_count = 0
        self.errors_count = 0
        self.warnings_count = 0

        if project.concurrency > 1:
            logger.warning(
                "concurrency=%d configured; fetches run one at a time", project.concurrency,
            )

    @property
    def urls_discovered(self) -> int:
        return len(self.visited)

    def offer(self, url: str, depth: int, check_includes: bool = True) -> bool:
        """Filter a discovered URL and, if admitted, mark it visited and queue it."""
        if depth > self.project.max_depth:
            return False
        if not admit(url, self.visited, self.base_host, self.project, self.disallowed, check_includes):
            return False
        self.visited.add(normalize_url(url))
        self.queue.append((url, depth))
        return True

    def accept_redirect(self, final_url: str) -> bool:
        """
        Vet the target of a followed redirect before its content is recorded.

        The target must pass the same scope, exclude and robots checks as a
        discovered link and must not be visited yet; it is then marked visited.
        A redirect of the start URL re-bases the domain scope onto its host.
        """
        if self.fetch_count == 1:
            self.base_host = hostname_of(final_url)
        if not admit(final_url, self.visited, self.base_host, self.project, self.disallowed, check_includes=False):
            return False
        self.visited.add(normalize_url(final_url))
        return True

    def seed(self) -> bool:
        # include patterns narrow discovered links, never the start page itself
        admitted = self.offer(self.project.start_url, 0, check_includes=False)
        if not admitted:
            logger.warning("Start URL %s rejected by scope/robots filters", self.project.start_url)
        self.state = SEEDED
        return admitted

    def _capped(self) -> bool:
        return self.pages_scanned >= self.project.max_pages

    async def _polite_delay(self) -> None:
        if self.fetch_count > 0 and self.project.crawl_delay > 0:
            await self._sleep(self.project.crawl_delay / 1000)

    async def _visit(self, url: str, depth: int) -> Optional[CrawlPageResult]:
        await self._polite_delay()
        self.fetch_count += 1
        try:
            return await self.page_step(url, depth)
        except Exception:
            # a single bad page yields no links; the run carries on
            logger.exception("Error crawling %s", url)
            return None

    async def run(self) -> int:
        """Drain the frontier. Returns pages_scanned."""
        self.state = DRAINING

        while self.queue and not self._capped():
            url, depth = self.queue.popleft()
            result = await self._visit(url, depth)
            if result is None:
                continue

            self.errors_count += result.errors_count
            self.warnings_count += result.warnings_count

            if result.responded:
                self.pages_scanned += 1
            if self.on_progress:
                # (pages_scanned, errors_count, warnings_count)
                self.on_progress(self.pages_scanned, self.errors_count, self.warnings_count)

            queued = sum(1 for link in result.links if self.offer(link, depth + 1))
            logger.debug("%s (depth %d): %d links, %d queued", url, depth, len(result.links), queued)

        self.state = CAPPED if self._capped() else EXHAUSTED
        logger.info(
            "Frontier %s: %d pages scanned, %d URLs discovered", self.state, self.pages_scanned, self.urls_discovered,
        )
        return self.pages_scanned
