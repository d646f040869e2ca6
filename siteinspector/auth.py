from typing import Optional

from .models import CrawlRun, Project


class Authorizer:
    """
    Ownership checks for crawl operations.

    The default rule is "the caller owns the project". Deployments with a
    richer model (teams, roles) subclass this.
    """

    def is_project_owner(self, caller_id: Optional[str], project: Project) -> bool:
        return bool(caller_id) and caller_id == project.owner_id

    def is_run_owner(self, caller_id: Optional[str], run: CrawlRun, project: Project) -> bool:
        return run.project_id == project.id and self.is_project_owner(caller_id, project)
