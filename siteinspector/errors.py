class SiteInspectorError(Exception):
    """Base error. `status_code` classifies the failure for the HTTP layer."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SiteInspectorError):
    status_code = 400


class UnauthorizedError(SiteInspectorError):
    status_code = 401


class ForbiddenError(SiteInspectorError):
    status_code = 403


class NotFoundError(SiteInspectorError):
    status_code = 404


class CrawlFailedError(SiteInspectorError):
    """Raised when a run aborts after being marked failed."""

    status_code = 500

    def __init__(self, message: str, crawl_run_id: str):
        super().__init__(message)
        self.crawl_run_id = crawl_run_id
