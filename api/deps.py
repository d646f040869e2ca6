import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from siteinspector.config import Settings
from siteinspector.runner import CrawlRunManager
from siteinspector.store import CrawlStore, build_store

logger = logging.getLogger(__name__)

# auto_error=False: a missing token is reported by the run manager as a 401
BEARER = HTTPBearer(auto_error=False)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache
def get_store() -> CrawlStore:
    settings = get_settings()
    return build_store(settings.store_backend, settings.redis_url)


def get_manager(store: CrawlStore = Depends(get_store), settings: Settings = Depends(get_settings)) -> CrawlRunManager:
    return CrawlRunManager(store, fetch_timeout=settings.fetch_timeout)


def get_caller_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(BEARER),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """Resolve the bearer token to a caller id; None when absent or unknown."""
    if credentials is None:
        return None
    caller_id = settings.api_tokens.get(credentials.credentials)
    if caller_id is None:
        logger.warning("Rejected unknown bearer token")
    return caller_id
