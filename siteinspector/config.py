import os
from dataclasses import dataclass, field


def _parse_tokens(raw: str) -> dict[str, str]:
    """Parse `token:caller,token2:caller2` into a token -> caller id map."""
    tokens = {}
    for pair in raw.split(","):
        token, sep, caller = pair.strip().partition(":")
        if sep and token.strip() and caller.strip():
            tokens[token.strip()] = caller.strip()
    return tokens


@dataclass
class Settings:
    store_backend: str = "memory"           # memory | redis
    redis_url: str = "redis://localhost:6379"
    api_tokens: dict[str, str] = field(default_factory=dict)
    fetch_timeout: int = 15                 # seconds
    log_level: str = "INFO"
    rate_limit_requests: int = 30
    rate_limit_window: int = 60

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            store_backend=os.getenv("SITEINSPECTOR_STORE", "memory").lower(),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            api_tokens=_parse_tokens(os.getenv("SITEINSPECTOR_API_TOKENS", "")),
            fetch_timeout=int(os.getenv("FETCH_TIMEOUT_SECONDS", "15")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            rate_limit_requests=int(os.getenv("RATE_LIMIT_REQUESTS", "30")),
            rate_limit_window=int(os.getenv("RATE_LIMIT_WINDOW", "60")),
        )
