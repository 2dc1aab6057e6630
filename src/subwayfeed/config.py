"""
Configuration for MTA feed access.

Values come from keyword arguments or, via FeedConfig.from_env(), from
environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds"
DEFAULT_CACHE_TTL_MS = 10_000
DEFAULT_RETRY_DELAY_MS = 2_000
DEFAULT_MAX_RETRIES = 1
DEFAULT_REQUEST_TIMEOUT_S = 30.0


def get_api_key() -> Optional[str]:
    """Get the MTA API key from the environment. The feeds also work without one."""
    return os.getenv("MTA_API_KEY") or None


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass
class FeedConfig:
    """Settings shared by every feed request."""
    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    chunk_size: int = 64 * 1024

    @classmethod
    def from_env(cls) -> "FeedConfig":
        """Build a config from MTA_* and SUBWAYFEED_* environment variables."""
        timeout = os.getenv("SUBWAYFEED_REQUEST_TIMEOUT_S")
        return cls(
            base_url=os.getenv("MTA_FEED_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            api_key=get_api_key(),
            cache_ttl_ms=_int_env("SUBWAYFEED_CACHE_TTL_MS", DEFAULT_CACHE_TTL_MS),
            max_retries=_int_env("SUBWAYFEED_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            retry_delay_ms=_int_env("SUBWAYFEED_RETRY_DELAY_MS", DEFAULT_RETRY_DELAY_MS),
            request_timeout_s=float(timeout) if timeout else DEFAULT_REQUEST_TIMEOUT_S,
        )

    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def headers(self) -> dict:
        """Request headers; x-api-key only when a key is configured."""
        return {"x-api-key": self.api_key} if self.api_key else {}

    def url_for(self, endpoint) -> str:
        return f"{self.base_url}/{endpoint.value}"
