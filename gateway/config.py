"""Configuration settings for the gateway server."""

import os
from dataclasses import dataclass


GATEWAY_HOST = os.environ.get("SHAREFETCH_HOST", "0.0.0.0")

GATEWAY_PORT = int(os.environ.get("SHAREFETCH_PORT", "8000"))

UPSTREAM_BASE_URL = os.environ.get(
    "SHAREFETCH_UPSTREAM_BASE_URL", "https://terabox.hnn.workers.dev"
).rstrip("/")

UPSTREAM_TIMEOUT_SECONDS = float(os.environ.get("SHAREFETCH_UPSTREAM_TIMEOUT_SECONDS", "10"))

CACHE_TTL_SECONDS = float(os.environ.get("SHAREFETCH_CACHE_TTL_SECONDS", "300"))

CACHE_MAX_ENTRIES = int(os.environ.get("SHAREFETCH_CACHE_MAX_ENTRIES", "1024"))

STREAM_CHUNK_SIZE = int(os.environ.get("SHAREFETCH_STREAM_CHUNK_SIZE", str(64 * 1024)))

STREAM_IDLE_TIMEOUT_SECONDS = float(os.environ.get("SHAREFETCH_STREAM_IDLE_TIMEOUT_SECONDS", "60"))

# 0 disables the redirect strategy
REDIRECT_THRESHOLD_BYTES = int(os.environ.get("SHAREFETCH_REDIRECT_THRESHOLD_BYTES", "0"))

UPSTREAM_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
)

RESPONSE_CACHE_CONTROL = "public, max-age=3600"


@dataclass(frozen=True)
class GatewaySettings:
    """
    Runtime settings handed to the application factory.

    Defaults come from the SHAREFETCH_* environment variables.
    """
    host: str = GATEWAY_HOST
    port: int = GATEWAY_PORT
    upstream_base_url: str = UPSTREAM_BASE_URL
    upstream_timeout: float = UPSTREAM_TIMEOUT_SECONDS
    cache_ttl: float = CACHE_TTL_SECONDS
    cache_max_entries: int = CACHE_MAX_ENTRIES
    stream_chunk_size: int = STREAM_CHUNK_SIZE
    stream_idle_timeout: float = STREAM_IDLE_TIMEOUT_SECONDS
    redirect_threshold: int = REDIRECT_THRESHOLD_BYTES
    user_agent: str = UPSTREAM_USER_AGENT

    @property
    def get_info_url(self) -> str:
        return f"{self.upstream_base_url}/api/get-info"

    @property
    def get_download_url(self) -> str:
        return f"{self.upstream_base_url}/api/get-downloadp"

    def default_upstream_headers(self) -> dict:
        """Browser-like headers the helper API expects on every call."""
        return {
            "User-Agent": self.user_agent,
            "Referer": f"{self.upstream_base_url}/",
        }


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "X-Requested-With, Content-Type, Accept, Authorization, Range, If-Range",
    "Access-Control-Expose-Headers": (
        "Content-Length, Content-Range, Content-Disposition, Accept-Ranges, "
        "X-File-Name, X-File-Size, X-File-Md5, X-Request-ID"
    ),
}
