"""Streaming proxy from the file host to the client, with header rewriting."""

import asyncio
from typing import AsyncIterator, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from common.logging_config import get_logger
from gateway.config import CORS_HEADERS, RESPONSE_CACHE_CONTROL, GatewaySettings
from gateway.exceptions import (
    UpstreamConnectionError,
    UpstreamHttpStatusError,
    UpstreamTimeoutError,
)
from gateway.types import FileMetadata, ProxyRequest

logger = get_logger(__name__)

# inbound (lower-case) -> outbound header name; anything else is dropped
FORWARDED_REQUEST_HEADERS = {
    "range": "Range",
    "if-range": "If-Range",
    "if-match": "If-Match",
    "if-none-match": "If-None-Match",
    "if-modified-since": "If-Modified-Since",
    "if-unmodified-since": "If-Unmodified-Since",
    "user-agent": "User-Agent",
    "accept": "Accept",
    "accept-language": "Accept-Language",
    "sec-ch-ua": "Sec-CH-UA",
    "sec-ch-ua-mobile": "Sec-CH-UA-Mobile",
    "sec-ch-ua-platform": "Sec-CH-UA-Platform",
}

# upstream (lower-case) -> response header name, copied verbatim when present
COPIED_RESPONSE_HEADERS = {
    "content-length": "Content-Length",
    "content-range": "Content-Range",
}

SUCCESS_STATUSES = (200, 206)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def encode_filename(filename: str) -> str:
    """Percent-encode a filename the way browsers' encodeURIComponent does."""
    return quote(filename, safe="!~*'()")


def select_forwarded_headers(client_headers: Mapping[str, str]) -> Dict[str, str]:
    """
    Keep only allow-listed client headers, renamed to their outbound form.

    Args:
        client_headers: Inbound request headers (any case)

    Returns:
        Headers to send upstream
    """
    forwarded = {}
    for name, value in client_headers.items():
        outbound = FORWARDED_REQUEST_HEADERS.get(name.lower())
        if outbound is not None:
            forwarded[outbound] = value
    return forwarded


def build_response_headers(
    metadata: FileMetadata,
    upstream_headers: Optional[Mapping[str, str]] = None,
    status_code: int = 200,
) -> Dict[str, str]:
    """
    Build the client-facing headers for a proxied file.

    Args:
        metadata: Metadata of the file being served
        upstream_headers: Headers of the upstream response, if one was opened
        status_code: Status that will be returned to the client

    Returns:
        Response headers
    """
    upstream = {name.lower(): value for name, value in (upstream_headers or {}).items()}
    filename = metadata.filename or "download"

    headers = {
        "Content-Type": upstream.get("content-type") or DEFAULT_CONTENT_TYPE,
        "Content-Disposition": f"attachment; filename*=UTF-8''{encode_filename(filename)}",
        "Accept-Ranges": "bytes",
        "Cache-Control": RESPONSE_CACHE_CONTROL,
        "X-File-Name": encode_filename(filename),
        "X-File-Size": str(metadata.size),
        "X-File-Md5": metadata.md5,
    }
    headers.update(CORS_HEADERS)

    # a decoded body no longer matches the upstream length
    encoded = upstream.get("content-encoding", "identity").lower() not in ("", "identity")

    if status_code == 200 and metadata.size > 0 and not encoded:
        headers["Content-Length"] = str(metadata.size)

    for name, outbound in COPIED_RESPONSE_HEADERS.items():
        if name == "content-length" and encoded:
            continue
        if name in upstream:
            headers[outbound] = upstream[name]

    return headers


class ProxiedStream:
    """
    An opened upstream response, ready to be relayed to the client.

    The body is relayed chunk by chunk; the upstream connection is released
    when the body is exhausted, when the relay fails, or when the consumer
    is cancelled (client disconnect).
    """

    def __init__(self, response: httpx.Response, metadata: FileMetadata, chunk_size: int):
        self.response = response
        self.metadata = metadata
        self.chunk_size = chunk_size
        self.status_code = response.status_code
        self.headers = build_response_headers(metadata, response.headers, response.status_code)
        self.bytes_sent = 0

    async def aiter_body(self) -> AsyncIterator[bytes]:
        """
        Yield the upstream body as received (identity encoding is requested).

        Yields:
            Raw body chunks of at most chunk_size bytes
        """
        try:
            async for chunk in self.response.aiter_bytes(self.chunk_size):
                self.bytes_sent += len(chunk)
                yield chunk
            logger.debug(f"Stream complete for {self.metadata.filename} ({self.bytes_sent} bytes)")
        except asyncio.CancelledError:
            logger.debug(
                f"Client disconnected from {self.metadata.filename} after {self.bytes_sent} bytes"
            )
            raise
        except httpx.TimeoutException:
            logger.warning(
                f"Upstream stalled while streaming {self.metadata.filename} after {self.bytes_sent} bytes"
            )
        except httpx.HTTPError as e:
            logger.warning(
                f"Upstream failed while streaming {self.metadata.filename} "
                f"after {self.bytes_sent} bytes: {type(e).__name__}"
            )
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if not self.response.is_closed:
            await self.response.aclose()


class StreamingProxy:
    """
    Relays a resolved download link to the client.

    Only allow-listed client headers go upstream; a Range header is passed
    through verbatim and never added when the client did not send one.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Optional[GatewaySettings] = None):
        """
        Initialize proxy.

        Args:
            client: Shared async HTTP client
            settings: Gateway settings (defaults from environment)
        """
        self.client = client
        self.settings = settings or GatewaySettings()

    def build_request(
        self,
        download_url: str,
        metadata: FileMetadata,
        client_headers: Mapping[str, str],
    ) -> ProxyRequest:
        """
        Merge default upstream headers with the allow-listed client headers.
        """
        headers = self.settings.default_upstream_headers()
        headers["Accept-Encoding"] = "identity"
        headers.update(select_forwarded_headers(client_headers))
        return ProxyRequest(download_url=download_url, metadata=metadata, forwarded_headers=headers)

    async def open(self, proxy_request: ProxyRequest) -> ProxiedStream:
        """
        Issue the upstream GET and check its status before any byte is relayed.

        Args:
            proxy_request: Request built by build_request()

        Returns:
            ProxiedStream for the opened response

        Raises:
            UpstreamHttpStatusError: If the status is not 200 or 206
            UpstreamTimeoutError: If the host does not answer in time
            UpstreamConnectionError: If the host cannot be reached
        """
        timeout = httpx.Timeout(
            self.settings.upstream_timeout,
            read=self.settings.stream_idle_timeout,
        )
        request = self.client.build_request(
            "GET",
            proxy_request.download_url,
            headers=proxy_request.forwarded_headers,
            timeout=timeout,
        )

        try:
            response = await self.client.send(request, stream=True, follow_redirects=True)
        except httpx.TimeoutException as e:
            logger.warning(f"File host timeout for {proxy_request.metadata.filename}: {type(e).__name__}")
            raise UpstreamTimeoutError(detail=str(e))
        except httpx.HTTPError as e:
            logger.warning(f"File host unreachable for {proxy_request.metadata.filename}: {e}")
            raise UpstreamConnectionError("Failed to fetch file stream", detail=str(e))

        if response.status_code not in SUCCESS_STATUSES:
            await response.aclose()
            logger.warning(
                f"File host returned status={response.status_code} for {proxy_request.metadata.filename}"
            )
            raise UpstreamHttpStatusError(
                response.status_code,
                f"Failed to fetch file stream (status {response.status_code})",
            )

        requested = proxy_request.forwarded_headers.get("Range") if proxy_request.is_range_request else "full"
        logger.info(
            f"Streaming {proxy_request.metadata.filename} status={response.status_code} range={requested}"
        )
        return ProxiedStream(response, proxy_request.metadata, self.settings.stream_chunk_size)

    async def stream(
        self,
        download_url: str,
        metadata: FileMetadata,
        client_headers: Mapping[str, str],
    ) -> ProxiedStream:
        """
        Build and open the upstream request in one step.
        """
        return await self.open(self.build_request(download_url, metadata, client_headers))
