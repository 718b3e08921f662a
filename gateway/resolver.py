"""Two-step share id -> signed download link resolution against the helper API."""

from typing import Any, Dict, Optional

import httpx

from common.logging_config import get_logger
from common.utils import format_file_size
from gateway.cache import ResolutionCache
from gateway.config import GatewaySettings
from gateway.exceptions import (
    UpstreamConnectionError,
    UpstreamHttpStatusError,
    UpstreamInvalidMetadataError,
    UpstreamNoDownloadLinkError,
    UpstreamTimeoutError,
)
from gateway.types import ResolvedLink, ShareMetadata

logger = get_logger(__name__)


class LinkResolver:
    """
    Resolves share ids into signed download links.

    A cache hit is answered without network I/O. A miss performs the
    get-info call (file listing and signing data) followed by the
    get-download call (signed, time-limited link) and caches the result.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: ResolutionCache,
        settings: Optional[GatewaySettings] = None,
    ):
        """
        Initialize resolver.

        Args:
            client: Shared async HTTP client
            cache: Resolution cache owned by the application
            settings: Gateway settings (defaults from environment)
        """
        self.client = client
        self.cache = cache
        self.settings = settings or GatewaySettings()

    async def resolve(self, share_id: str) -> ResolvedLink:
        """
        Resolve a share id into a download link and file metadata.

        Args:
            share_id: Share id extracted from the user's link

        Returns:
            ResolvedLink with the download URL and first file's metadata

        Raises:
            UpstreamTimeoutError: If either upstream call times out
            UpstreamConnectionError: If the helper API is unreachable
            UpstreamHttpStatusError: If either call returns a non-2xx status
            UpstreamInvalidMetadataError: If the file list is empty or malformed
            UpstreamNoDownloadLinkError: If no download link is returned
        """
        entry = self.cache.get(share_id)
        if entry is not None and entry.metadata is not None:
            logger.debug(f"Cache hit for {share_id}")
            return ResolvedLink(
                download_url=entry.download_url,
                metadata=entry.metadata,
                from_cache=True,
            )

        logger.info(f"Resolving share {share_id}")

        info = await self._request_json(
            "GET",
            self.settings.get_info_url,
            params={"shorturl": share_id, "pwd": ""},
        )
        share = self._parse_share_metadata(share_id, info)
        file = share.files[0]

        result = await self._request_json(
            "POST",
            self.settings.get_download_url,
            json=share.download_request_body(file),
        )

        download_url = result.get("downloadLink") if isinstance(result, dict) else None
        if not download_url or not isinstance(download_url, str):
            upstream_error = result.get("error") if isinstance(result, dict) else None
            message = "No download link received from upstream"
            if upstream_error:
                message = f"{message}: {upstream_error}"
            raise UpstreamNoDownloadLinkError(message)

        self.cache.put(share_id, download_url, file)

        logger.info(
            f"Resolved share {share_id}: {file.filename} ({format_file_size(file.size)})"
        )
        return ResolvedLink(download_url=download_url, metadata=file)

    def invalidate(self, share_id: str) -> bool:
        """
        Forget a cached link, forcing the next resolve() to go upstream.
        """
        return self.cache.invalidate(share_id)

    def _parse_share_metadata(self, share_id: str, data: Any) -> ShareMetadata:
        if not isinstance(data, dict):
            raise UpstreamInvalidMetadataError("Invalid metadata structure or empty file list")

        share = ShareMetadata.from_upstream(data)
        if not share.files or not share.files[0].fs_id:
            logger.warning(f"Share {share_id} returned no usable file list")
            raise UpstreamInvalidMetadataError("Invalid metadata structure or empty file list")

        return share

    async def _request_json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """
        Send one bounded request to the helper API and decode its JSON body.

        Raises:
            UpstreamTimeoutError, UpstreamConnectionError,
            UpstreamHttpStatusError, UpstreamInvalidMetadataError
        """
        headers = self.settings.default_upstream_headers()
        headers.update(kwargs.pop("headers", {}))

        try:
            response = await self.client.request(
                method,
                url,
                headers=headers,
                timeout=self.settings.upstream_timeout,
                **kwargs,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Upstream timeout: {method} {url} error={type(e).__name__}")
            raise UpstreamTimeoutError(detail=str(e))
        except httpx.HTTPError as e:
            logger.warning(f"Upstream request failed: {method} {url} error={e}")
            raise UpstreamConnectionError(f"Upstream request failed: {type(e).__name__}", detail=str(e))

        if not response.is_success:
            logger.warning(f"Upstream error: {method} {url} status={response.status_code}")
            raise UpstreamHttpStatusError(
                response.status_code,
                f"HTTP error! status: {response.status_code}",
                detail=response.text[:500],
            )

        try:
            return response.json()
        except ValueError:
            raise UpstreamInvalidMetadataError(f"Upstream returned a non-JSON body from {url}")
