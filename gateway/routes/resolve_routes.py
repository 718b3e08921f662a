"""Share resolution and streaming API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import RedirectResponse, StreamingResponse

from common.logging_config import get_logger
from gateway.config import CORS_HEADERS, GatewaySettings
from gateway.dependencies import get_proxy, get_resolver, get_settings
from gateway.exceptions import InvalidInputError, UpstreamHttpStatusError
from gateway.extractor import extract_share_id, is_valid_share_id
from gateway.proxy import ProxiedStream, StreamingProxy, build_response_headers
from gateway.resolver import LinkResolver
from gateway.schemas import ErrorResponse, ExtractResponse, ResolveResponse
from gateway.strategy import DownloadStrategy, select_strategy
from gateway.types import ResolvedLink

logger = get_logger(__name__)

router = APIRouter(tags=["Resolve"])

RESPONSE_FORMATS = ("json", "stream", "redirect")


@router.api_route(
    "/resolve",
    methods=["GET", "HEAD"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def resolve_share(
    request: Request,
    id: Optional[str] = Query(None, description="Share id extracted from the share link"),
    format: Optional[str] = Query(None, description="json, stream or redirect"),
    resolver: LinkResolver = Depends(get_resolver),
    proxy: StreamingProxy = Depends(get_proxy),
    settings: GatewaySettings = Depends(get_settings),
):
    """
    Resolve a share id and deliver the file or its metadata.

    Parameters:
        - id: Share id, [A-Za-z0-9_-]{6,}
        - format: json (metadata), redirect (307 to the signed link),
                  stream or omitted (proxied bytes, Range supported)

    Returns:
        - json: downloadUrl, fileName, fileSize, md5, thumbnailUrl
        - stream: file bytes with X-File-Name / X-File-Size / X-File-Md5 headers
        - redirect: 307 to the signed download link
        - HEAD: stream-mode headers and Content-Length from metadata without
                contacting the file host, so Content-Type is always
                application/octet-stream (GET reports the upstream type)

    Raises:
        - 400: Invalid ID or format
        - 500: Upstream timeout, bad metadata, missing link or file host error
    """
    if not is_valid_share_id(id):
        raise InvalidInputError("Invalid ID")

    mode = (format or "").strip().lower()
    if mode and mode not in RESPONSE_FORMATS:
        raise InvalidInputError("Invalid format")

    resolved = await resolver.resolve(id)
    metadata = resolved.metadata

    if mode == "json":
        return ResolveResponse(
            downloadUrl=resolved.download_url,
            fileName=metadata.filename,
            fileSize=metadata.size,
            md5=metadata.md5,
            thumbnailUrl=metadata.thumbnail_url,
        )

    if not mode:
        mode = select_strategy(metadata.size, settings.redirect_threshold).value

    if mode == DownloadStrategy.REDIRECT.value:
        return RedirectResponse(resolved.download_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    if request.method == "HEAD":
        return Response(status_code=status.HTTP_200_OK, headers=build_response_headers(metadata))

    stream = await _open_stream(request, id, resolved, resolver, proxy)

    return StreamingResponse(
        stream.aiter_body(),
        status_code=stream.status_code,
        headers=stream.headers,
    )


@router.options("/resolve")
async def resolve_preflight():
    """
    CORS preflight for /resolve.
    """
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)


@router.get("/extract", response_model=ExtractResponse, responses={400: {"model": ErrorResponse}})
async def extract(url: Optional[str] = Query(None, description="Share link as pasted by the user")):
    """
    Extract the share id from a share link.

    Raises:
        - 400: Not a URL, or no id could be found
    """
    share_id = extract_share_id(url or "")
    if not share_id:
        raise InvalidInputError("Invalid URL")
    return ExtractResponse(id=share_id)


async def _open_stream(
    request: Request,
    share_id: str,
    resolved: ResolvedLink,
    resolver: LinkResolver,
    proxy: StreamingProxy,
) -> ProxiedStream:
    """
    Open the upstream stream, re-resolving once if the signed link was rejected.

    Signed links can expire on the file host before the cache TTL does, so
    the first 4xx is answered by dropping the cached link and retrying with
    a fresh one.
    """
    try:
        return await proxy.stream(resolved.download_url, resolved.metadata, request.headers)
    except UpstreamHttpStatusError as e:
        if not e.is_client_error:
            raise
        logger.warning(
            f"File host rejected link for {share_id} (status={e.status_code}, "
            f"cached={resolved.from_cache}), re-resolving"
        )

    resolver.invalidate(share_id)
    fresh = await resolver.resolve(share_id)
    return await proxy.stream(fresh.download_url, fresh.metadata, request.headers)
