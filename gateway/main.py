"""Entry point for the gateway service."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from gateway.cache import ResolutionCache
from gateway.config import CORS_HEADERS, GatewaySettings
from gateway.exceptions import (
    GatewayException,
    InvalidInputError,
    UpstreamError,
    UpstreamTimeoutError,
)
from gateway.proxy import StreamingProxy
from gateway.resolver import LinkResolver
from gateway.routes.resolve_routes import router as resolve_router

logger = setup_logging('gateway')


def _error_response(status_code: int, exc: GatewayException) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": str(exc), "code": exc.code},
        headers=CORS_HEADERS,
    )


async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id
    for name, value in CORS_HEADERS.items():
        response.headers.setdefault(name, value)

    return response


async def invalid_input_handler(request: Request, exc: InvalidInputError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Invalid input: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


async def upstream_timeout_handler(request: Request, exc: UpstreamTimeoutError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Upstream timeout: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


async def upstream_error_handler(request: Request, exc: UpstreamError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Upstream error ({exc.kind}): {exc} [request_id={request_id}] path={request.url.path}"
    )
    if exc.detail:
        logger.debug(f"Upstream error detail: {exc.detail} [request_id={request_id}]")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


async def gateway_exception_handler(request: Request, exc: GatewayException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Gateway exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)


def create_app(
    settings: Optional[GatewaySettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    cache: Optional[ResolutionCache] = None,
) -> FastAPI:
    """
    Build the gateway application and its shared collaborators.

    The cache, HTTP client, resolver and proxy are created once here and
    reached by the routes through app.state.

    Args:
        settings: Gateway settings (defaults from environment)
        transport: Optional httpx transport for the upstream client (tests)
        cache: Optional pre-built resolution cache

    Returns:
        Configured FastAPI application
    """
    settings = settings or GatewaySettings()
    cache = cache or ResolutionCache(
        ttl_seconds=settings.cache_ttl,
        max_entries=settings.cache_max_entries,
    )
    client = httpx.AsyncClient(
        transport=transport,
        timeout=settings.upstream_timeout,
        limits=httpx.Limits(max_connections=128),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Gateway service starting up [upstream={settings.upstream_base_url}]")
        yield
        logger.info("Gateway service shutting down...")
        await client.aclose()
        logger.info("Upstream client closed")

    app = FastAPI(
        title="sharefetch gateway",
        description="Share link resolution and streaming proxy",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.cache = cache
    app.state.http_client = client
    app.state.resolver = LinkResolver(client, cache, settings)
    app.state.proxy = StreamingProxy(client, settings)

    app.middleware("http")(log_requests)

    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(UpstreamTimeoutError, upstream_timeout_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(GatewayException, gateway_exception_handler)

    app.include_router(resolve_router)

    @app.get("/")
    async def root():
        """
        Root endpoint for health check.
        """
        return {"message": "sharefetch gateway", "status": "running"}

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint for container healthchecks.
        Returns 200 if service is alive.
        """
        return {"status": "healthy", "service": "gateway"}

    @app.get("/ready")
    async def ready_check():
        """
        Readiness check endpoint.
        Reports cache occupancy and the configured helper API.
        """
        return {
            "ready": True,
            "cache_entries": len(cache),
            "cache_ttl_seconds": cache.ttl,
            "upstream": settings.upstream_base_url,
        }

    return app


app = create_app()


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    settings = GatewaySettings()
    uvicorn.run(
        "gateway.main:app",
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


if __name__ == "__main__":
    main()
