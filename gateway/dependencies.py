"""FastAPI dependencies exposing the objects built by the application factory."""

from fastapi import Request

from gateway.config import GatewaySettings
from gateway.proxy import StreamingProxy
from gateway.resolver import LinkResolver


def get_settings(request: Request) -> GatewaySettings:
    return request.app.state.settings


def get_resolver(request: Request) -> LinkResolver:
    return request.app.state.resolver


def get_proxy(request: Request) -> StreamingProxy:
    return request.app.state.proxy
