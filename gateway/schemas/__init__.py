"""Pydantic schemas for API requests and responses."""

from gateway.schemas.resolve import ExtractResponse, ResolveResponse
from gateway.schemas.common import ErrorResponse

__all__ = [
    "ExtractResponse",
    "ResolveResponse",
    "ErrorResponse",
]
