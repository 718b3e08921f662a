"""Custom exception classes for the gateway."""

from typing import Optional


class GatewayException(Exception):
    """
    Base exception class for all gateway errors.
    """
    code = "INTERNAL_ERROR"


class InvalidInputError(GatewayException):
    """
    Raised when a share URL, share id or query parameter is malformed.
    """
    code = "INVALID_INPUT"


class UpstreamError(GatewayException):
    """
    Raised when the helper API or the file host fails.

    Every network or upstream failure is normalized into a subclass of
    this error before it reaches the HTTP layer.
    """
    kind = "upstream"
    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail


class UpstreamTimeoutError(UpstreamError):
    """
    Raised when an upstream call exceeds the configured timeout.
    """
    kind = "timeout"
    code = "UPSTREAM_TIMEOUT"

    def __init__(self, message: str = "Request timed out", detail: Optional[str] = None):
        super().__init__(message, detail)


class UpstreamConnectionError(UpstreamError):
    """
    Raised when the upstream host cannot be reached or drops the connection.
    """
    kind = "connection"
    code = "UPSTREAM_UNAVAILABLE"


class UpstreamHttpStatusError(UpstreamError):
    """
    Raised when the upstream responds with an unexpected HTTP status.
    """
    kind = "http_status"
    code = "UPSTREAM_HTTP_STATUS"

    def __init__(self, status_code: int, message: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message or f"Upstream responded with status {status_code}", detail)
        self.status_code = status_code

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500


class UpstreamInvalidMetadataError(UpstreamError):
    """
    Raised when the metadata response has no usable file list.
    """
    kind = "invalid_metadata"
    code = "UPSTREAM_INVALID_METADATA"


class UpstreamNoDownloadLinkError(UpstreamError):
    """
    Raised when the signing exchange returns no download link.
    """
    kind = "no_download_link"
    code = "UPSTREAM_NO_DOWNLOAD_LINK"
