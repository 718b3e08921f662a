"""Selection between proxied streaming and redirecting to the file host."""

from enum import Enum


class DownloadStrategy(str, Enum):
    STREAM = "stream"
    REDIRECT = "redirect"


def select_strategy(size: int, threshold: int) -> DownloadStrategy:
    """
    Pick how a file is delivered when the client did not ask for a format.

    Args:
        size: File size in bytes
        threshold: Files larger than this are redirected; 0 or less always streams

    Returns:
        DownloadStrategy to apply
    """
    if threshold > 0 and size > threshold:
        return DownloadStrategy.REDIRECT
    return DownloadStrategy.STREAM
