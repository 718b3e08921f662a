"""Share id extraction from user-supplied share links."""

import re
from typing import Optional
from urllib.parse import parse_qs, urlsplit

SHARE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6,}$")


def extract_share_id(raw_url: str) -> Optional[str]:
    """
    Derive the share id from a share link.

    Tried in order: the ``surl`` query parameter, a ``/s/<token>`` path
    (one leading ``"1"`` stripped from the token), then the last non-empty
    path segment.

    Args:
        raw_url: URL as typed or pasted by the user

    Returns:
        Share id, or None if the value is not a URL or carries no id
    """
    if not isinstance(raw_url, str):
        return None

    try:
        parts = urlsplit(raw_url.strip())
        query = parse_qs(parts.query)
    except ValueError:
        return None

    if not parts.scheme or not parts.netloc:
        return None

    surl = query.get("surl", [""])[0]
    if surl:
        return surl

    segments = [segment for segment in parts.path.split("/") if segment]

    if len(segments) >= 2 and segments[0] == "s":
        token = segments[1]
        token = token[1:] if token.startswith("1") else token
        return token or None

    if segments:
        return segments[-1]

    return None


def is_valid_share_id(value: Optional[str]) -> bool:
    """
    Check a share id against the charset and minimum length accepted by /resolve.
    """
    return bool(value) and SHARE_ID_PATTERN.fullmatch(value) is not None
