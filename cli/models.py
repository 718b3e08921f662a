"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal, Optional


@dataclass(frozen=True)
class InfoCommand:
    """Show metadata of a shared file."""

    share_url: str
    command: Literal["info"] = "info"


@dataclass(frozen=True)
class LinkCommand:
    """Print the signed download link of a shared file."""

    share_url: str
    command: Literal["link"] = "link"


@dataclass(frozen=True)
class DownloadCommand:
    """Download a shared file."""

    share_url: str
    output_path: Optional[str] = None
    command: Literal["download"] = "download"


CommandRequest = InfoCommand | LinkCommand | DownloadCommand
