"""Gateway data type definitions (FileMetadata, ShareMetadata, CacheEntry, etc.)."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class FileMetadata:
    """
    Metadata for a single shared file, as listed by the helper API.
    """
    fs_id: str
    filename: str
    size: int
    md5: str
    thumbnail_url: Optional[str] = None

    @classmethod
    def from_upstream(cls, data: Dict[str, Any]) -> "FileMetadata":
        thumbs = data.get("thumbs") or {}
        try:
            size = int(data.get("size") or 0)
        except (TypeError, ValueError):
            size = 0
        return cls(
            fs_id=str(data.get("fs_id") or ""),
            filename=str(data.get("filename") or data.get("server_filename") or ""),
            size=size,
            md5=str(data.get("md5") or ""),
            thumbnail_url=thumbs.get("url_3") if isinstance(thumbs, dict) else None,
        )


@dataclass(frozen=True)
class ShareMetadata:
    """
    Signing data for a share, only used to build the download-link request.
    """
    share_id: str
    uk: str
    sign: str
    timestamp: str
    files: List[FileMetadata] = field(default_factory=list)

    @classmethod
    def from_upstream(cls, data: Dict[str, Any]) -> "ShareMetadata":
        entries = data.get("list") or []
        return cls(
            share_id=str(data.get("shareid") or ""),
            uk=str(data.get("uk") or ""),
            sign=str(data.get("sign") or ""),
            timestamp=str(data.get("timestamp") or ""),
            files=[FileMetadata.from_upstream(entry) for entry in entries if isinstance(entry, dict)],
        )

    def download_request_body(self, file: FileMetadata) -> Dict[str, str]:
        return {
            "fs_id": file.fs_id,
            "shareid": self.share_id,
            "sign": self.sign,
            "timestamp": self.timestamp,
            "uk": self.uk,
        }


@dataclass(frozen=True)
class CacheEntry:
    """
    A resolved download link with its expiry instant (monotonic seconds).
    """
    download_url: str
    expires_at: float
    metadata: Optional[FileMetadata] = None

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class ResolvedLink:
    """
    Result of resolving a share id.
    """
    download_url: str
    metadata: FileMetadata
    from_cache: bool = False


@dataclass(frozen=True)
class ProxyRequest:
    """
    Everything the streaming proxy needs to issue the upstream GET.
    """
    download_url: str
    metadata: FileMetadata
    forwarded_headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_range_request(self) -> bool:
        return any(name.lower() == "range" for name in self.forwarded_headers)
