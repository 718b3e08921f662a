"""Pydantic schemas for share resolution endpoints."""

from typing import Optional

from pydantic import BaseModel


class ResolveResponse(BaseModel):
    """Response model for /resolve?format=json."""
    downloadUrl: str
    fileName: str
    fileSize: int
    md5: str = ""
    thumbnailUrl: Optional[str] = None


class ExtractResponse(BaseModel):
    """Response model for share id extraction."""
    id: str
