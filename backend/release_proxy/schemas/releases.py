"""
Pydantic v2 schemas for the proxy's own responses.

Release payloads are NOT modelled — they are GitHub's contract and are
passed through verbatim.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DownloadUrlOut(BaseModel):
    """Short-lived CDN URL for one asset."""

    model_config = ConfigDict(populate_by_name=True)

    download_url: str = Field(alias="downloadUrl")


class ApiInfoOut(BaseModel):
    """Self-description returned by the root (and any unknown path)."""

    name: str
    endpoints: dict[str, str]
    usage: str


class ErrorOut(BaseModel):
    error: str
    retry_after: int | None = Field(default=None, alias="retryAfter")
