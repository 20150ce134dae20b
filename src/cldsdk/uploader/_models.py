"""
Models for the upload API.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FilePart(BaseModel):
    """File content attached to a multipart request."""

    filename: str = "file"
    content: bytes = b""

    def __repr__(self) -> str:
        return f"FilePart({self.filename!r}, {len(self.content):,} bytes)"


class UploadRequest(BaseModel):
    """
    Transport-independent description of one API call.

    ``fields`` hold the signed form fields exactly as they go on the wire.
    """

    method: str = "POST"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    fields: dict[str, Any] = Field(default_factory=dict)
    file: FilePart | None = None
    timeout: float | None = None


class TransportResponse(BaseModel):
    """Raw response handed back by a transport."""

    status_code: int
    content: bytes = b""
    headers: dict[str, str] = Field(default_factory=dict)


class UploadResult(BaseModel):
    """Resource returned by a completed upload.

    Only the common fields are declared; everything else the service
    returns is kept as extra attributes.
    """

    model_config = ConfigDict(extra="allow")

    public_id: str | None = None
    version: int | None = None
    signature: str | None = None
    resource_type: str | None = None
    type: str | None = None
    format: str | None = None
    bytes: int | None = None
    etag: str | None = None
    width: int | None = None
    height: int | None = None
    url: str | None = None
    secure_url: str | None = None
    created_at: str | None = None
    tags: list[str] = Field(default_factory=list)

    def __repr__(self) -> str:
        return f"UploadResult({self.public_id!r}, {self.bytes} bytes, etag={self.etag!r})"


class PartAck(BaseModel):
    """Lightweight acknowledgement of an intermediate part."""

    model_config = ConfigDict(extra="allow")

    done: bool = False


class UploadState(str, Enum):
    """States of a chunked upload session."""

    INIT = "init"
    STREAMING = "streaming"
    PART_SENT = "part_sent"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class UploadPart(BaseModel):
    """One byte range accepted by the server."""

    offset: int
    size: int
    ack: PartAck | UploadResult


class UploadSession(BaseModel):
    """Snapshot of a chunked upload session."""

    upload_id: str
    part_size: int
    total_size: int | None = None
    offset: int = 0
    state: UploadState = UploadState.INIT
    parts: list[UploadPart] = Field(default_factory=list)

    @property
    def parts_count(self) -> int:
        return len(self.parts)


__all__ = [
    "FilePart",
    "UploadRequest",
    "TransportResponse",
    "UploadResult",
    "PartAck",
    "UploadState",
    "UploadPart",
    "UploadSession",
]
