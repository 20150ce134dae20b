"""
Upload API for cldsdk.

Features:
- Signed and unsigned (preset) uploads of files, bytes, streams and remote URLs
- Chunked uploads of large files with a resumable-style session state machine
- Upload params and HTML tags for direct browser uploads
- Pluggable transport; httpx by default
"""

from cldsdk.uploader._aio import AsyncUploader, UploadSource
from cldsdk.uploader._chunked import ChunkedUploadController
from cldsdk.uploader._models import (
    FilePart,
    PartAck,
    TransportResponse,
    UploadPart,
    UploadRequest,
    UploadResult,
    UploadSession,
    UploadState,
)
from cldsdk.uploader._params import (
    build_eager,
    build_upload_params,
    encode_context,
    image_upload_tag,
    upload_tag_params,
)
from cldsdk.uploader._sync import Uploader
from cldsdk.uploader._transport import HttpxTransport, Transport, parse_response

__all__ = [
    # Clients
    "AsyncUploader",
    "Uploader",
    "ChunkedUploadController",
    "UploadSource",
    # Transport
    "Transport",
    "HttpxTransport",
    "parse_response",
    # Models
    "FilePart",
    "PartAck",
    "TransportResponse",
    "UploadPart",
    "UploadRequest",
    "UploadResult",
    "UploadSession",
    "UploadState",
    # Params
    "build_eager",
    "build_upload_params",
    "encode_context",
    "image_upload_tag",
    "upload_tag_params",
]
