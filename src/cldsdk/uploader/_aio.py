"""
Asynchronous upload API.

Handles three kinds of sources:
- local files (path or ``Path``), bytes and binary file objects
- remote URLs (``http(s)``, ``s3``, ``gs``, ``ftp``, ``data:``), which the
  service fetches itself
- large files, uploaded in parts through ``ChunkedUploadController``
"""

from __future__ import annotations

import io
import os
from contextlib import AsyncExitStack, ExitStack
from pathlib import Path
from typing import Any, BinaryIO, Mapping, Union

from cldsdk._helpers import file_io_size, is_remote_url
from cldsdk.config import SDKSettings, get_settings
from cldsdk.logging import get_logger
from cldsdk.signing import cleanup_params, sign_request
from cldsdk.transformation import validate_resource_type
from cldsdk.uploader._chunked import ChunkedUploadController
from cldsdk.uploader._models import FilePart, UploadRequest, UploadResult
from cldsdk.uploader._params import build_upload_params
from cldsdk.uploader._transport import HttpxTransport, Transport, parse_response
from cldsdk.url import api_url

logger = get_logger(__name__)

UploadSource = Union[str, Path, bytes, BinaryIO]


def _filename(source: Any) -> str:
    if isinstance(source, (str, Path)):
        return os.path.basename(str(source)) or "file"
    name = getattr(source, "name", None)
    if isinstance(name, str) and name:
        return os.path.basename(name)
    return "file"


class AsyncUploader:
    """
    Asynchronous uploader.

    Example:
        >>> uploader = AsyncUploader(settings=SDKSettings(cloud_name="demo", api_key="k", api_secret="s"))
        >>> result = await uploader.upload("logo.png", tags=["brand"])
        >>> result = await uploader.upload_large("movie.mp4", resource_type="video")
        >>> print(result.bytes, result.etag)
    """

    def __init__(
        self,
        settings: SDKSettings | None = None,
        transport: Transport | None = None,
    ) -> None:
        """
        Initialize uploader.

        Args:
            settings: Explicit settings; defaults to ``get_settings()``
            transport: Transport to use; a fresh ``HttpxTransport`` is
                opened per call when None
        """
        self._settings = settings
        self._transport = transport

    @property
    def settings(self) -> SDKSettings:
        return self._settings or get_settings()

    async def _open_transport(self, stack: AsyncExitStack, timeout: float | None) -> Transport:
        if self._transport is not None:
            return self._transport
        return await stack.enter_async_context(HttpxTransport(timeout=timeout))

    def _timeout(self, options: Mapping[str, Any]) -> float | None:
        timeout = options.get("timeout")
        return float(timeout) if timeout is not None else self.settings.timeout

    def _signer(self, options: Mapping[str, Any]):
        settings = self.settings
        if options.get("unsigned"):
            return cleanup_params
        return lambda fields: sign_request(fields, options, settings)

    def _endpoint(self, action: str, options: Mapping[str, Any], default_type: str) -> str:
        resource_type = validate_resource_type(options.get("resource_type") or default_type)
        return api_url(action, resource_type, options, self.settings)

    def _headers(self, options: Mapping[str, Any]) -> dict[str, str]:
        extra = options.get("extra_headers") or {}
        return {str(name): str(value) for name, value in dict(extra).items()}

    async def call_api(
        self,
        action: str,
        options: Mapping[str, Any],
        file: UploadSource | None = None,
        default_resource_type: str = "image",
    ) -> UploadResult:
        """
        Perform one signed upload API call.

        Args:
            action: API action (``upload``, ...)
            options: Upload options
            file: Source to attach, if any

        Returns:
            UploadResult parsed from the response

        Raises:
            ValidationError: Invalid option value
            ConfigurationError: Missing credentials
            ServerError: The service rejected the call
        """
        url = self._endpoint(action, options, default_resource_type)
        fields = self._signer(options)(build_upload_params(options))

        file_part = None
        if file is not None:
            if is_remote_url(file):
                fields["file"] = file
            else:
                file_part = FilePart(filename=_filename(file), content=self._read_all(file))

        request = UploadRequest(
            url=url,
            headers=self._headers(options),
            fields=fields,
            file=file_part,
            timeout=self._timeout(options),
        )
        async with AsyncExitStack() as stack:
            transport = await self._open_transport(stack, request.timeout)
            logger.debug(f"POST {url}")
            response = await transport.send(request)
        return parse_response(response, UploadResult)

    @staticmethod
    def _read_all(source: UploadSource) -> bytes:
        if isinstance(source, bytes):
            return source
        if isinstance(source, (str, Path)):
            return Path(source).read_bytes()
        return source.read()

    async def upload(self, file: UploadSource, **options: Any) -> UploadResult:
        """
        Upload a file, bytes, stream or remote URL in one request.

        Args:
            file: Source to upload
            **options: Upload and transformation options

        Returns:
            UploadResult
        """
        return await self.call_api("upload", options, file=file)

    async def unsigned_upload(
        self,
        file: UploadSource,
        upload_preset: str,
        **options: Any,
    ) -> UploadResult:
        """Upload using an unsigned upload preset; no credentials needed."""
        return await self.upload(file, upload_preset=upload_preset, unsigned=True, **options)

    async def upload_large(
        self,
        file: UploadSource,
        chunk_size: int | None = None,
        **options: Any,
    ) -> UploadResult:
        """
        Upload a large file in parts.

        Remote URLs are uploaded directly. Sources smaller than one part
        are sent as a single request.

        Args:
            file: Source to upload
            chunk_size: Bytes per part (at least 5MiB); defaults to the
                ``chunk_size`` setting
            **options: Upload options; ``resource_type`` defaults to ``raw``

        Returns:
            UploadResult with the total ``bytes`` and the server ``etag``

        Raises:
            PartSizeError: chunk_size under 5MiB, or a short non-final part
            ServerError: Any part was rejected; the session is abandoned
        """
        if is_remote_url(file):
            return await self.upload(file, **options)

        part_size = int(chunk_size or options.get("chunk_size") or self.settings.chunk_size)
        url = self._endpoint("upload", options, "raw")
        params = build_upload_params(options, timestamp=False)

        timeout = self._timeout(options)

        with ExitStack() as files:
            stream, total_size = self._open_stream(file, files)
            async with AsyncExitStack() as stack:
                controller = ChunkedUploadController(
                    stream=stream,
                    transport=await self._open_transport(stack, timeout),
                    url=url,
                    params=params,
                    signer=self._signer(options),
                    part_size=part_size,
                    total_size=total_size,
                    filename=_filename(file),
                    timeout=timeout,
                    headers=self._headers(options),
                )
                size = f"{total_size:,}" if total_size is not None else "unknown"
                logger.debug(
                    f"Chunked upload {controller.session.upload_id}: "
                    f"{size} bytes, {part_size:,} per part"
                )
                return await controller.run()

    upload_chunked = upload_large

    @staticmethod
    def _open_stream(source: UploadSource, files: ExitStack) -> tuple[BinaryIO, int | None]:
        if isinstance(source, bytes):
            return io.BytesIO(source), len(source)
        if isinstance(source, (str, Path)):
            stream = files.enter_context(open(source, "rb"))
            return stream, os.fstat(stream.fileno()).st_size
        return source, file_io_size(source)


__all__ = ["AsyncUploader", "UploadSource"]
