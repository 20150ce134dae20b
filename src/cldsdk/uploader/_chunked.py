"""
Chunked upload controller.

Uploads a byte stream as a sequence of parts sharing one
``X-Unique-Upload-Id``. Each part carries a ``Content-Range`` header and
is signed with a fresh timestamp. Parts are strictly sequential: the
next part is read only after the server acknowledged the previous one.

The controller is a state machine advanced by ``submit_next_part()``;
``run()`` is the driving loop for callers that only want the result.
"""

from __future__ import annotations

from typing import Any, BinaryIO, Callable, Mapping

from cldsdk._helpers import random_public_id
from cldsdk.config import MIN_CHUNK_SIZE
from cldsdk.exceptions import CldError, PartSizeError
from cldsdk.logging import get_logger
from cldsdk.uploader._models import (
    FilePart,
    PartAck,
    UploadPart,
    UploadRequest,
    UploadResult,
    UploadSession,
    UploadState,
)
from cldsdk.uploader._params import now
from cldsdk.uploader._transport import Transport, parse_response

logger = get_logger(__name__)

UNKNOWN_TOTAL = -1

Signer = Callable[[Mapping[str, Any]], dict[str, Any]]


class ChunkedUploadController:
    """
    Drive one chunked upload session.

    Example:
        >>> controller = ChunkedUploadController(
        ...     stream, transport, url, params, signer,
        ...     part_size=20_000_000, total_size=size,
        ... )
        >>> while not controller.finished:
        ...     ack = await controller.submit_next_part()
        >>> controller.result.etag
    """

    def __init__(
        self,
        stream: BinaryIO,
        transport: Transport,
        url: str,
        params: Mapping[str, Any],
        signer: Signer,
        part_size: int,
        total_size: int | None = None,
        filename: str = "file",
        upload_id: str | None = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            stream: Binary source positioned at its first byte
            transport: Transport performing the calls
            url: Upload endpoint
            params: Upload fields without timestamp and signature
            signer: Adds timestamp/signature to the fields of one part
            part_size: Bytes per part; at least 5MiB
            total_size: Source size, or None when unknown (pipes, sockets)
            filename: Name sent with each part
            upload_id: Session id; generated when None
            timeout: Per-part request timeout in seconds
            headers: Extra headers sent with every part

        Raises:
            PartSizeError: If part_size is under the 5MiB minimum
        """
        if part_size < MIN_CHUNK_SIZE:
            raise PartSizeError(part_size, MIN_CHUNK_SIZE)

        self._stream = stream
        self._transport = transport
        self._url = url
        self._params = dict(params)
        self._signer = signer
        self._filename = filename
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._pending: bytes | None = None
        self._result: UploadResult | None = None

        self._session = UploadSession(
            upload_id=upload_id or random_public_id(),
            part_size=part_size,
            total_size=total_size,
        )
        # A source known to fit in one part is sent as a plain upload
        self._single = total_size is not None and total_size < part_size

    @property
    def state(self) -> UploadState:
        return self._session.state

    @property
    def session(self) -> UploadSession:
        """Copy of the session state."""
        return self._session.model_copy(deep=True)

    @property
    def finished(self) -> bool:
        return self.state in (UploadState.DONE, UploadState.FAILED)

    @property
    def result(self) -> UploadResult | None:
        """Completed resource, available once the session is DONE."""
        return self._result

    def _read_part(self) -> tuple[bytes, bool]:
        """Read the next part and tell whether it is the last one."""
        part_size = self._session.part_size
        if self._pending is not None:
            data, self._pending = self._pending, None
        else:
            data = self._stream.read(part_size) or b""

        total = self._session.total_size
        if total is not None:
            end = self._session.offset + len(data)
            if not data and self._session.offset < total:
                raise CldError(
                    f"Source ended at byte {self._session.offset} of {total}"
                )
            return data, end >= total

        lookahead = self._stream.read(part_size) or b""
        if lookahead:
            self._pending = lookahead
            return data, False
        return data, True

    def _content_range(self, size: int, is_final: bool) -> str:
        start = self._session.offset
        end = start + size - 1
        total = self._session.total_size
        if total is None:
            total = start + size if is_final else UNKNOWN_TOTAL
        return f"bytes {start}-{end}/{total}"

    def _build_request(self, data: bytes, is_final: bool) -> UploadRequest:
        fields = self._signer({**self._params, "timestamp": now()})
        headers = dict(self._headers)
        # An empty source has no byte range to describe
        if not self._single and data:
            headers["Content-Range"] = self._content_range(len(data), is_final)
            headers["X-Unique-Upload-Id"] = self._session.upload_id
        return UploadRequest(
            url=self._url,
            headers=headers,
            fields=fields,
            file=FilePart(filename=self._filename, content=data),
            timeout=self._timeout,
        )

    async def submit_next_part(self) -> PartAck | UploadResult:
        """
        Read, sign and send the next part, then wait for its acknowledgement.

        Returns:
            PartAck for intermediate parts, UploadResult for the final one

        Raises:
            PartSizeError: Non-final part under the 5MiB minimum
            ServerError: The server rejected the part
            CldError: The session is already finished
        """
        if self.finished:
            raise CldError(f"Upload session {self._session.upload_id} is {self.state.value}")

        session = self._session
        try:
            session.state = UploadState.STREAMING
            data, is_final = self._read_part()
            if not is_final and len(data) < MIN_CHUNK_SIZE:
                raise PartSizeError(len(data), MIN_CHUNK_SIZE)

            request = self._build_request(data, is_final)
            session.state = UploadState.FINALIZING if is_final else UploadState.PART_SENT
            logger.debug(
                f"Upload {session.upload_id}: sending "
                f"{request.headers.get('Content-Range', f'{len(data)} bytes')}"
            )
            response = await self._transport.send(request)
            ack: PartAck | UploadResult
            if is_final:
                ack = parse_response(response, UploadResult)
            else:
                ack = parse_response(response, PartAck)
        except Exception as e:
            session.state = UploadState.FAILED
            logger.warning(
                f"Upload {session.upload_id} failed at offset {session.offset}: {e}"
            )
            raise

        session.parts.append(UploadPart(offset=session.offset, size=len(data), ack=ack))
        session.offset += len(data)
        if is_final:
            session.state = UploadState.DONE
            self._result = ack
            logger.debug(
                f"Upload {session.upload_id} done: {session.offset:,} bytes "
                f"in {session.parts_count} part(s)"
            )
        return ack

    async def run(self) -> UploadResult:
        """Submit parts until the session is DONE and return the resource."""
        while not self.finished:
            await self.submit_next_part()
        if self._result is None:
            raise CldError(f"Upload session {self._session.upload_id} is {self.state.value}")
        return self._result


__all__ = ["ChunkedUploadController", "Signer", "UNKNOWN_TOTAL"]
