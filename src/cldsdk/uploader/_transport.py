"""
Transport boundary for the upload API.

The uploader only builds ``UploadRequest`` descriptors and parses
``TransportResponse`` objects. Socket I/O belongs to a ``Transport``;
``HttpxTransport`` is the default implementation.
"""

from __future__ import annotations

import json
from typing import Any, Protocol, TypeVar, runtime_checkable

import httpx
from pydantic import BaseModel

from cldsdk.exceptions import ServerError
from cldsdk.logging import get_logger
from cldsdk.uploader._models import TransportResponse, UploadRequest

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

# Status reported when the client-side timeout is exceeded
TIMEOUT_STATUS = 499


@runtime_checkable
class Transport(Protocol):
    """Anything able to perform one upload API call."""

    async def send(self, request: UploadRequest) -> TransportResponse:
        ...


class HttpxTransport:
    """
    Transport based on ``httpx.AsyncClient``.

    Example:
        >>> async with HttpxTransport() as transport:
        ...     response = await transport.send(request)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = 60.0,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def send(self, request: UploadRequest) -> TransportResponse:
        """
        Send a request as ``multipart/form-data``.

        Raises:
            ServerError: 499 on timeout, 0 on connection errors
        """
        client = self._get_client()
        files = None
        if request.file is not None:
            files = {"file": (request.file.filename, request.file.content)}
        data = {
            key: [str(item) for item in value] if isinstance(value, list) else str(value)
            for key, value in request.fields.items()
        }
        timeout = request.timeout if request.timeout is not None else self._timeout

        try:
            response = await client.request(
                request.method,
                request.url,
                data=data,
                files=files,
                headers=request.headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise ServerError(TIMEOUT_STATUS, "Request Timeout") from e
        except httpx.HTTPError as e:
            raise ServerError(0, str(e)) from e

        return TransportResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
        )

    async def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _error_message(status_code: int, body: Any, content: bytes) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    text = content.decode("utf-8", errors="replace").strip()
    return text or f"Server returned unexpected status code - {status_code}"


def parse_response(response: TransportResponse, model: type[T]) -> T:
    """
    Parse a JSON response into ``model``.

    Raises:
        ServerError: Non-2xx status, error payload, or a body that is not JSON
    """
    try:
        body = json.loads(response.content) if response.content else {}
    except ValueError:
        body = None

    ok = 200 <= response.status_code < 300
    if not ok or not isinstance(body, dict) or "error" in body:
        message = _error_message(response.status_code, body, response.content)
        if ok and body is None:
            message = f"Error parsing server response ({response.status_code}) - {message}"
        logger.debug(f"Server error {response.status_code}: {message}")
        raise ServerError(
            response.status_code,
            message,
            response=body if isinstance(body, dict) else None,
        )
    return model.model_validate(body)


__all__ = ["Transport", "HttpxTransport", "parse_response", "TIMEOUT_STATUS"]
