"""
Pytest configuration and fixtures for cldsdk tests.
"""

from __future__ import annotations

import json
import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from cldsdk.config import SDKSettings, reset_settings
from cldsdk.uploader import TransportResponse


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Isolate tests from CLOUDINARY_* variables and the cached settings."""
    for name in list(os.environ):
        if name.startswith("CLOUDINARY_"):
            monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> SDKSettings:
    """Account used by the URL and signing tests."""
    return SDKSettings(
        cloud_name="test123",
        api_key="1234",
        api_secret="b",
        secure=False,
    )


def json_response(body: dict, status_code: int = 200) -> TransportResponse:
    """Build a transport response with a JSON body."""
    return TransportResponse(status_code=status_code, content=json.dumps(body).encode())


class TrickleStream:
    """Non-seekable stream returning predefined chunks (pipes, sockets)."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)

    def read(self, size: int = -1) -> bytes:
        return self._chunks.pop(0) if self._chunks else b""


@pytest.fixture
def mock_transport() -> MagicMock:
    """Transport whose ``send`` returns a completed upload by default."""
    transport = MagicMock()
    transport.send = AsyncMock(
        return_value=json_response(
            {"public_id": "sample", "version": 1, "bytes": 4, "etag": "etag-1"}
        )
    )
    return transport


def sent_requests(transport: MagicMock) -> list:
    """UploadRequest objects passed to ``transport.send``, in order."""
    return [call.args[0] for call in transport.send.await_args_list]


@pytest.fixture
def respond():
    """Factory for JSON transport responses."""
    return json_response


@pytest.fixture
def sent():
    """Accessor for the requests a mock transport received."""
    return sent_requests


@pytest.fixture
def trickle():
    """Factory for non-seekable streams."""
    return TrickleStream
