"""
Exceptions for the cldsdk library.

All errors derive from CldError so callers can catch one type.
Validation, configuration and signing errors are raised synchronously,
before any request is built; ServerError carries the HTTP status and
the server message verbatim.
"""

from __future__ import annotations

from typing import Any


class CldError(Exception):
    """Base exception for all cldsdk errors."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self._original_cause = cause
        # Keep the cause for debugging but hide the chain in tracebacks
        self.__suppress_context__ = True

    def __str__(self) -> str:
        return self.message


class ValidationError(CldError):
    """Option value is not recognized or has the wrong shape."""

    def __init__(self, message: str, option: str | None = None) -> None:
        super().__init__(message)
        self.option = option


class ConfigurationError(CldError):
    """Required configuration (cloud name, api key, api secret) is missing."""

    def __init__(self, setting: str) -> None:
        super().__init__(f"Must supply {setting}")
        self.setting = setting


class SigningError(CldError):
    """Signature could not be computed."""

    def __init__(self, algorithm: str) -> None:
        super().__init__(f"Unsupported signature algorithm '{algorithm}'")
        self.algorithm = algorithm


class ServerError(CldError):
    """Non-2xx response from the remote service."""

    def __init__(
        self,
        status: int,
        message: str,
        response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.response = response

    @property
    def http_code(self) -> int:
        """Alias used by the service's own error payloads."""
        return self.status

    def __repr__(self) -> str:
        return f"ServerError(status={self.status}, message={self.message!r})"


class PartSizeError(CldError):
    """Chunk smaller than the minimum allowed for a non-final part."""

    def __init__(self, size: int, minimum: int) -> None:
        super().__init__("All parts except EOF-chunk must be larger than 5mb")
        self.size = size
        self.minimum = minimum


__all__ = [
    "CldError",
    "ValidationError",
    "ConfigurationError",
    "SigningError",
    "ServerError",
    "PartSizeError",
]
