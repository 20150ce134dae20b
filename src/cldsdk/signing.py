"""
Request signing for cldsdk.

The signature is a hex digest over the sorted ``key=value`` pairs of a
request joined with ``&``, with the API secret appended. Keys are sorted
explicitly and values are converted to their wire strings first, so the
digest depends only on the parameters and never on how the mapping was
built.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import time
from typing import Any, Callable, Mapping

from cldsdk._helpers import to_wire
from cldsdk.config import SDKSettings, get_settings
from cldsdk.exceptions import ConfigurationError, SigningError

SIGNATURE_SHA1 = "sha1"
SIGNATURE_SHA256 = "sha256"

SIGNATURE_ALGORITHMS: dict[str, Callable[..., Any]] = {
    SIGNATURE_SHA1: hashlib.sha1,
    SIGNATURE_SHA256: hashlib.sha256,
}

SHORT_URL_SIGNATURE_LENGTH = 8
LONG_URL_SIGNATURE_LENGTH = 32

# Never part of the signed payload
UNSIGNED_PARAMS = frozenset({"file", "signature", "api_key", "api_secret", "resource_type"})


def _hash_fn(algorithm: str) -> Callable[..., Any]:
    try:
        return SIGNATURE_ALGORITHMS[algorithm]
    except KeyError:
        raise SigningError(algorithm) from None


def compute_hex_hash(value: str, algorithm: str = SIGNATURE_SHA1) -> str:
    """
    Hash a string and return the lowercase hex digest.

    Raises:
        SigningError: If the algorithm is not supported
    """
    return _hash_fn(algorithm)(value.encode("utf-8")).hexdigest()


def build_signature_payload(params: Mapping[str, Any]) -> dict[str, str]:
    """
    Build the sorted mapping that gets hashed.

    Drops unsigned and empty params; lists are comma-joined; numbers,
    booleans and dates become their wire strings.
    """
    payload: dict[str, str] = {}
    for key in sorted(params):
        if key in UNSIGNED_PARAMS:
            continue
        value = params[key]
        if value is None or value == "" or value == []:
            continue
        wire = to_wire(value)
        if isinstance(wire, list):
            wire = ",".join(wire)
        payload[key] = wire
    return payload


def api_sign_request(
    params: Mapping[str, Any],
    api_secret: str | None,
    algorithm: str = SIGNATURE_SHA1,
) -> str:
    """
    Sign request parameters.

    Args:
        params: Request params (file, signature and api_key are ignored)
        api_secret: Account secret, appended before hashing
        algorithm: "sha1" (default) or "sha256"

    Returns:
        Lowercase hex digest

    Raises:
        ConfigurationError: If api_secret is missing
        SigningError: If the algorithm is not supported

    Example:
        >>> api_sign_request({"b": 2, "a": 1}, "secret") == api_sign_request({"a": 1, "b": 2}, "secret")
        True
    """
    if not api_secret:
        raise ConfigurationError("api_secret")
    payload = build_signature_payload(params)
    to_sign = "&".join(f"{key}={value}" for key, value in payload.items())
    return compute_hex_hash(to_sign + api_secret, algorithm)


def cleanup_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Drop empty values and convert the rest to wire strings."""
    return {
        key: to_wire(value)
        for key, value in params.items()
        if value is not None and value != ""
    }


def sign_request(
    params: Mapping[str, Any],
    options: Mapping[str, Any] | None = None,
    settings: SDKSettings | None = None,
) -> dict[str, Any]:
    """
    Return a copy of params with ``signature`` and ``api_key`` added.

    Per-call ``api_key``, ``api_secret`` and ``signature_algorithm``
    options override the settings.

    Raises:
        ConfigurationError: If the api key or secret is missing
    """
    options = options or {}
    settings = settings or get_settings()

    api_key = options.get("api_key") or settings.api_key
    if not api_key:
        raise ConfigurationError("api_key")
    api_secret = options.get("api_secret") or settings.api_secret
    if not api_secret:
        raise ConfigurationError("api_secret")
    algorithm = options.get("signature_algorithm") or settings.signature_algorithm

    signed = cleanup_params(params)
    signed["signature"] = api_sign_request(signed, api_secret, algorithm)
    signed["api_key"] = api_key
    return signed


def url_signature(
    to_sign: str,
    api_secret: str | None,
    algorithm: str = SIGNATURE_SHA1,
    long_signature: bool = False,
) -> str:
    """
    Signature component embedded in delivery URLs (``s--XXXXXXXX--``).

    A long signature forces SHA-256 and keeps 32 characters.
    """
    if not api_secret:
        raise ConfigurationError("api_secret")
    if long_signature:
        algorithm = SIGNATURE_SHA256
        length = LONG_URL_SIGNATURE_LENGTH
    else:
        length = SHORT_URL_SIGNATURE_LENGTH
    digest = _hash_fn(algorithm)((to_sign + api_secret).encode("utf-8")).digest()
    return "s--" + base64.urlsafe_b64encode(digest)[:length].decode("ascii") + "--"


def verify_api_response_signature(
    public_id: str,
    version: int | str,
    signature: str,
    algorithm: str | None = None,
    settings: SDKSettings | None = None,
) -> bool:
    """Check the ``X-Cld-Signature`` of an API response."""
    settings = settings or get_settings()
    expected = api_sign_request(
        {"public_id": public_id, "version": version},
        settings.api_secret,
        algorithm or settings.signature_algorithm,
    )
    return hmac.compare_digest(expected, signature)


def verify_notification_signature(
    body: str,
    timestamp: int,
    signature: str,
    valid_for: int = 7200,
    algorithm: str | None = None,
    settings: SDKSettings | None = None,
) -> bool:
    """
    Check a webhook notification signature.

    Args:
        body: Raw JSON body of the notification
        timestamp: Value of the ``X-Cld-Timestamp`` header
        signature: Value of the ``X-Cld-Signature`` header
        valid_for: Seconds after which the notification is rejected
    """
    settings = settings or get_settings()
    if not settings.api_secret:
        raise ConfigurationError("api_secret")
    if timestamp < time.time() - valid_for:
        return False
    expected = compute_hex_hash(
        f"{body}{timestamp}{settings.api_secret}",
        algorithm or settings.signature_algorithm,
    )
    return hmac.compare_digest(expected, signature)


__all__ = [
    "SIGNATURE_SHA1",
    "SIGNATURE_SHA256",
    "SIGNATURE_ALGORITHMS",
    "compute_hex_hash",
    "build_signature_payload",
    "api_sign_request",
    "cleanup_params",
    "sign_request",
    "url_signature",
    "verify_api_response_signature",
    "verify_notification_signature",
]
