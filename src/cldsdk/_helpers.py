"""Shared encoding helpers for URLs, upload params and signatures."""

from __future__ import annotations

import base64
import json
import os
import re
import secrets
import string
import zlib
from datetime import date, datetime, timezone
from typing import IO, Any

REMOTE_URL_RE = re.compile(
    r"ftp:|https?:|s3:|gs:|"
    r"data:([\w-]+/[\w-]+(\+[\w-]+)?)?(;[\w-]+=[\w-]+)*;base64,([a-zA-Z0-9/+\n=]+)$"
)

_UNSAFE_RE = re.compile(rb"([^a-zA-Z0-9_.\-/:]+)")


def build_array(value: Any) -> list[Any]:
    """Wrap a scalar into a list; ``None`` becomes an empty list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def smart_escape(source: str, unsafe: bytes = _UNSAFE_RE.pattern) -> str:
    """Percent-encode every byte outside the safe set; keeps ``/`` and ``:``."""

    def _pack(match: re.Match[bytes]) -> bytes:
        return "".join(f"%{byte:02X}" for byte in match.group(1)).encode("ascii")

    return re.sub(unsafe, _pack, source.encode("utf-8")).decode("ascii")


def base64_encode_url(url: str) -> str:
    """Base64 of the escaped url, used by fetch layers."""
    return base64.b64encode(smart_escape(url).encode("utf-8")).decode("ascii")


def shard(source: str) -> str:
    """Pick one of the five CDN subdomains for a public id."""
    return str((zlib.crc32(source.encode("utf-8")) & 0xFFFFFFFF) % 5 + 1)


def iso_timestamp(value: datetime | date) -> str:
    """
    Render a date in the wire format the service stores.

    Datetimes are converted to UTC with millisecond precision
    (``2019-02-22T16:20:57.000Z``); naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
    return value.isoformat()


def _json_default(obj: Any) -> str:
    if isinstance(obj, (datetime, date)):
        return iso_timestamp(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def json_encode(value: Any) -> str:
    """Compact JSON with dates rendered as ISO-8601."""
    return json.dumps(value, default=_json_default, separators=(",", ":"))


def to_wire(value: Any) -> Any:
    """
    Convert a single parameter value to the exact string sent to the server.

    Lists are converted element-wise so signing can join them with commas.
    """
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (datetime, date)):
        return iso_timestamp(value)
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    return str(value)


def is_remote_url(file: Any) -> bool:
    return isinstance(file, str) and REMOTE_URL_RE.match(file) is not None


def random_public_id(length: int = 16) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def file_io_size(file_io: IO[bytes]) -> int | None:
    """Size of a seekable file-like object, or None for pipes and sockets."""
    try:
        position = file_io.tell()
        file_io.seek(0, os.SEEK_END)
        size = file_io.tell()
        file_io.seek(position, os.SEEK_SET)
    except (AttributeError, OSError, ValueError):
        return None
    return size - position
