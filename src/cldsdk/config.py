"""
SDK configuration using pydantic-settings.

Settings are read from ``CLOUDINARY_*`` environment variables, or from a
single ``CLOUDINARY_URL`` of the form::

    cloudinary://<api_key>:<api_secret>@<cloud_name>?secure=true

Every compiler, signer and assembler call accepts an explicit settings
value; ``get_settings()`` resolves the process-wide default once for
convenience call sites.
"""

from __future__ import annotations

from typing import Literal
from urllib.parse import parse_qsl, unquote, urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Minimum size of every non-final part of a chunked upload
MIN_CHUNK_SIZE = 5 * 1024 * 1024  # 5MiB

# Default part size for chunked uploads
DEFAULT_CHUNK_SIZE = 20_000_000  # 20MB

# Shared delivery host
SHARED_CDN = "res.cloudinary.com"
OLD_AKAMAI_SHARED_CDN = "cloudinary-a.akamaihd.net"

# Upload API
DEFAULT_UPLOAD_PREFIX = "https://api.cloudinary.com"
API_VERSION = "v1_1"

_URL_SCHEME = "cloudinary"


class SDKSettings(BaseSettings):
    """
    Process-wide configuration for URL generation, signing and uploads.

    Example:
        >>> settings = SDKSettings(cloud_name="demo", api_key="123", api_secret="abc")
        >>> settings.secure
        True
    """

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        extra="ignore",
        frozen=True,
    )

    # Account
    url: str | None = Field(default=None, description="cloudinary:// connection URL")
    cloud_name: str | None = None
    api_key: str | None = None
    api_secret: str | None = None

    # Delivery
    secure: bool = True
    private_cdn: bool = False
    secure_distribution: str | None = None
    cname: str | None = None
    cdn_subdomain: bool = False
    secure_cdn_subdomain: bool | None = None
    force_version: bool = True
    shorten: bool = False
    use_root_path: bool = False

    # Signing
    sign_url: bool = False
    long_url_signature: bool = False
    signature_algorithm: Literal["sha1", "sha256"] = "sha1"

    # Upload
    upload_prefix: str = DEFAULT_UPLOAD_PREFIX
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=MIN_CHUNK_SIZE)
    timeout: float | None = Field(default=60.0, gt=0)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    log_json: bool = False

    @model_validator(mode="before")
    @classmethod
    def _apply_connection_url(cls, data: object) -> object:
        """Fill account fields from ``url`` without overriding explicit values."""
        if not isinstance(data, dict) or not data.get("url"):
            return data
        parsed = urlparse(data["url"])
        if parsed.scheme != _URL_SCHEME:
            raise ValueError(f"Invalid CLOUDINARY_URL scheme: expecting '{_URL_SCHEME}://'")

        values = {
            # netloc keeps the case of the cloud name; hostname lowercases it
            "cloud_name": parsed.netloc.rpartition("@")[2].split(":", 1)[0] or None,
            "api_key": unquote(parsed.username) if parsed.username else None,
            "api_secret": unquote(parsed.password) if parsed.password else None,
        }
        if parsed.path.strip("/"):
            values["private_cdn"] = True
            values["secure_distribution"] = parsed.path.strip("/")
        for key, value in parse_qsl(parsed.query):
            values[key] = value

        merged = dict(data)
        for key, value in values.items():
            if value is not None and merged.get(key) is None:
                merged[key] = value
        return merged


# Global settings singleton
_settings: SDKSettings | None = None


def get_settings() -> SDKSettings:
    """
    Get the process-wide settings, creating them from the environment once.

    Returns:
        SDKSettings instance
    """
    global _settings
    if _settings is None:
        _settings = SDKSettings()
    return _settings


def configure_settings(**overrides: object) -> SDKSettings:
    """
    Replace the process-wide settings.

    Args:
        **overrides: Field values taking precedence over the environment

    Returns:
        The new SDKSettings instance

    Example:
        >>> configure_settings(cloud_name="demo", secure=False)
    """
    global _settings
    _settings = SDKSettings(**overrides)
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (mainly for tests)."""
    global _settings
    _settings = None


__all__ = [
    "SDKSettings",
    "get_settings",
    "configure_settings",
    "reset_settings",
    "MIN_CHUNK_SIZE",
    "DEFAULT_CHUNK_SIZE",
    "SHARED_CDN",
    "OLD_AKAMAI_SHARED_CDN",
    "DEFAULT_UPLOAD_PREFIX",
    "API_VERSION",
]
