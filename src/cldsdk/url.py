"""
Delivery URL assembly.

Combines host rules, the compiled transformation and the resource
identifier into an absolute URL:

    <prefix>/<resource_type>/<type>/<signature>/<transformation>/<version>/<public_id>.<format>

Empty components are skipped. The caller's options are never mutated;
options that are neither transformation nor URL settings are returned
alongside the URL (together with the width/height that are safe to use
as HTML attributes).
"""

from __future__ import annotations

import re
from typing import Any, Mapping
from urllib.parse import unquote

from cldsdk._helpers import shard, smart_escape
from cldsdk.config import (
    API_VERSION,
    OLD_AKAMAI_SHARED_CDN,
    SHARED_CDN,
    SDKSettings,
    get_settings,
)
from cldsdk.exceptions import ConfigurationError, ValidationError
from cldsdk.signing import url_signature
from cldsdk.transformation import (
    generate_transformation_string,
    validate_delivery_type,
    validate_resource_type,
)

# Options that fall back to the settings when not given per call
_SETTING_KEYS = (
    "cloud_name",
    "secure",
    "private_cdn",
    "secure_distribution",
    "cname",
    "cdn_subdomain",
    "secure_cdn_subdomain",
    "force_version",
    "shorten",
    "use_root_path",
    "sign_url",
    "long_url_signature",
    "signature_algorithm",
    "api_secret",
)

_HTTP_RE = re.compile(r"^https?:/")
_VERSION_RE = re.compile(r"^v[0-9]+")


def _finalize_resource_type(
    resource_type: str | None,
    delivery_type: str | None,
    url_suffix: str | None,
    use_root_path: bool,
    shorten: bool,
) -> tuple[str | None, str | None]:
    if url_suffix is not None:
        if resource_type == "image" and delivery_type == "upload":
            resource_type, delivery_type = "images", None
        elif resource_type == "raw" and delivery_type == "upload":
            resource_type, delivery_type = "files", None
        else:
            raise ValidationError(
                "URL Suffix only supported for image/upload and raw/upload", option="url_suffix"
            )

    if use_root_path:
        if (resource_type, delivery_type) in (("image", "upload"), ("images", None)):
            resource_type, delivery_type = None, None
        else:
            raise ValidationError("Root path only supported for image/upload", option="use_root_path")

    if shorten and resource_type == "image" and delivery_type == "upload":
        resource_type, delivery_type = "iu", None
    return resource_type, delivery_type


def _finalize_source(
    source: str,
    file_format: str | None,
    url_suffix: str | None,
) -> tuple[str, str]:
    """Return (source for the URL, source covered by the URL signature)."""
    source = re.sub(r"([^:])/+", r"\1/", source)
    if _HTTP_RE.match(source):
        source = smart_escape(source)
        return source, source

    source = smart_escape(unquote(source))
    source_to_sign = source
    if url_suffix is not None:
        if re.search(r"[./]", url_suffix):
            raise ValidationError("url_suffix should not include . or /", option="url_suffix")
        source = f"{source}/{url_suffix}"
    if file_format:
        source = f"{source}.{file_format}"
        source_to_sign = f"{source_to_sign}.{file_format}"
    return source, source_to_sign


def unsigned_download_url_prefix(
    source: str,
    cloud_name: str,
    private_cdn: bool,
    cdn_subdomain: bool,
    secure_cdn_subdomain: bool | None,
    cname: str | None,
    secure: bool,
    secure_distribution: str | None,
) -> str:
    """
    Scheme and host part of a delivery URL.

    - Shared distribution: ``res.cloudinary.com/<cloud>``.
    - Private CDN: ``<cloud>-res.cloudinary.com``.
    - cname (plain delivery only): ``<cname>``, sharded to ``a[1-5].<cname>``
      when ``cdn_subdomain`` is set.
    - Secure delivery shards to ``res-[1-5]`` only when
      ``secure_cdn_subdomain`` is explicitly enabled.
    """
    shared_domain = not private_cdn

    if secure:
        if secure_distribution is None or secure_distribution == OLD_AKAMAI_SHARED_CDN:
            secure_distribution = f"{cloud_name}-res.cloudinary.com" if private_cdn else SHARED_CDN
        shared_domain = shared_domain or secure_distribution == SHARED_CDN
        if secure_cdn_subdomain:
            secure_distribution = secure_distribution.replace(
                SHARED_CDN, f"res-{shard(source)}.cloudinary.com"
            )
        prefix = f"https://{secure_distribution}"
    elif cname:
        subdomain = f"a{shard(source)}." if cdn_subdomain else ""
        prefix = f"http://{subdomain}{cname}"
    else:
        subdomain = f"{cloud_name}-res" if private_cdn else "res"
        prefix = f"http://{subdomain}.cloudinary.com"

    if shared_domain:
        prefix = f"{prefix}/{cloud_name}"
    return prefix


def cloudinary_url(
    public_id: str,
    options: Mapping[str, Any] | None = None,
    settings: SDKSettings | None = None,
) -> tuple[str, dict[str, Any]]:
    """
    Build a delivery URL.

    Args:
        public_id: Resource identifier (may contain ``/`` folders)
        options: Transformation and URL options; not modified
        settings: Explicit settings; defaults to ``get_settings()``

    Returns:
        Tuple of (url, remaining options)

    Raises:
        ValidationError: Invalid option value
        ConfigurationError: No cloud name configured

    Example:
        >>> settings = SDKSettings(cloud_name="test123", secure=False)
        >>> cloudinary_url("video_id", {"resource_type": "video", "start_offset": "auto"}, settings)
        ('http://res.cloudinary.com/test123/video/upload/so_auto/video_id', {})
    """
    settings = settings or get_settings()
    working = dict(options or {})

    delivery_type = validate_delivery_type(working.pop("type", None) or "upload")
    if delivery_type == "fetch":
        fetch_format = working.pop("format", None)
        working.setdefault("fetch_format", fetch_format)

    compiled = generate_transformation_string(working)
    remaining = compiled.options

    resource_type = validate_resource_type(remaining.pop("resource_type", None) or "image")
    version = remaining.pop("version", None)
    file_format = remaining.pop("format", None)
    url_suffix = remaining.pop("url_suffix", None)
    conf = {key: remaining.pop(key, getattr(settings, key)) for key in _SETTING_KEYS}

    if not conf["cloud_name"]:
        raise ConfigurationError("cloud_name")

    for attr, value in zip(("width", "height"), compiled.html_size):
        if value is not None:
            remaining[attr] = value

    if not public_id or (delivery_type == "upload" and re.match(r"^https?:", public_id)):
        return public_id, remaining

    path_resource_type, path_type = _finalize_resource_type(
        resource_type, delivery_type, url_suffix, conf["use_root_path"], conf["shorten"]
    )
    source, source_to_sign = _finalize_source(public_id, file_format, url_suffix)

    if (
        not version
        and conf["force_version"] is not False
        and "/" in source_to_sign
        and not _HTTP_RE.match(source_to_sign)
        and not _VERSION_RE.match(source_to_sign)
    ):
        version = 1
    version_component = f"v{version}" if version else None

    signature = None
    if conf["sign_url"]:
        to_sign = "/".join(part for part in (compiled.path, source_to_sign) if part)
        signature = url_signature(
            to_sign,
            conf["api_secret"],
            conf["signature_algorithm"],
            long_signature=bool(conf["long_url_signature"]),
        )

    prefix = unsigned_download_url_prefix(
        source,
        conf["cloud_name"],
        conf["private_cdn"],
        conf["cdn_subdomain"],
        conf["secure_cdn_subdomain"],
        conf["cname"],
        conf["secure"],
        conf["secure_distribution"],
    )
    components = [
        prefix,
        path_resource_type,
        path_type,
        signature,
        compiled.path,
        version_component,
        source,
    ]
    return "/".join(part for part in components if part), remaining


def url(public_id: str, settings: SDKSettings | None = None, **options: Any) -> str:
    """Build a delivery URL and drop the remaining options."""
    return cloudinary_url(public_id, options, settings)[0]


def video_thumbnail_url(
    public_id: str,
    options: Mapping[str, Any] | None = None,
    settings: SDKSettings | None = None,
) -> str:
    """
    URL of a still frame of a video (``jpg`` unless another format is given).

    Example:
        >>> video_thumbnail_url("movie_id", settings=SDKSettings(cloud_name="test123", secure=False))
        'http://res.cloudinary.com/test123/video/upload/movie_id.jpg'
    """
    working = {"resource_type": "video", "format": "jpg", **(options or {})}
    return cloudinary_url(public_id, working, settings)[0]


def api_url(
    action: str = "upload",
    resource_type: str = "image",
    options: Mapping[str, Any] | None = None,
    settings: SDKSettings | None = None,
) -> str:
    """
    Endpoint of the upload API.

    Example:
        >>> api_url("upload", "video", settings=SDKSettings(cloud_name="demo"))
        'https://api.cloudinary.com/v1_1/demo/video/upload'
    """
    options = options or {}
    settings = settings or get_settings()
    prefix = options.get("upload_prefix") or settings.upload_prefix
    cloud_name = options.get("cloud_name") or settings.cloud_name
    if not cloud_name:
        raise ConfigurationError("cloud_name")
    return "/".join([prefix.rstrip("/"), API_VERSION, cloud_name, resource_type, action])


__all__ = [
    "cloudinary_url",
    "url",
    "video_thumbnail_url",
    "api_url",
    "unsigned_download_url_prefix",
]
