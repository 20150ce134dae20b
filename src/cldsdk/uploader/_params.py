"""
Upload parameter serialization.

Builds the form fields of upload API calls from caller options. Values
are converted to the strings the server expects before signing.
"""

from __future__ import annotations

import html
import json
import time
from typing import Any, Mapping

from cldsdk._helpers import build_array, json_encode
from cldsdk.config import SDKSettings, get_settings
from cldsdk.signing import cleanup_params, sign_request
from cldsdk.transformation import encode_coordinates, generate_transformation_string
from cldsdk.url import api_url

SIMPLE_UPLOAD_PARAMS = (
    "public_id",
    "public_id_prefix",
    "callback",
    "format",
    "type",
    "backup",
    "faces",
    "image_metadata",
    "exif",
    "colors",
    "use_filename",
    "unique_filename",
    "display_name",
    "discard_original_filename",
    "filename_override",
    "invalidate",
    "notification_url",
    "eager_notification_url",
    "eager_async",
    "eval",
    "proxy",
    "folder",
    "asset_folder",
    "overwrite",
    "moderation",
    "raw_convert",
    "quality_override",
    "quality_analysis",
    "ocr",
    "categorization",
    "detection",
    "similarity_search",
    "background_removal",
    "upload_preset",
    "phash",
    "return_delete_token",
    "auto_tagging",
    "async",
    "cinemagraph_analysis",
    "accessibility_analysis",
)


def now() -> str:
    """Current unix time, the wire form of ``timestamp``."""
    return str(int(time.time()))


def _normalize_context_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = json_encode(value)
    return str(value).replace("=", "\\=").replace("|", "\\|")


def encode_context(context: Any) -> Any:
    """``{"k": "v"}`` to ``k=v|k2=v2`` with delimiters escaped."""
    if not isinstance(context, Mapping):
        return context
    return "|".join(f"{key}={_normalize_context_value(value)}" for key, value in context.items())


def encode_list(value: Any) -> str | None:
    values = build_array(value)
    if not values:
        return None
    return ",".join(str(item) for item in values)


def build_custom_headers(headers: Any) -> str | None:
    if headers is None:
        return None
    if isinstance(headers, Mapping):
        headers = [f"{name}: {value}" for name, value in headers.items()]
    if isinstance(headers, (list, tuple)):
        return "\n".join(headers)
    return str(headers)


def build_single_eager(options: Mapping[str, Any] | str) -> str:
    """
    One eager transformation with an optional ``/format`` suffix.

    An empty format yields a trailing ``/`` (keep the original format).
    """
    if isinstance(options, str):
        return options
    transformation = generate_transformation_string(options).path
    if not transformation:
        return ""
    file_format = options.get("format")
    return transformation + (f"/{file_format}" if file_format is not None else "")


def build_eager(transformations: Any) -> str | None:
    if transformations is None:
        return None
    return "|".join(build_single_eager(item) for item in build_array(transformations))


def _breakpoint_settings(settings: Mapping[str, Any]) -> dict[str, Any]:
    settings = dict(settings)
    transformation = settings.get("transformation")
    if transformation is not None:
        settings["transformation"] = generate_transformation_string(transformation).path
    return settings


def build_responsive_breakpoints(breakpoints: Any) -> str | None:
    if breakpoints is None:
        return None
    return json_encode([_breakpoint_settings(item) for item in build_array(breakpoints)])


def build_access_control(access_control: Any) -> str | None:
    if access_control is None:
        return None
    if isinstance(access_control, str):
        return access_control
    return json_encode(build_array(access_control))


def build_upload_params(options: Mapping[str, Any], timestamp: bool = True) -> dict[str, Any]:
    """
    Serialize upload options into form fields.

    Args:
        options: Caller options (upload and transformation options mixed)
        timestamp: Include the current ``timestamp``

    Returns:
        Dict of fields; empty values are dropped
    """
    params: dict[str, Any] = {name: options.get(name) for name in SIMPLE_UPLOAD_PARAMS}
    params.update(
        {
            "transformation": generate_transformation_string(options).path,
            "eager": build_eager(options.get("eager")),
            "tags": encode_list(options.get("tags")),
            "allowed_formats": encode_list(options.get("allowed_formats")),
            "face_coordinates": encode_coordinates(options.get("face_coordinates")),
            "custom_coordinates": encode_coordinates(options.get("custom_coordinates")),
            "context": encode_context(options.get("context")),
            "metadata": encode_context(options.get("metadata")),
            "headers": build_custom_headers(options.get("headers")),
            "responsive_breakpoints": build_responsive_breakpoints(
                options.get("responsive_breakpoints")
            ),
            "access_control": build_access_control(options.get("access_control")),
        }
    )
    if timestamp:
        params["timestamp"] = now()
    return cleanup_params(params)


def upload_tag_params(
    options: Mapping[str, Any],
    settings: SDKSettings | None = None,
) -> dict[str, Any]:
    """Signed (or, with ``unsigned``, plain) params for browser uploads."""
    params = build_upload_params(options)
    if options.get("unsigned"):
        return params
    return sign_request(params, options, settings or get_settings())


def image_upload_tag(
    field: str,
    options: Mapping[str, Any] | None = None,
    html_options: Mapping[str, Any] | None = None,
    settings: SDKSettings | None = None,
) -> str:
    """
    HTML ``<input type="file">`` wired for direct browser uploads.

    Example:
        >>> image_upload_tag("image_id", {"chunk_size": 1234})  # doctest: +SKIP
        '<input type="file" name="file" data-url="..." ...>'
    """
    options = dict(options or {})
    html_options = dict(html_options or {})
    resource_type = options.get("resource_type", "auto")

    attrs: dict[str, Any] = {
        "data-url": api_url("upload", resource_type, options, settings),
        "data-form-data": json.dumps(upload_tag_params(options, settings), separators=(",", ":")),
        "data-cloudinary-field": field,
    }
    chunk_size = options.get("chunk_size")
    if chunk_size:
        attrs["data-max-chunk-size"] = chunk_size
    css_class = " ".join(filter(None, ["cloudinary-fileupload", html_options.pop("class", None)]))
    attrs["class"] = css_class
    attrs.update(html_options)

    rendered = " ".join(
        f'{name}="{html.escape(str(value), quote=True)}"' for name, value in attrs.items()
    )
    return f'<input type="file" name="file" {rendered}/>'


__all__ = [
    "SIMPLE_UPLOAD_PARAMS",
    "now",
    "encode_context",
    "build_eager",
    "build_custom_headers",
    "build_upload_params",
    "upload_tag_params",
    "image_upload_tag",
]
