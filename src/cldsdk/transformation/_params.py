"""
Parameter canonicalizer.

Turns caller options into typed ``CanonicalParam`` pairs using a closed
table: every recognized option key has exactly one short code and its
own encoder. Extraction never mutates the caller's mapping; it returns
the params together with the options it did not consume.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from fractions import Fraction
from numbers import Number
from typing import Any, Callable, Mapping

from cldsdk._helpers import base64_encode_url, build_array, smart_escape
from cldsdk.exceptions import ValidationError

RANGE_VALUE_RE = re.compile(r"^(?P<value>(\d+\.)?\d+)(?P<modifier>[%pP])?$")
RANGE_RE = re.compile(r"^(\d+\.)?\d+[%pP]?\.\.(\d+\.)?\d+[%pP]?$")
VAR_NAME_RE = r"(\$\([a-zA-Z]\w+\))"

CROP_MODES = frozenset({
    "scale", "fit", "limit", "mfit", "fill", "lfill", "pad", "lpad", "mpad",
    "fill_pad", "crop", "thumb", "imagga_crop", "imagga_scale", "auto",
})

GRAVITY_VALUES = frozenset({
    "north_west", "north", "north_east", "west", "center", "east",
    "south_west", "south", "south_east", "xy_center", "face", "faces",
    "adv_face", "adv_faces", "adv_eyes", "body", "liquid", "ocr_text",
    "auto", "custom",
})

RESOURCE_TYPES = frozenset({"image", "video", "raw", "auto"})

DELIVERY_TYPES = frozenset({
    "upload", "private", "authenticated", "fetch", "list", "multi", "text",
    "asset", "sprite", "facebook", "twitter", "twitter_name", "gravatar",
    "youtube", "hulu", "vimeo", "animoto", "worldstarhiphop", "dailymotion",
})

_LAYER_KEYWORDS = (
    ("font_weight", "normal"),
    ("font_style", "normal"),
    ("text_decoration", "none"),
    ("text_align", None),
    ("stroke", "none"),
)

# Rendering groups: user variables first, regular params sorted by token,
# raw transformations last.
GROUP_VARIABLE = 0
GROUP_PARAM = 1
GROUP_RAW = 2


@dataclass(frozen=True)
class CanonicalParam:
    """One encoded ``code_value`` token of a transformation segment."""

    code: str
    value: str | None = None
    group: int = GROUP_PARAM

    def render(self) -> str:
        if self.value is None:
            return self.code
        return f"{self.code}_{self.value}"


@dataclass(frozen=True)
class Param:
    """A recognized option key, its short code and its encoder."""

    key: str
    code: str
    encode: Callable[[Any], str | None]


# =============================================================================
# Encoders
# =============================================================================


def _present(value: Any) -> bool:
    return value is not None and (bool(value) or value == 0)


def encode_expression(value: Any) -> str | None:
    if not _present(value):
        return None
    return re.sub(r"[ _]+", "_", str(value))


def encode_passthrough(value: Any) -> str | None:
    """Rates, frequencies and sampling: strings verbatim, numbers stringified."""
    if not _present(value):
        return None
    return str(value)


def encode_color(value: Any) -> str | None:
    if not _present(value):
        return None
    return str(value).replace("#", "rgb:")


def encode_codec(value: Any) -> str | None:
    """``"codec:profile:level"`` or ``{codec, profile, level}`` to ``codec:profile:level``."""
    if not _present(value):
        return None
    if isinstance(value, Mapping):
        if "codec" not in value:
            raise ValidationError("Codec mapping must contain 'codec'", option="codec")
        parts = [value.get("codec"), value.get("profile"), value.get("level")]
        encoded = ":".join(str(part) for part in parts if _present(part))
        if value.get("b_frames") is False:
            encoded += ":bframes_no"
        return encoded
    return ":".join(part for part in str(value).split(":") if part)


def encode_range_value(value: Any) -> str | None:
    """Seconds stay decimal; ``35p`` and ``35%`` both become ``35p``."""
    if not _present(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    match = RANGE_VALUE_RE.match(str(value))
    if match is None:
        raise ValidationError(f"Invalid range value '{value}'", option="offset")
    modifier = "p" if match.group("modifier") else ""
    return match.group("value") + modifier


def encode_start_offset(value: Any) -> str | None:
    if value == "auto":
        return value
    return encode_range_value(value)


def split_range(value: Any) -> tuple[Any, Any] | None:
    """Split ``"a..b"`` or a two-element sequence into start and end."""
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ValidationError(f"Offset range needs two values, got {len(value)}", option="offset")
        return value[0], value[1]
    if isinstance(value, str) and RANGE_RE.match(value):
        start, end = value.split("..", 1)
        return start, end
    return None


def encode_dotted(value: Any) -> str | None:
    values = [str(item) for item in build_array(value) if _present(item)]
    return ".".join(values) or None


def encode_effect(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        return ":".join(str(item) for item in value) or None
    if isinstance(value, Mapping):
        if not value:
            return None
        name, argument = next(iter(value.items()))
        return f"{name}:{argument}"
    return encode_expression(value)


def encode_border(value: Any) -> str | None:
    if isinstance(value, Mapping):
        color = str(value.get("color", "black")).replace("#", "rgb:")
        return f"{value.get('width', 2)}px_solid_{color}"
    return encode_passthrough(value)


def encode_radius(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        if not 1 <= len(value) <= 4:
            raise ValidationError("Invalid radius param", option="radius")
        return ":".join(str(encode_expression(item)) for item in value)
    return encode_passthrough(value)


def encode_aspect_ratio(value: Any) -> str | None:
    if isinstance(value, Fraction):
        return f"{value.numerator}:{value.denominator}"
    return encode_expression(value)


def encode_fps(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        return "-".join(str(encode_expression(item)) for item in value)
    return encode_passthrough(value)


def encode_keyframe_interval(value: Any) -> str | None:
    if not _present(value):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or not isinstance(value, Number):
        raise ValidationError(
            "Keyframe interval should be a number or a string", option="keyframe_interval"
        )
    if value <= 0:
        raise ValidationError(
            "Keyframe interval should be greater than zero", option="keyframe_interval"
        )
    return str(float(value))


def encode_crop(value: Any) -> str | None:
    if not _present(value):
        return None
    if value not in CROP_MODES:
        raise ValidationError(f"Invalid crop mode '{value}'", option="crop")
    return str(value)


def encode_gravity(value: Any) -> str | None:
    if not _present(value):
        return None
    base = str(value).split(":", 1)[0]
    if base not in GRAVITY_VALUES:
        raise ValidationError(f"Invalid gravity '{value}'", option="gravity")
    return str(value)


def _text_style(layer: Mapping[str, Any], layer_parameter: str) -> str | None:
    text_style = str(layer.get("text_style", "") or "")
    if text_style.strip():
        return text_style

    font_family = layer.get("font_family")
    font_size = layer.get("font_size")
    keywords = [
        layer[attr]
        for attr, default in _LAYER_KEYWORDS
        if layer.get(attr) is not None and layer.get(attr) != default
    ]
    for attr, prefix in (
        ("letter_spacing", "letter_spacing_"),
        ("line_spacing", "line_spacing_"),
        ("font_antialiasing", "antialias_"),
        ("font_hinting", "hinting_"),
    ):
        if layer.get(attr) is not None:
            keywords.append(f"{prefix}{layer[attr]}")

    if font_size is None and font_family is None and not keywords:
        return None
    if font_family is None:
        raise ValidationError(f"Must supply font_family for text in {layer_parameter}")
    if font_size is None:
        raise ValidationError(f"Must supply font_size for text in {layer_parameter}")
    return "_".join(str(part) for part in [font_family, font_size, *keywords])


def _escape_layer_text(text: str) -> str:
    encoded = []
    for part in re.split(VAR_NAME_RE, text):
        if not part:
            continue
        if re.match(VAR_NAME_RE, part):
            encoded.append(part)
        else:
            encoded.append(smart_escape(smart_escape(part, rb"([,/])")))
    return "".join(encoded)


def encode_layer(value: Any, layer_parameter: str) -> str | None:
    """Overlay/underlay: strings pass through, mappings are assembled."""
    if isinstance(value, str) and value.startswith("fetch:"):
        value = {"url": value[len("fetch:"):]}
    if not isinstance(value, Mapping):
        return encode_passthrough(value)

    resource_type = value.get("resource_type")
    text = value.get("text")
    public_id = value.get("public_id")
    fetch = value.get("url")
    if text is not None and resource_type is None:
        resource_type = "text"
    if fetch and resource_type is None:
        resource_type = "fetch"
    if public_id is not None and value.get("format") is not None:
        public_id = f"{public_id}.{value['format']}"
    if public_id is None and resource_type not in ("text", "fetch"):
        raise ValidationError(f"Must supply public_id for non-text {layer_parameter}")

    components = []
    if resource_type is not None and resource_type != "image":
        components.append(resource_type)
    if value.get("type") not in (None, "upload"):
        components.append(value["type"])

    if resource_type in ("text", "subtitles"):
        if public_id is None and text is None:
            raise ValidationError(f"Must supply either text or public_id in {layer_parameter}")
        style = _text_style(value, layer_parameter)
        if style is not None:
            components.append(style)
        if public_id is not None:
            components.append(public_id.replace("/", ":"))
        if text is not None:
            components.append(_escape_layer_text(str(text)))
    elif resource_type == "fetch":
        components.append(base64_encode_url(fetch))
    else:
        components.append(public_id.replace("/", ":"))
    return ":".join(components)


def encode_coordinates(value: Any) -> str | None:
    """
    Face and custom coordinates.

    A single ``(x, y, w, h)`` tuple is sugar for a one-element sequence;
    each tuple is comma-joined and tuples are pipe-joined in order.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    rows = list(value)
    if not rows:
        return None
    if not isinstance(rows[0], (list, tuple)):
        rows = [rows]
    encoded = []
    for row in rows:
        if len(row) != 4:
            raise ValidationError(
                f"Coordinates must have 4 values, got {len(row)}", option="coordinates"
            )
        encoded.append(",".join(str(int(item)) for item in row))
    return "|".join(encoded)


def validate_resource_type(value: str) -> str:
    if value not in RESOURCE_TYPES:
        raise ValidationError(f"Invalid resource type '{value}'", option="resource_type")
    return value


def validate_delivery_type(value: str) -> str:
    if value not in DELIVERY_TYPES:
        raise ValidationError(f"Invalid delivery type '{value}'", option="type")
    return value


# =============================================================================
# Code table
# =============================================================================

PARAMETERS: dict[str, Param] = {
    param.key: param
    for param in (
        Param("angle", "a", encode_dotted),
        Param("aspect_ratio", "ar", encode_aspect_ratio),
        Param("audio_codec", "ac", encode_codec),
        Param("audio_frequency", "af", encode_passthrough),
        Param("background", "b", encode_color),
        Param("bit_rate", "br", encode_passthrough),
        Param("border", "bo", encode_border),
        Param("color", "co", encode_color),
        Param("color_space", "cs", encode_passthrough),
        Param("crop", "c", encode_crop),
        Param("default_image", "d", encode_passthrough),
        Param("delay", "dl", encode_passthrough),
        Param("density", "dn", encode_passthrough),
        Param("dpr", "dpr", encode_expression),
        Param("duration", "du", encode_range_value),
        Param("effect", "e", encode_effect),
        Param("end_offset", "eo", encode_range_value),
        Param("fetch_format", "f", encode_passthrough),
        Param("flags", "fl", encode_dotted),
        Param("fps", "fps", encode_fps),
        Param("gravity", "g", encode_gravity),
        Param("height", "h", encode_expression),
        Param("keyframe_interval", "ki", encode_keyframe_interval),
        Param("opacity", "o", encode_expression),
        Param("overlay", "l", lambda value: encode_layer(value, "overlay")),
        Param("page", "pg", encode_passthrough),
        Param("prefix", "p", encode_passthrough),
        Param("quality", "q", encode_expression),
        Param("radius", "r", encode_radius),
        Param("start_offset", "so", encode_start_offset),
        Param("streaming_profile", "sp", encode_passthrough),
        Param("underlay", "u", lambda value: encode_layer(value, "underlay")),
        Param("video_codec", "vc", encode_codec),
        Param("video_sampling", "vs", encode_passthrough),
        Param("width", "w", encode_expression),
        Param("x", "x", encode_expression),
        Param("y", "y", encode_expression),
        Param("zoom", "z", encode_expression),
    )
}

# Keys expanded into several codes
RANGE_KEY = "offset"
VARIABLES_KEY = "variables"
RAW_KEY = "raw_transformation"


def extract_params(
    options: Mapping[str, Any],
) -> tuple[list[CanonicalParam], dict[str, Any]]:
    """
    Extract and encode every recognized transformation option.

    Args:
        options: Caller options; left untouched

    Returns:
        Tuple of (params in extraction order, leftover options)

    Raises:
        ValidationError: Invalid value, or two options mapping to one code

    Example:
        >>> params, leftover = extract_params({"width": 100, "public_id": "x"})
        >>> [p.render() for p in params], leftover
        (['w_100'], {'public_id': 'x'})
    """
    leftover = dict(options)
    params: list[CanonicalParam] = []
    owners: dict[str, str] = {}

    def add(key: str, code: str, value: str | None, group: int = GROUP_PARAM) -> None:
        if value is None:
            return
        if code in owners:
            raise ValidationError(
                f"Options '{owners[code]}' and '{key}' both set '{code}'", option=key
            )
        owners[code] = key
        params.append(CanonicalParam(code, value, group))

    for key, param in PARAMETERS.items():
        if key in leftover:
            add(key, param.code, param.encode(leftover.pop(key)))

    if RANGE_KEY in leftover:
        raw_range = leftover.pop(RANGE_KEY)
        bounds = split_range(raw_range)
        if bounds is None and raw_range is not None:
            raise ValidationError(f"Invalid offset range '{raw_range}'", option=RANGE_KEY)
        if bounds is not None:
            add(RANGE_KEY, "so", encode_start_offset(bounds[0]))
            add(RANGE_KEY, "eo", encode_range_value(bounds[1]))

    for key in sorted(k for k in leftover if k.startswith("$")):
        add(key, key, encode_expression(leftover.pop(key)), GROUP_VARIABLE)
    for name, value in build_array(leftover.pop(VARIABLES_KEY, None)):
        add(name, name, encode_expression(value), GROUP_VARIABLE)

    raw = leftover.pop(RAW_KEY, None)
    if _present(raw):
        params.append(CanonicalParam(str(raw), None, GROUP_RAW))

    return params, leftover


__all__ = [
    "CanonicalParam",
    "Param",
    "PARAMETERS",
    "extract_params",
    "encode_codec",
    "encode_range_value",
    "encode_coordinates",
    "encode_layer",
    "split_range",
    "validate_resource_type",
    "validate_delivery_type",
]
