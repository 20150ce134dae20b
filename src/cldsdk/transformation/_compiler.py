"""
Transformation compiler.

Renders canonical params into the URL mini-language: ``code_value``
tokens comma-joined within a segment, segments slash-joined in the order
the caller gave them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, NamedTuple, Sequence

from cldsdk._helpers import build_array
from cldsdk.transformation._params import (
    GROUP_PARAM,
    CanonicalParam,
    extract_params,
)

FLOAT_RE = re.compile(r"^(\d+)\.(\d+)?$")

# Crop modes whose output size differs from the requested width/height
_NON_HTML_CROPS = ("fit", "limit")


class HtmlSize(NamedTuple):
    """Width/height safe to emit as HTML attributes; None when suppressed."""

    width: Any = None
    height: Any = None


class CompiledTransformation(NamedTuple):
    """Result of compiling one option mapping."""

    path: str
    html_size: HtmlSize
    options: dict[str, Any]


@dataclass(frozen=True)
class TransformationSegment:
    """One slash-delimited group of params."""

    params: tuple[CanonicalParam, ...] = ()

    def render(self) -> str:
        ordered = sorted(
            self.params,
            key=lambda p: (p.group, p.render() if p.group == GROUP_PARAM else ""),
        )
        return ",".join(param.render() for param in ordered)

    def __bool__(self) -> bool:
        return bool(self.params)


def is_fraction(value: Any) -> bool:
    match = FLOAT_RE.match(str(value))
    return match is not None and float(str(value)) < 1


def _html_size(options: Mapping[str, Any]) -> HtmlSize:
    width = options.get("width")
    height = options.get("height")
    suppress = (
        options.get("overlay") is not None
        or options.get("underlay") is not None
        or options.get("angle") is not None
        or options.get("crop") in _NON_HTML_CROPS
    )

    if not width or suppress or str(width).startswith("auto") or str(width) == "ow" or is_fraction(width):
        width = None
    if not height or suppress or str(height) == "oh" or is_fraction(height):
        height = None
    return HtmlSize(width, height)


def compile_chain(segments: Sequence[Mapping[str, Any] | str]) -> str:
    """
    Compile an ordered chain of segments (layered transformations).

    Mappings are compiled as segments; strings are named transformations.
    Empty segments are dropped.
    """
    paths = []
    for segment in segments:
        if isinstance(segment, Mapping):
            paths.append(generate_transformation_string(segment).path)
        else:
            paths.append(generate_transformation_string({"transformation": segment}).path)
    return "/".join(path for path in paths if path)


def generate_transformation_string(
    options: Mapping[str, Any] | Sequence[Mapping[str, Any]],
) -> CompiledTransformation:
    """
    Compile transformation options into a URL path fragment.

    Args:
        options: One option mapping, or a list of mappings forming a chain.
            A ``transformation`` key holds nested segments (rendered
            before this one) or named transformation strings.

    Returns:
        CompiledTransformation with the path, the HTML size side channel
        and the options that are not transformation params.

    Raises:
        ValidationError: On invalid or conflicting values

    Example:
        >>> generate_transformation_string({"width": 100, "crop": "fill"}).path
        'c_fill,w_100'
    """
    if not isinstance(options, Mapping):
        options = {"transformation": list(options)}
    working = dict(options)

    size = working.pop("size", None)
    if size:
        working["width"], working["height"] = str(size).split("x", 1)
    html_size = _html_size(working)
    width = working.get("width")
    dpr = working.get("dpr")

    base = build_array(working.pop("transformation", None))
    if any(isinstance(item, Mapping) for item in base):
        chain = [compile_chain(base)]
        named = None
    else:
        chain = []
        named = ".".join(str(item) for item in base if item) or None

    params, leftover = extract_params(working)
    if named:
        params.append(CanonicalParam("t", named))
    chain.append(TransformationSegment(tuple(params)).render())

    path = "/".join(item for item in chain if item)
    path = re.sub(r"([^:])/+", r"\1/", path)

    if str(width).startswith("auto"):
        leftover["responsive"] = True
    if dpr == "auto":
        leftover["hidpi"] = True
    return CompiledTransformation(path, html_size, leftover)


__all__ = [
    "HtmlSize",
    "CompiledTransformation",
    "TransformationSegment",
    "compile_chain",
    "generate_transformation_string",
    "is_fraction",
]
