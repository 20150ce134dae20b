"""
Transformation compiler for cldsdk.

Compiles option mappings into the delivery URL mini-language:

    >>> from cldsdk.transformation import generate_transformation_string
    >>> generate_transformation_string({"video_codec": "h264:basic:3.1"}).path
    'vc_h264:basic:3.1'
"""

from cldsdk.transformation._compiler import (
    CompiledTransformation,
    HtmlSize,
    TransformationSegment,
    compile_chain,
    generate_transformation_string,
)
from cldsdk.transformation._params import (
    PARAMETERS,
    CanonicalParam,
    Param,
    encode_coordinates,
    extract_params,
    validate_delivery_type,
    validate_resource_type,
)

__all__ = [
    # Compiler
    "CompiledTransformation",
    "HtmlSize",
    "TransformationSegment",
    "compile_chain",
    "generate_transformation_string",
    # Canonicalizer
    "PARAMETERS",
    "CanonicalParam",
    "Param",
    "encode_coordinates",
    "extract_params",
    "validate_delivery_type",
    "validate_resource_type",
]
