"""
Python client for a media-management service.

Builds delivery URLs with on-the-fly transformations, signs API and URL
requests, and uploads assets (including chunked uploads of large files).

Quick start:
    >>> from cldsdk import configure_settings, url, Uploader
    >>> configure_settings(cloud_name="demo", api_key="123", api_secret="abc")
    >>> url("sample.jpg", width=100, height=150, crop="fill")
    'https://res.cloudinary.com/demo/image/upload/c_fill,h_150,w_100/sample.jpg'
    >>> Uploader().upload("logo.png").public_id
"""

from cldsdk.config import (
    DEFAULT_CHUNK_SIZE,
    MIN_CHUNK_SIZE,
    SDKSettings,
    configure_settings,
    get_settings,
    reset_settings,
)
from cldsdk.exceptions import (
    CldError,
    ConfigurationError,
    PartSizeError,
    ServerError,
    SigningError,
    ValidationError,
)
from cldsdk.logging import get_logger, setup_logging
from cldsdk.signing import (
    api_sign_request,
    sign_request,
    verify_api_response_signature,
    verify_notification_signature,
)
from cldsdk.transformation import (
    CanonicalParam,
    CompiledTransformation,
    TransformationSegment,
    generate_transformation_string,
)
from cldsdk.uploader import (
    AsyncUploader,
    ChunkedUploadController,
    HttpxTransport,
    Transport,
    Uploader,
    UploadResult,
    UploadSession,
    UploadState,
    build_upload_params,
    image_upload_tag,
)
from cldsdk.url import api_url, cloudinary_url, url, video_thumbnail_url

__version__ = "0.3.0"

__all__ = [
    "__version__",
    # Config
    "SDKSettings",
    "get_settings",
    "configure_settings",
    "reset_settings",
    "MIN_CHUNK_SIZE",
    "DEFAULT_CHUNK_SIZE",
    # Logging
    "get_logger",
    "setup_logging",
    # Exceptions
    "CldError",
    "ValidationError",
    "ConfigurationError",
    "SigningError",
    "ServerError",
    "PartSizeError",
    # Transformations
    "CanonicalParam",
    "CompiledTransformation",
    "TransformationSegment",
    "generate_transformation_string",
    # Signing
    "api_sign_request",
    "sign_request",
    "verify_api_response_signature",
    "verify_notification_signature",
    # URLs
    "cloudinary_url",
    "url",
    "video_thumbnail_url",
    "api_url",
    # Uploads
    "AsyncUploader",
    "Uploader",
    "ChunkedUploadController",
    "HttpxTransport",
    "Transport",
    "UploadResult",
    "UploadSession",
    "UploadState",
    "build_upload_params",
    "image_upload_tag",
]
