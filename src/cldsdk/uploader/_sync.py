"""
Synchronous upload API.

Generated from AsyncUploader; every call runs its own event loop.
For many concurrent uploads, use AsyncUploader directly.
"""

from __future__ import annotations

from cldsdk._sync_wrapper import create_sync_client
from cldsdk.uploader._aio import AsyncUploader

Uploader = create_sync_client(AsyncUploader)
Uploader.__doc__ = """
    Synchronous uploader.

    Example:
        >>> uploader = Uploader()
        >>> result = uploader.upload("logo.png", public_id="brand/logo")
        >>> print(result.secure_url)
    """

__all__ = ["Uploader"]
