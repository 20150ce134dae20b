"""
Sync wrapper generator for async clients.

Generates a blocking class from an async one at import time, so only the
async code path is written and tested.

Usage:
    class AsyncUploader:
        async def upload(self, file, **options) -> UploadResult:
            ...

    Uploader = create_sync_client(AsyncUploader)
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import functools
import inspect
from typing import Any, Callable


def run_sync(coro):
    """Run coroutine to completion from synchronous code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # Called from inside an event loop: run on a private loop in a thread
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()
    return asyncio.run(coro)


def _make_sync_method(async_method: Callable) -> Callable:
    @functools.wraps(async_method)
    def sync_method(self, *args, **kwargs):
        async_client = getattr(self, "_async_client", None)
        if async_client is None:
            raise RuntimeError("Sync client not properly initialized")
        return run_sync(async_method(async_client, *args, **kwargs))

    return sync_method


def _make_property_forwarder(name: str) -> property:
    @property
    def forwarder(self):
        return getattr(self._async_client, name)

    return forwarder


def create_sync_client(async_class: type) -> type:
    """
    Create a blocking class from an async class.

    Public coroutine methods become blocking methods, public properties
    are forwarded and the constructor arguments are passed through.
    Aliases (``upload_chunked = upload_large``) keep working.

    Args:
        async_class: Class whose public coroutine methods to wrap

    Returns:
        New class named like ``async_class`` without the ``Async`` prefix

    Example:
        >>> Uploader = create_sync_client(AsyncUploader)
        >>> Uploader(settings=settings).upload("logo.png")
    """
    sync_name = async_class.__name__
    if sync_name.startswith("Async"):
        sync_name = sync_name[len("Async"):]

    class_dict: dict[str, Any] = {}
    for name in dir(async_class):
        if name.startswith("_"):
            continue
        attr = getattr(async_class, name)
        if inspect.iscoroutinefunction(attr):
            class_dict[name] = _make_sync_method(attr)
        elif isinstance(inspect.getattr_static(async_class, name), property):
            class_dict[name] = _make_property_forwarder(name)

    def sync_init(self, *args, **kwargs):
        self._async_client = async_class(*args, **kwargs)

    class_dict.update(
        {
            "__init__": sync_init,
            "__doc__": async_class.__doc__,
            "__module__": async_class.__module__,
        }
    )
    return type(sync_name, (), class_dict)


__all__ = ["create_sync_client", "run_sync"]
