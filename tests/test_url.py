"""
Tests for delivery URL assembly.
"""

from __future__ import annotations

import base64
import hashlib
import zlib

import pytest

from cldsdk.config import SDKSettings
from cldsdk.exceptions import ConfigurationError, ValidationError
from cldsdk.url import api_url, cloudinary_url, url, video_thumbnail_url

ROOT = "http://res.cloudinary.com/test123"


def shard(source: str) -> int:
    return zlib.crc32(source.encode()) % 5 + 1


class TestCloudinaryUrl:
    """Tests for cloudinary_url."""

    def test_video_start_offset(self, settings):
        options = {"resource_type": "video", "start_offset": "auto"}
        result, remaining = cloudinary_url("video_id", options, settings)
        assert result == f"{ROOT}/video/upload/so_auto/video_id"
        assert "start_offset" not in remaining
        assert remaining == {}

    def test_options_not_mutated(self, settings):
        options = {"width": 100, "type": "upload", "format": "png"}
        cloudinary_url("sample", options, settings)
        assert options == {"width": 100, "type": "upload", "format": "png"}

    def test_plain(self, settings):
        assert url("sample.jpg", settings) == f"{ROOT}/image/upload/sample.jpg"

    def test_format_and_version(self, settings):
        assert url("sample", settings, format="png", version=1315060510) == (
            f"{ROOT}/image/upload/v1315060510/sample.png"
        )

    def test_transformation(self, settings):
        assert url("sample.jpg", settings, width=100, height=150, crop="fill") == (
            f"{ROOT}/image/upload/c_fill,h_150,w_100/sample.jpg"
        )

    def test_html_size_in_remaining(self, settings):
        _, remaining = cloudinary_url("sample", {"width": 100, "height": 50}, settings)
        assert remaining == {"width": 100, "height": 50}

    def test_html_size_suppressed(self, settings):
        options = {"width": 100, "height": 100, "overlay": "text:hello"}
        result, remaining = cloudinary_url("sample", options, settings)
        assert "h_100,l_text:hello,w_100" in result
        assert remaining == {}

    def test_unknown_options_returned(self, settings):
        _, remaining = cloudinary_url("sample", {"alt": "a dog"}, settings)
        assert remaining == {"alt": "a dog"}

    def test_folder_forces_version(self, settings):
        assert url("folder/test", settings) == f"{ROOT}/image/upload/v1/folder/test"

    def test_force_version_disabled(self, settings):
        assert url("folder/test", settings, force_version=False) == (
            f"{ROOT}/image/upload/folder/test"
        )

    def test_explicit_version_kept(self, settings):
        assert url("folder/test", settings, version=123) == f"{ROOT}/image/upload/v123/folder/test"

    def test_escaping(self, settings):
        assert url("hello world:a/b", settings, force_version=False) == (
            f"{ROOT}/image/upload/hello%20world:a/b"
        )

    def test_remote_upload_unchanged(self, settings):
        remote = "http://example.com/a.jpg"
        assert url(remote, settings) == remote

    def test_fetch_moves_format(self, settings):
        result = url("http://example.com/a.jpg", settings, type="fetch", format="png")
        assert result == f"{ROOT}/image/fetch/f_png/http://example.com/a.jpg"

    def test_unknown_type(self, settings):
        with pytest.raises(ValidationError):
            url("sample", settings, type="public")

    def test_unknown_resource_type(self, settings):
        with pytest.raises(ValidationError):
            url("sample", settings, resource_type="document")

    def test_missing_cloud_name(self):
        with pytest.raises(ConfigurationError) as exc_info:
            url("sample", SDKSettings())
        assert exc_info.value.message == "Must supply cloud_name"

    def test_cloud_name_option(self, settings):
        assert url("sample", settings, cloud_name="other") == (
            "http://res.cloudinary.com/other/image/upload/sample"
        )


class TestHosts:
    """Tests for host selection."""

    def test_secure_default(self):
        settings = SDKSettings(cloud_name="test123")
        assert url("sample.jpg", settings) == (
            "https://res.cloudinary.com/test123/image/upload/sample.jpg"
        )

    def test_private_cdn(self, settings):
        assert url("sample.jpg", settings, private_cdn=True) == (
            "http://test123-res.cloudinary.com/image/upload/sample.jpg"
        )

    def test_private_cdn_secure(self, settings):
        assert url("sample.jpg", settings, private_cdn=True, secure=True) == (
            "https://test123-res.cloudinary.com/image/upload/sample.jpg"
        )

    def test_secure_distribution(self, settings):
        result = url(
            "test",
            settings,
            secure=True,
            private_cdn=True,
            secure_distribution="something.else.com",
        )
        assert result == "https://something.else.com/image/upload/test"

    def test_cname(self, settings):
        assert url("test", settings, cname="hello.com") == (
            "http://hello.com/test123/image/upload/test"
        )

    def test_cname_subdomain(self, settings):
        result = url("test", settings, cname="hello.com", cdn_subdomain=True)
        assert result == f"http://a{shard('test')}.hello.com/test123/image/upload/test"

    def test_cdn_subdomain_without_cname(self, settings):
        """Without a cname the shared host is never sharded."""
        result = url("test", settings, cdn_subdomain=True)
        assert result == "http://res.cloudinary.com/test123/image/upload/test"

    def test_secure_cdn_subdomain(self, settings):
        """cdn_subdomain alone does not shard secure delivery."""
        result = url("test", settings, secure=True, cdn_subdomain=True)
        assert result == "https://res.cloudinary.com/test123/image/upload/test"

    def test_secure_cdn_subdomain_default_settings(self):
        result = url("test", SDKSettings(cloud_name="test123"), cdn_subdomain=True)
        assert result == "https://res.cloudinary.com/test123/image/upload/test"

    def test_secure_cdn_subdomain_enabled(self, settings):
        result = url("test", settings, secure=True, secure_cdn_subdomain=True)
        assert result == f"https://res-{shard('test')}.cloudinary.com/test123/image/upload/test"

    def test_secure_cdn_subdomain_disabled(self, settings):
        result = url("test", settings, secure=True, cdn_subdomain=True, secure_cdn_subdomain=False)
        assert result == "https://res.cloudinary.com/test123/image/upload/test"


class TestPathVariants:
    """Tests for suffix, root path and shortened URLs."""

    def test_shorten(self, settings):
        assert url("test", settings, shorten=True) == f"{ROOT}/iu/test"

    def test_use_root_path(self, settings):
        assert url("test", settings, use_root_path=True) == f"{ROOT}/test"

    def test_url_suffix(self, settings):
        assert url("test", settings, url_suffix="hello") == f"{ROOT}/images/test/hello"
        assert url("test", settings, url_suffix="hello", format="jpg") == (
            f"{ROOT}/images/test/hello.jpg"
        )

    def test_url_suffix_raw(self, settings):
        assert url("test", settings, url_suffix="hello", resource_type="raw") == (
            f"{ROOT}/files/test/hello"
        )

    def test_url_suffix_rejects_dots(self, settings):
        with pytest.raises(ValidationError):
            url("test", settings, url_suffix="hello.world")

    def test_url_suffix_unsupported_type(self, settings):
        with pytest.raises(ValidationError):
            url("test", settings, url_suffix="hello", type="private")


class TestSignedUrl:
    """Tests for signed delivery URLs."""

    def test_signed_url(self, settings):
        result = url(
            "image.jpg",
            settings,
            version=1234,
            transformation={"crop": "crop", "width": 10, "height": 20},
            sign_url=True,
        )
        digest = hashlib.sha1(b"c_crop,h_20,w_10/image.jpgb").digest()
        signature = base64.urlsafe_b64encode(digest)[:8].decode()
        assert result == f"{ROOT}/image/upload/s--{signature}--/c_crop,h_20,w_10/v1234/image.jpg"

    def test_signed_url_long(self, settings):
        result = url("image.jpg", settings, sign_url=True, long_url_signature=True)
        digest = hashlib.sha256(b"image.jpgb").digest()
        signature = base64.urlsafe_b64encode(digest)[:32].decode()
        assert result == f"{ROOT}/image/upload/s--{signature}--/image.jpg"


class TestHelpers:
    """Tests for video_thumbnail_url and api_url."""

    def test_video_thumbnail_url(self, settings):
        assert video_thumbnail_url("movie_id", settings=settings) == (
            f"{ROOT}/video/upload/movie_id.jpg"
        )

    def test_video_thumbnail_url_options(self, settings):
        result = video_thumbnail_url("movie_id", {"format": "png", "start_offset": 3}, settings)
        assert result == f"{ROOT}/video/upload/so_3/movie_id.png"

    def test_api_url(self, settings):
        assert api_url("upload", "video", settings=settings) == (
            "https://api.cloudinary.com/v1_1/test123/video/upload"
        )

    def test_api_url_prefix(self, settings):
        result = api_url("upload", "raw", {"upload_prefix": "http://localhost:8000/"}, settings)
        assert result == "http://localhost:8000/v1_1/test123/raw/upload"
