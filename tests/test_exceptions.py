"""
Tests for cldsdk exceptions.
"""

import pytest

from cldsdk.exceptions import (
    CldError,
    ConfigurationError,
    PartSizeError,
    ServerError,
    SigningError,
    ValidationError,
)


class TestCldError:
    """Tests for base CldError."""

    def test_basic_error(self):
        """Test basic error creation."""
        error = CldError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"

    def test_error_with_cause(self):
        """Cause is stored but not shown in str."""
        cause = ValueError("Original error")
        error = CldError("Wrapped error", cause=cause)
        assert error._original_cause is cause
        assert str(error) == "Wrapped error"

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad"),
            ConfigurationError("api_key"),
            SigningError("md5"),
            ServerError(400, "bad request"),
            PartSizeError(10, 20),
        ],
    )
    def test_hierarchy(self, error):
        """All errors can be caught as CldError."""
        assert isinstance(error, CldError)


class TestErrorDetails:
    """Tests for error attributes and messages."""

    def test_validation_error_option(self):
        error = ValidationError("Invalid crop mode 'x'", option="crop")
        assert error.option == "crop"
        assert str(error) == "Invalid crop mode 'x'"

    def test_configuration_error(self):
        error = ConfigurationError("cloud_name")
        assert error.setting == "cloud_name"
        assert str(error) == "Must supply cloud_name"

    def test_signing_error(self):
        error = SigningError("md5")
        assert "md5" in str(error)

    def test_server_error(self):
        error = ServerError(499, "Request Timeout", response={"error": {}})
        assert error.status == 499
        assert error.http_code == 499
        assert error.response == {"error": {}}
        assert str(error) == "Request Timeout"
        assert "499" in repr(error)

    def test_part_size_error(self):
        error = PartSizeError(1024, 5 * 1024 * 1024)
        assert error.size == 1024
        assert error.minimum == 5 * 1024 * 1024
        assert str(error) == "All parts except EOF-chunk must be larger than 5mb"
