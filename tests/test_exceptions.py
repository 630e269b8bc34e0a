"""Tests for custom exception hierarchy."""

import pytest

from cartcode.exceptions import (
    ArtifactWriteError,
    CartcodeError,
    CodecError,
    ConfigurationError,
    CorruptPayloadError,
    DecodeFailedError,
    FileNotFoundError,
    InvalidIdentifierError,
    InvalidInputError,
    StoreError,
    StoreUnavailableError,
    TransferTimeoutError,
    UnsupportedSymbolDataError,
)


def test_cartcode_error_base():
    """Test base CartcodeError."""
    error = CartcodeError("Test error", {"key": "value"})
    assert str(error) == "Test error"
    assert error.message == "Test error"
    assert error.details == {"key": "value"}


def test_details_default_to_empty_dict():
    error = TransferTimeoutError("Connection timeout")
    assert error.details == {}


def test_store_errors():
    """Test StoreUnavailableError and InvalidIdentifierError."""
    unavailable = StoreUnavailableError("Upload failed", {"api_url": "https://ipfs.test"})
    invalid = InvalidIdentifierError("empty")
    assert isinstance(unavailable, StoreError)
    assert isinstance(invalid, StoreError)
    assert unavailable.details == {"api_url": "https://ipfs.test"}


def test_codec_errors():
    assert isinstance(DecodeFailedError("nothing found"), CodecError)
    assert isinstance(UnsupportedSymbolDataError("bad text"), CodecError)


def test_file_not_found_is_not_builtin():
    """The project error is caught by CartcodeError handlers, not OSError ones."""
    error = FileNotFoundError("File not found", {"path": "/path/to/file"})
    assert isinstance(error, CartcodeError)
    assert not isinstance(error, OSError)


@pytest.mark.parametrize(
    ("cls", "kind"),
    [
        (InvalidInputError, "InvalidInput"),
        (FileNotFoundError, "FileNotFound"),
        (StoreUnavailableError, "StoreUnavailable"),
        (InvalidIdentifierError, "InvalidIdentifier"),
        (TransferTimeoutError, "Timeout"),
        (DecodeFailedError, "DecodeFailed"),
        (CorruptPayloadError, "CorruptPayload"),
        (UnsupportedSymbolDataError, "UnsupportedSymbolData"),
        (ConfigurationError, "Configuration"),
        (ArtifactWriteError, "WriteFailed"),
    ],
)
def test_error_kinds(cls, kind):
    assert cls.kind == kind
    assert issubclass(cls, CartcodeError)
