"""Custom exception hierarchy for cartcode."""

from __future__ import annotations


class CartcodeError(Exception):
    """Base exception for all cartcode-specific errors."""

    kind = "Error"

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CartcodeError):
    """Raised when configuration is invalid or missing."""

    kind = "Configuration"


class InvalidInputError(CartcodeError):
    """Raised when a path or title supplied by the user is malformed."""

    kind = "InvalidInput"


class FileNotFoundError(CartcodeError):
    """Raised when a required file is not found."""

    kind = "FileNotFound"


class StoreError(CartcodeError):
    """Base class for content store errors."""
    pass


class StoreUnavailableError(StoreError):
    """Raised when an upload or fetch against the content store fails."""

    kind = "StoreUnavailable"


class InvalidIdentifierError(StoreError):
    """Raised when a content identifier is empty or missing."""

    kind = "InvalidIdentifier"


class TransferTimeoutError(CartcodeError):
    """Raised when a network-bound stage does not finish in time."""

    kind = "Timeout"


class CodecError(CartcodeError):
    """Base class for visual code errors."""
    pass


class DecodeFailedError(CodecError):
    """Raised when no visual code is detected in an image."""

    kind = "DecodeFailed"


class UnsupportedSymbolDataError(CodecError):
    """Raised when text cannot be encoded by the selected symbology."""

    kind = "UnsupportedSymbolData"


class CorruptPayloadError(CartcodeError):
    """Raised when a fetched payload cannot be unpacked or is empty."""

    kind = "CorruptPayload"


class ArtifactWriteError(CartcodeError):
    """Raised when the image or cartridge output cannot be produced on disk."""

    kind = "WriteFailed"
