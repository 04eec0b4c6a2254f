"""Exception types raised by the NexData package."""
from __future__ import annotations


class NexDataError(Exception):
    """Base class for all package errors."""


class RecordError(NexDataError, ValueError):
    """Raised when record data fails validation."""


class StoreCorruptedError(NexDataError):
    """Raised when the persisted record file cannot be read back."""

    def __init__(self, path, reason: str) -> None:
        super().__init__(f"Record storage at {path} is unreadable: {reason}")
        self.path = path
        self.reason = reason


class ExtractionError(NexDataError):
    """Raised when the AI extraction service fails or returns malformed output."""


class ExtractionBusyError(ExtractionError):
    """Raised when an extraction is requested while another is still running."""


__all__ = [
    "NexDataError",
    "RecordError",
    "StoreCorruptedError",
    "ExtractionError",
    "ExtractionBusyError",
]
