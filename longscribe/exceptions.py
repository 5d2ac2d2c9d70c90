"""
longscribe.exceptions - Custom exception classes.

All Longscribe-specific exceptions inherit from LongscribeError.
"""

from __future__ import annotations


class LongscribeError(Exception):
    """Base exception for all Longscribe errors."""

    pass


class ConfigError(LongscribeError):
    """Configuration loading or validation error."""

    pass


class DecodeError(LongscribeError):
    """Source bytes could not be parsed as audio."""

    pass


class EncodingError(LongscribeError):
    """WAV encoding error."""

    pass


class SizeLimitExceeded(LongscribeError):
    """An upload payload is larger than the remote API accepts."""

    def __init__(self, size_bytes: int, limit: int, index: int | None = None):
        self.size_bytes = size_bytes
        self.limit = limit
        self.index = index
        where = f"Chunk {index + 1}" if index is not None else "Audio"
        super().__init__(f"{where} is {size_bytes} bytes, exceeds the {limit} byte upload limit")


class TranscriptionError(LongscribeError):
    """The remote service rejected a transcription request."""

    def __init__(
        self,
        message: str,
        index: int | None = None,
        status_code: int | None = None,
    ):
        self.message = message
        self.index = index
        self.status_code = status_code
        super().__init__(message)


class TransportError(TranscriptionError):
    """Network-level failure (timeout, DNS, connection reset)."""

    pass


class ChunkTranscriptionError(TranscriptionError):
    """One chunk of a chunked run failed; the whole run is aborted."""

    def __init__(
        self,
        index: int,
        message: str,
        status_code: int | None = None,
        transport: bool = False,
    ):
        self.transport = transport
        super().__init__(message, index=index, status_code=status_code)

    def __str__(self) -> str:
        return f"Chunk {self.index + 1} transcription failed: {self.message}"


class OperationCancelled(LongscribeError):
    """The run was cancelled through its cancellation token."""

    pass


class DependencyError(LongscribeError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")
