"""
longscribe.transcribe.progress - Progress events and cancellation.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

from longscribe.exceptions import OperationCancelled


@dataclass(frozen=True)
class TranscriptionProgress:
    """A checkpoint in a run: human-readable status and a 0-100 percentage."""

    status: str
    progress: int


ProgressCallback = Callable[[TranscriptionProgress], None]


class ProgressReporter:
    """Forwards checkpoints to a callback, never letting the percentage go down."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self.callback = callback
        self.last = 0
        self.history: list[TranscriptionProgress] = []

    def emit(self, status: str, progress: int) -> TranscriptionProgress:
        value = max(self.last, min(100, max(0, int(progress))))
        event = TranscriptionProgress(status=status, progress=value)
        self.last = value
        self.history.append(event)
        if self.callback:
            self.callback(event)
        return event


class CancellationToken:
    """Thread-safe flag a caller sets to stop a run between chunks."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Transcription cancelled")
