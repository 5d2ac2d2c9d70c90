"""
longscribe.transcribe.engine - Chunked transcription orchestration.

Probes the source once, uploads it directly when it fits the API limits,
and otherwise plans chunks and runs resample → encode → upload for each
chunk strictly in order. The first failed chunk aborts the run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from longscribe.audio.decode import AudioDecoder, AudioSource, probe
from longscribe.audio.planner import (
    MAX_BYTES_PER_CHUNK,
    MAX_DURATION_PER_CHUNK_MS,
    SAFETY_BYTES_PER_CHUNK,
    needs_chunking,
    plan_chunks,
)
from longscribe.audio.resample import TARGET_SAMPLE_RATE, resample_and_downmix
from longscribe.audio.wav import SUPPORTED_BIT_DEPTHS, EncodedChunk, encode_wav
from longscribe.exceptions import (
    ChunkTranscriptionError,
    DecodeError,
    EncodingError,
    SizeLimitExceeded,
    TranscriptionError,
    TransportError,
)
from longscribe.transcribe.client import filename_for
from longscribe.transcribe.progress import CancellationToken, ProgressCallback, ProgressReporter
from longscribe.utils import format_duration, format_size

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    """What the orchestrator needs from a transcription client."""

    def transcribe(
        self, audio: bytes, filename: str, language: str, index: int | None = None
    ) -> str: ...

    def transcribe_chunk(self, encoded: EncodedChunk, language: str, index: int) -> str: ...


def merge_transcripts(transcripts: list[str]) -> str:
    """Join chunk transcripts in order with one space, untrimmed."""
    return " ".join(transcripts)


@dataclass
class TranscriptResult:
    """Ordered per-chunk transcripts of one run."""

    chunks: list[str] = field(default_factory=list)
    chunked: bool = False
    duration_ms: float = 0.0
    source_bytes: int = 0

    @property
    def text(self) -> str:
        return merge_transcripts(self.chunks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "chunks": list(self.chunks),
            "chunked": self.chunked,
            "duration_ms": round(self.duration_ms, 3),
            "source_bytes": self.source_bytes,
        }


class ChunkOrchestrator:
    """Runs one transcription job at a time over a Transcriber.

    Progress checkpoints: 5 after probing; direct path 20 then 100;
    chunked path 10 after planning, ``floor(20 + i/n * 70)`` before each
    upload, 95 before merging, 100 when done.
    """

    def __init__(
        self,
        client: Transcriber,
        decoder: AudioDecoder | None = None,
        max_bytes_per_chunk: int = MAX_BYTES_PER_CHUNK,
        safety_bytes_per_chunk: int = SAFETY_BYTES_PER_CHUNK,
        max_duration_per_chunk_ms: float = MAX_DURATION_PER_CHUNK_MS,
        target_sample_rate: int = TARGET_SAMPLE_RATE,
        bit_depth: int = 8,
        max_retries: int = 0,
        retry_delay: float = 2.0,
    ) -> None:
        if bit_depth not in SUPPORTED_BIT_DEPTHS:
            raise EncodingError(f"Unsupported bit depth: {bit_depth} (expected 8 or 16)")
        self.client = client
        self.decoder = decoder
        self.max_bytes_per_chunk = max_bytes_per_chunk
        self.safety_bytes_per_chunk = safety_bytes_per_chunk
        self.max_duration_per_chunk_ms = max_duration_per_chunk_ms
        self.target_sample_rate = target_sample_rate
        self.bit_depth = bit_depth
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def run(
        self,
        source_bytes: bytes,
        language_code: str,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        mime_type: str | None = None,
    ) -> str:
        """Transcribe source_bytes and return the merged transcript."""
        result = self.transcribe(
            source_bytes,
            language_code,
            on_progress=on_progress,
            cancel_token=cancel_token,
            mime_type=mime_type,
        )
        return result.text

    def transcribe(
        self,
        source_bytes: bytes,
        language_code: str,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        mime_type: str | None = None,
    ) -> TranscriptResult:
        """Transcribe source_bytes, keeping the per-chunk transcripts.

        Args:
            source_bytes: Raw audio in any decodable container
            language_code: Language code sent with every request
            on_progress: Called synchronously at each checkpoint
            cancel_token: Checked after probing, after planning and before each chunk
            mime_type: Declared type of source_bytes (direct upload filename)

        Returns:
            TranscriptResult

        Raises:
            DecodeError: If the source is not audio or has no samples
            SizeLimitExceeded: If an encoded chunk is above the hard cap
            ChunkTranscriptionError: If a chunk fails; nothing partial is returned
            TranscriptionError: If the direct upload fails
            OperationCancelled: If cancel_token is cancelled mid-run
        """
        cancel = cancel_token or CancellationToken()
        reporter = ProgressReporter(on_progress)

        source = probe(source_bytes, mime_type=mime_type, decoder=self.decoder)
        if source.total_samples == 0:
            raise DecodeError("Audio contains no samples")

        reporter.emit(
            f"Audio duration: {format_duration(source.duration_ms / 1000)}, "
            f"size: {format_size(source.byte_length)}",
            5,
        )
        cancel.raise_if_cancelled()

        if needs_chunking(
            source.byte_length,
            source.duration_ms,
            self.max_bytes_per_chunk,
            self.max_duration_per_chunk_ms,
        ):
            logger.info(
                "Splitting required: size=%s, duration=%s",
                format_size(source.byte_length),
                format_duration(source.duration_ms / 1000),
            )
            chunks = self._transcribe_chunked(source, source_bytes, language_code, reporter, cancel)
            chunked = True
        else:
            chunks = [self._transcribe_direct(source, source_bytes, language_code, reporter, cancel)]
            chunked = False

        result = TranscriptResult(
            chunks=chunks,
            chunked=chunked,
            duration_ms=source.duration_ms,
            source_bytes=source.byte_length,
        )
        reporter.emit("Transcription complete", 100)
        return result

    def _transcribe_direct(
        self,
        source: AudioSource,
        source_bytes: bytes,
        language_code: str,
        reporter: ProgressReporter,
        cancel: CancellationToken,
    ) -> str:
        reporter.emit("Uploading audio for transcription...", 20)
        filename = filename_for(source.mime_type)
        return self._with_retry(
            lambda: self.client.transcribe(source_bytes, filename, language_code),
            cancel,
            label=filename,
        )

    def _transcribe_chunked(
        self,
        source: AudioSource,
        source_bytes: bytes,
        language_code: str,
        reporter: ProgressReporter,
        cancel: CancellationToken,
    ) -> list[str]:
        plan = plan_chunks(
            source.byte_length,
            source.duration_ms,
            source.total_samples,
            max_bytes_per_chunk=self.max_bytes_per_chunk,
            safety_bytes_per_chunk=self.safety_bytes_per_chunk,
            max_duration_per_chunk_ms=self.max_duration_per_chunk_ms,
        )
        total = len(plan)
        reporter.emit(
            f"Splitting into {total} chunks (file: {format_size(source.byte_length)}, "
            f"duration: {format_duration(source.duration_ms / 1000)})",
            10,
        )
        cancel.raise_if_cancelled()

        transcripts: list[str] = []
        for index, chunk_range in enumerate(plan):
            cancel.raise_if_cancelled()

            resampled = resample_and_downmix(source, chunk_range, self.target_sample_rate)
            encoded = encode_wav(resampled, self.bit_depth)
            logger.debug(
                "Chunk %d/%d: samples %d-%d -> %s at %d Hz",
                index + 1,
                total,
                chunk_range.start_sample,
                chunk_range.end_sample,
                format_size(encoded.size_bytes),
                encoded.sample_rate,
            )
            if encoded.size_bytes > self.max_bytes_per_chunk:
                logger.warning(
                    "Chunk %d still exceeds %s (%s)",
                    index + 1,
                    format_size(self.max_bytes_per_chunk),
                    format_size(encoded.size_bytes),
                )
                raise SizeLimitExceeded(encoded.size_bytes, self.max_bytes_per_chunk, index)

            reporter.emit(
                f"Transcribing chunk {index + 1}/{total} ({format_size(encoded.size_bytes)})",
                20 + index * 70 // total,
            )
            transcripts.append(self._upload_chunk(encoded, language_code, index, cancel))
            logger.debug("Chunk %d done: %d characters", index + 1, len(transcripts[-1]))

        reporter.emit("Merging transcripts...", 95)
        return transcripts

    def _upload_chunk(
        self,
        encoded: EncodedChunk,
        language_code: str,
        index: int,
        cancel: CancellationToken,
    ) -> str:
        try:
            return self._with_retry(
                lambda: self.client.transcribe_chunk(encoded, language_code, index),
                cancel,
                label=f"chunk {index + 1}",
            )
        except ChunkTranscriptionError:
            raise
        except TranscriptionError as e:
            raise ChunkTranscriptionError(
                index,
                e.message,
                status_code=e.status_code,
                transport=isinstance(e, TransportError),
            ) from e

    def _with_retry(self, upload: Callable[[], str], cancel: CancellationToken, label: str) -> str:
        """Run upload, retrying TranscriptionErrors up to max_retries times."""
        attempt = 0
        while True:
            try:
                return upload()
            except TranscriptionError as e:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                logger.warning(
                    "Upload of %s failed (%s), retry %d/%d",
                    label,
                    e.message,
                    attempt,
                    self.max_retries,
                )
                cancel.raise_if_cancelled()
                time.sleep(self.retry_delay)


def create_orchestrator_from_config(
    config: Any,
    client: Transcriber | None = None,
    decoder: AudioDecoder | None = None,
) -> ChunkOrchestrator:
    """Create a ChunkOrchestrator from LongscribeConfig.

    Args:
        config: LongscribeConfig instance
        client: Transcriber to use (default: WhisperClient from config)
        decoder: Audio decoder (default: soundfile with FFmpeg fallback)

    Returns:
        Configured ChunkOrchestrator
    """
    if client is None:
        from longscribe.transcribe.client import create_client_from_config

        client = create_client_from_config(config)

    return ChunkOrchestrator(
        client=client,
        decoder=decoder,
        max_bytes_per_chunk=config.max_bytes_per_chunk,
        safety_bytes_per_chunk=config.safety_bytes_per_chunk,
        max_duration_per_chunk_ms=config.max_duration_per_chunk_ms,
        target_sample_rate=config.target_sample_rate,
        bit_depth=config.bit_depth,
        max_retries=config.max_retries,
        retry_delay=config.retry_delay,
    )
