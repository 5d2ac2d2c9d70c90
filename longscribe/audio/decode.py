"""
longscribe.audio.decode - Audio probing.

Decodes a raw audio byte source into per-channel float sample buffers.
libsndfile (via soundfile) handles WAV/FLAC/OGG/MP3; anything it cannot
parse (WebM/Opus recordings, MP4/AAC) is piped through FFmpeg.
"""

from __future__ import annotations

import io
import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Protocol

import numpy as np
import soundfile as sf

from longscribe.exceptions import DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class AudioSource:
    """Decoded audio, read-only once probed.

    ``channels`` has shape (num_channels, total_samples), float32 in [-1, 1].
    """

    byte_length: int
    mime_type: str | None
    sample_rate: int
    channels: np.ndarray

    def __post_init__(self) -> None:
        if self.channels.ndim != 2:
            raise ValueError("channels must be a 2-D (channels, samples) array")
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        self.channels.setflags(write=False)

    @property
    def num_channels(self) -> int:
        return int(self.channels.shape[0])

    @property
    def total_samples(self) -> int:
        return int(self.channels.shape[1])

    @property
    def duration_ms(self) -> float:
        return self.total_samples / self.sample_rate * 1000


class AudioDecoder(Protocol):
    """Turns encoded audio bytes into (channels, samples) float32 and a rate."""

    def decode(self, data: bytes) -> tuple[np.ndarray, int]: ...


class SoundfileDecoder:
    """Decode with libsndfile."""

    def decode(self, data: bytes) -> tuple[np.ndarray, int]:
        try:
            frames, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        except (RuntimeError, TypeError, ValueError) as e:
            raise DecodeError(f"Could not decode audio: {e}") from e
        return np.ascontiguousarray(frames.T), int(sample_rate)


class FFmpegDecoder:
    """Decode any container FFmpeg understands, using pipes only."""

    def __init__(self, ffmpeg: str = "ffmpeg", ffprobe: str = "ffprobe", timeout: float = 600.0):
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.timeout = timeout

    def available(self) -> bool:
        return shutil.which(self.ffmpeg) is not None and shutil.which(self.ffprobe) is not None

    def _probe_stream(self, data: bytes) -> tuple[int, int]:
        cmd = [
            self.ffprobe,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_streams",
            "-select_streams",
            "a:0",
            "-i",
            "pipe:0",
        ]
        proc = subprocess.run(cmd, input=data, capture_output=True, timeout=self.timeout)
        if proc.returncode != 0:
            raise DecodeError(f"ffprobe failed: {proc.stderr.decode(errors='replace')}")
        streams = json.loads(proc.stdout or b"{}").get("streams", [])
        if not streams:
            raise DecodeError("No audio stream found")
        stream = streams[0]
        return int(stream["sample_rate"]), int(stream["channels"])

    def decode(self, data: bytes) -> tuple[np.ndarray, int]:
        try:
            sample_rate, num_channels = self._probe_stream(data)
            cmd = [
                self.ffmpeg,
                "-v",
                "error",
                "-i",
                "pipe:0",
                "-vn",
                "-f",
                "f32le",
                "-acodec",
                "pcm_f32le",
                "pipe:1",
            ]
            proc = subprocess.run(cmd, input=data, capture_output=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired, KeyError, ValueError) as e:
            raise DecodeError(f"FFmpeg decoding failed: {e}") from e

        if proc.returncode != 0:
            raise DecodeError(f"FFmpeg decoding failed: {proc.stderr.decode(errors='replace')}")

        interleaved = np.frombuffer(proc.stdout, dtype="<f4")
        usable = len(interleaved) - len(interleaved) % num_channels
        frames = interleaved[:usable].reshape(-1, num_channels)
        return np.ascontiguousarray(frames.T, dtype=np.float32), sample_rate


class FallbackDecoder:
    """Try each decoder in order; the last failure is re-raised."""

    def __init__(self, *decoders: AudioDecoder):
        self.decoders = decoders

    def decode(self, data: bytes) -> tuple[np.ndarray, int]:
        last_error: DecodeError | None = None
        for decoder in self.decoders:
            try:
                return decoder.decode(data)
            except DecodeError as e:
                logger.debug("%s could not decode audio: %s", type(decoder).__name__, e)
                last_error = e
        raise last_error or DecodeError("No decoder configured")


def default_decoder() -> AudioDecoder:
    """libsndfile first, FFmpeg when it is installed."""
    ffmpeg = FFmpegDecoder()
    if ffmpeg.available():
        return FallbackDecoder(SoundfileDecoder(), ffmpeg)
    return SoundfileDecoder()


def probe(
    data: bytes,
    mime_type: str | None = None,
    decoder: AudioDecoder | None = None,
) -> AudioSource:
    """Decode a byte source into an AudioSource.

    Args:
        data: Raw audio bytes in any supported container
        mime_type: Declared MIME type, kept for the upload filename
        decoder: Decoder to use (default: libsndfile with FFmpeg fallback)

    Returns:
        Immutable AudioSource

    Raises:
        DecodeError: If the bytes are empty or cannot be parsed as audio
    """
    if not data:
        raise DecodeError("Audio source is empty")

    channels, sample_rate = (decoder or default_decoder()).decode(data)
    channels = np.asarray(channels, dtype=np.float32)
    if channels.ndim == 1:
        channels = channels[np.newaxis, :]

    if channels.shape[0] == 0 or sample_rate <= 0:
        raise DecodeError("Decoded audio has no channels or an invalid sample rate")

    source = AudioSource(
        byte_length=len(data),
        mime_type=mime_type,
        sample_rate=int(sample_rate),
        channels=channels,
    )
    logger.debug(
        "Probed %d bytes: %d Hz, %d channel(s), %d samples",
        source.byte_length,
        source.sample_rate,
        source.num_channels,
        source.total_samples,
    )
    return source
