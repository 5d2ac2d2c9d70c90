"""
longscribe.audio.wav - RIFF/WAVE PCM encoding.

Serializes a mono float buffer as a canonical 44-byte-header WAV file,
8-bit unsigned or 16-bit signed little-endian.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

import numpy as np

from longscribe.audio.resample import ResampledChunk
from longscribe.exceptions import EncodingError

WAV_HEADER_SIZE = 44
SUPPORTED_BIT_DEPTHS = (8, 16)
PCM_FORMAT = 1

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class EncodedChunk:
    """A WAV payload ready for upload."""

    data: bytes
    bit_depth: int
    sample_rate: int
    sample_count: int

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def duration_ms(self) -> float:
        return self.sample_count / self.sample_rate * 1000


def wav_header(sample_rate: int, bit_depth: int, data_length: int, num_channels: int = 1) -> bytes:
    """Build the 44-byte PCM WAV header."""
    block_align = num_channels * (bit_depth // 8)
    return _HEADER.pack(
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        num_channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        bit_depth,
        b"data",
        data_length,
    )


def quantize(samples: np.ndarray, bit_depth: int) -> np.ndarray:
    """Convert float samples to PCM integers.

    Samples are clamped to [-1, 1]; negative values scale by 2^(n-1),
    non-negative by 2^(n-1) - 1, truncating toward zero. 8-bit output is
    biased by +128 into unsigned bytes.
    """
    if bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise EncodingError(f"Unsupported bit depth: {bit_depth} (expected 8 or 16)")

    s = np.clip(np.nan_to_num(np.asarray(samples, dtype=np.float64)), -1.0, 1.0)
    if bit_depth == 16:
        scaled = np.where(s < 0, s * 0x8000, s * 0x7FFF)
        return np.trunc(scaled).astype("<i2")

    scaled = np.where(s < 0, s * 0x80, s * 0x7F)
    return np.trunc(scaled + 128).astype(np.uint8)


def encode_wav(chunk: ResampledChunk, bit_depth: int = 16) -> EncodedChunk:
    """Serialize a mono chunk to WAV bytes.

    Args:
        chunk: Mono samples and their rate
        bit_depth: 8 or 16

    Returns:
        EncodedChunk with header + PCM data

    Raises:
        EncodingError: If bit_depth is not 8 or 16
    """
    pcm = quantize(chunk.samples, bit_depth).tobytes()
    data = wav_header(chunk.sample_rate, bit_depth, len(pcm)) + pcm
    return EncodedChunk(
        data=data,
        bit_depth=bit_depth,
        sample_rate=chunk.sample_rate,
        sample_count=len(chunk.samples),
    )
