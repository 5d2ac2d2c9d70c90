"""
longscribe.audio.resample - Downmix and downsample one chunk.

Nearest-neighbour index mapping, no band-limiting: the consumer is a
speech recognizer, so speed wins over fidelity.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from longscribe.audio.decode import AudioSource
from longscribe.audio.planner import ChunkRange

TARGET_SAMPLE_RATE = 16000


@dataclass(frozen=True, eq=False)
class ResampledChunk:
    """Mono float32 samples at sample_rate."""

    samples: np.ndarray
    sample_rate: int

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def duration_ms(self) -> float:
        return len(self.samples) / self.sample_rate * 1000


def target_rate_for(source_rate: int, ceiling: int = TARGET_SAMPLE_RATE) -> int:
    """Output rate for a source: never above the source rate."""
    return min(source_rate, ceiling)


def resample_and_downmix(
    source: AudioSource,
    chunk_range: ChunkRange,
    target_rate: int | None = None,
) -> ResampledChunk:
    """Produce a mono buffer at target_rate for one planned range.

    Each output sample j is the mean over all channels of source sample
    ``start + floor(j * source_rate / target_rate)``.

    Args:
        source: Probed audio
        chunk_range: Sample range to convert
        target_rate: Requested rate; capped at the source rate

    Returns:
        ResampledChunk of ``floor(range_length * target_rate / source_rate)`` samples

    Raises:
        ValueError: If target_rate is not positive
    """
    source_rate = source.sample_rate
    if target_rate is None:
        target_rate = TARGET_SAMPLE_RATE
    if target_rate <= 0:
        raise ValueError("target_rate must be positive")
    rate = target_rate_for(source_rate, target_rate)
    length = chunk_range.length * rate // source_rate

    if length <= 0 or source.total_samples == 0:
        return ResampledChunk(samples=np.zeros(0, dtype=np.float32), sample_rate=rate)

    offsets = np.arange(length, dtype=np.int64) * source_rate // rate
    indices = np.clip(chunk_range.start_sample + offsets, 0, source.total_samples - 1)

    mono = source.channels[:, indices].mean(axis=0, dtype=np.float64)
    return ResampledChunk(samples=mono.astype(np.float32), sample_rate=rate)
