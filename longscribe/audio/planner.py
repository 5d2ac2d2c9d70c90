"""
longscribe.audio.planner - Chunk planning.

Works out how many chunks a recording needs so that each chunk fits both
the upload size limit and the per-request duration limit, then slices
the sample index space into that many contiguous ranges.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MB = 1024 * 1024

MAX_BYTES_PER_CHUNK = 25 * MB
SAFETY_BYTES_PER_CHUNK = 20 * MB
MAX_DURATION_PER_CHUNK_MS = 10 * 60 * 1000


@dataclass(frozen=True)
class ChunkRange:
    """Half-open sample range [start_sample, end_sample)."""

    start_sample: int
    end_sample: int

    @property
    def length(self) -> int:
        return self.end_sample - self.start_sample


@dataclass(frozen=True)
class ChunkPlan:
    """Ordered, contiguous ranges covering [0, total_samples)."""

    ranges: tuple[ChunkRange, ...]
    total_samples: int
    chunks_by_size: int
    chunks_by_duration: int

    def __len__(self) -> int:
        return len(self.ranges)

    def __iter__(self) -> Iterator[ChunkRange]:
        return iter(self.ranges)

    def __getitem__(self, index: int) -> ChunkRange:
        return self.ranges[index]


def needs_chunking(
    total_bytes: int,
    total_duration_ms: float,
    max_bytes_per_chunk: int = MAX_BYTES_PER_CHUNK,
    max_duration_per_chunk_ms: float = MAX_DURATION_PER_CHUNK_MS,
) -> bool:
    """True when the source cannot be uploaded as one request."""
    return total_bytes > max_bytes_per_chunk or total_duration_ms > max_duration_per_chunk_ms


def count_chunks(
    total_bytes: int,
    total_duration_ms: float,
    safety_bytes_per_chunk: int = SAFETY_BYTES_PER_CHUNK,
    max_duration_per_chunk_ms: float = MAX_DURATION_PER_CHUNK_MS,
) -> tuple[int, int, int]:
    """Compute (chunk_count, chunks_by_size, chunks_by_duration).

    The size estimate uses the safety margin rather than the hard limit to
    leave room for header overhead and rounding.
    """
    chunks_by_size = -(-total_bytes // safety_bytes_per_chunk)
    chunks_by_duration = math.ceil(total_duration_ms / max_duration_per_chunk_ms)
    chunk_count = max(chunks_by_size, chunks_by_duration, 1)
    return chunk_count, chunks_by_size, chunks_by_duration


def plan_chunks(
    total_bytes: int,
    total_duration_ms: float,
    total_samples: int,
    max_bytes_per_chunk: int = MAX_BYTES_PER_CHUNK,
    safety_bytes_per_chunk: int = SAFETY_BYTES_PER_CHUNK,
    max_duration_per_chunk_ms: float = MAX_DURATION_PER_CHUNK_MS,
) -> ChunkPlan:
    """Split [0, total_samples) into equally sized contiguous ranges.

    Args:
        total_bytes: Size of the original encoded source
        total_duration_ms: Duration of the source in milliseconds
        total_samples: Number of samples per channel
        max_bytes_per_chunk: Hard upload limit (for the sanity check only)
        safety_bytes_per_chunk: Size budget used to estimate chunk count
        max_duration_per_chunk_ms: Maximum duration of one chunk

    Returns:
        ChunkPlan whose range lengths sum to total_samples. Zero samples
        yields a single empty range.
    """
    if total_bytes < 0 or total_samples < 0 or total_duration_ms < 0:
        raise ValueError("Sizes and durations must be non-negative")
    if safety_bytes_per_chunk > max_bytes_per_chunk:
        raise ValueError("safety_bytes_per_chunk must not exceed max_bytes_per_chunk")

    chunk_count, chunks_by_size, chunks_by_duration = count_chunks(
        total_bytes,
        total_duration_ms,
        safety_bytes_per_chunk,
        max_duration_per_chunk_ms,
    )

    if total_samples == 0:
        return ChunkPlan(
            ranges=(ChunkRange(0, 0),),
            total_samples=0,
            chunks_by_size=chunks_by_size,
            chunks_by_duration=chunks_by_duration,
        )

    samples_per_chunk = -(-total_samples // chunk_count)
    ranges = tuple(
        ChunkRange(
            min(i * samples_per_chunk, total_samples),
            min((i + 1) * samples_per_chunk, total_samples),
        )
        for i in range(chunk_count)
    )

    logger.info(
        "Split plan: %d bytes, %.0f ms -> by size %d, by duration %d, final %d chunk(s)",
        total_bytes,
        total_duration_ms,
        chunks_by_size,
        chunks_by_duration,
        chunk_count,
    )

    return ChunkPlan(
        ranges=ranges,
        total_samples=total_samples,
        chunks_by_size=chunks_by_size,
        chunks_by_duration=chunks_by_duration,
    )
