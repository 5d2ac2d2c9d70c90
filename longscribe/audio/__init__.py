"""
longscribe.audio - Audio decoding, chunk planning, resampling, WAV encoding.

Pipeline stages 1-4: probe the source once, plan contiguous sample
ranges, then downmix/resample each range to 16kHz mono and serialize it
as a PCM WAV payload.
"""

from __future__ import annotations
