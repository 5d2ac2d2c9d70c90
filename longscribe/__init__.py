"""
Longscribe - chunked transcription for long voice recordings.

Splits recordings that exceed a remote transcription API's size and
duration limits into independently transcribable chunks: probe → plan →
resample/downmix → WAV encode → sequential upload → merge.
"""

__version__ = "0.1.0"
