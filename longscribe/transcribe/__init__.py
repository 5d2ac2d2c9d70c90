"""
longscribe.transcribe - Remote transcription and chunk orchestration.

Pipeline stages 5-6: upload WAV chunks one at a time to a Whisper-style
HTTP endpoint, report progress, and stitch partial transcripts together.
"""

from __future__ import annotations
