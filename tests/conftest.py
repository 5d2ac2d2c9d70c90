"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import io

import numpy as np
import pytest
import soundfile as sf

from longscribe.audio.wav import EncodedChunk

MB = 1024 * 1024


def sine_wave(
    sample_rate: int,
    seconds: float,
    frequency: float = 440.0,
    amplitude: float = 0.5,
) -> np.ndarray:
    """Mono float32 sine wave."""
    t = np.arange(int(sample_rate * seconds)) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


class SyntheticDecoder:
    """Decoder that ignores the bytes and returns fixed samples."""

    def __init__(self, channels: np.ndarray, sample_rate: int) -> None:
        self.channels = np.atleast_2d(np.asarray(channels, dtype=np.float32))
        self.sample_rate = sample_rate
        self.calls = 0

    def decode(self, data: bytes) -> tuple[np.ndarray, int]:
        self.calls += 1
        return self.channels.copy(), self.sample_rate


class FakeTranscriber:
    """Records uploads; chunk failures are keyed by chunk index.

    A failure value may be an exception (raised every time) or a list of
    exceptions (raised one per attempt until exhausted).
    """

    def __init__(
        self,
        responses: dict[int, str] | None = None,
        failures: dict | None = None,
        direct_text: str = "direct transcript",
    ) -> None:
        self.responses = responses or {}
        self.failures = failures or {}
        self.direct_text = direct_text
        self.direct_calls: list[dict] = []
        self.chunk_calls: list[int] = []
        self.encoded: list[EncodedChunk] = []
        self.on_chunk = None

    def transcribe(self, audio: bytes, filename: str, language: str, index: int | None = None) -> str:
        self.direct_calls.append(
            {"size": len(audio), "filename": filename, "language": language}
        )
        failure = self.failures.get("direct")
        if failure:
            raise failure
        return self.direct_text

    def transcribe_chunk(self, encoded: EncodedChunk, language: str, index: int) -> str:
        self.chunk_calls.append(index)
        self.encoded.append(encoded)
        if self.on_chunk:
            self.on_chunk(index)
        failure = self.failures.get(index)
        if isinstance(failure, list):
            if failure:
                raise failure.pop(0)
        elif failure:
            raise failure
        return self.responses.get(index, f"chunk {index}")


@pytest.fixture
def stereo_wav_bytes() -> bytes:
    """One second of 44.1kHz stereo 16-bit WAV: sine left, silence right."""
    left = sine_wave(44100, 1.0)
    right = np.zeros_like(left)
    buf = io.BytesIO()
    sf.write(buf, np.column_stack([left, right]), 44100, format="WAV", subtype="PCM_16")
    return buf.getvalue()


@pytest.fixture
def mono_wav_bytes() -> bytes:
    """Half a second of 16kHz mono 16-bit WAV."""
    buf = io.BytesIO()
    sf.write(buf, sine_wave(16000, 0.5), 16000, format="WAV", subtype="PCM_16")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def no_api_key_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's real API key out of the tests."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
