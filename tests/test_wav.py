"""Tests for longscribe.audio.wav module."""

from __future__ import annotations

import io

import numpy as np
import pytest
import soundfile as sf

from longscribe.audio.resample import ResampledChunk
from longscribe.audio.wav import WAV_HEADER_SIZE, encode_wav, quantize, wav_header
from longscribe.exceptions import EncodingError


def chunk_of(samples, sample_rate: int = 16000) -> ResampledChunk:
    return ResampledChunk(samples=np.asarray(samples, dtype=np.float32), sample_rate=sample_rate)


class TestWavHeader:
    def test_one_second_16k_16bit_header(self) -> None:
        encoded = encode_wav(chunk_of(np.zeros(16000)), bit_depth=16)
        expected = (
            b"RIFF"
            + b"\x24\x7d\x00\x00"  # 36 + 32000
            + b"WAVE"
            + b"fmt "
            + b"\x10\x00\x00\x00"  # Subchunk1Size 16
            + b"\x01\x00"  # PCM
            + b"\x01\x00"  # mono
            + b"\x80\x3e\x00\x00"  # 16000 Hz
            + b"\x00\x7d\x00\x00"  # byte rate 32000
            + b"\x02\x00"  # block align
            + b"\x10\x00"  # 16 bits
            + b"data"
            + b"\x00\x7d\x00\x00"  # 32000 data bytes
        )
        assert encoded.data[:WAV_HEADER_SIZE] == expected
        assert encoded.size_bytes == 44 + 32000

    def test_8bit_header_fields(self) -> None:
        header = wav_header(8000, 8, 100)
        assert len(header) == WAV_HEADER_SIZE
        assert int.from_bytes(header[4:8], "little") == 136
        assert int.from_bytes(header[28:32], "little") == 8000
        assert int.from_bytes(header[32:34], "little") == 1
        assert int.from_bytes(header[34:36], "little") == 8
        assert int.from_bytes(header[40:44], "little") == 100

    def test_empty_chunk_is_header_only(self) -> None:
        encoded = encode_wav(chunk_of([]), bit_depth=8)
        assert encoded.size_bytes == WAV_HEADER_SIZE
        assert encoded.sample_count == 0


class TestQuantize:
    def test_16bit_scaling(self) -> None:
        values = quantize(np.array([-1.0, -0.5, 0.0, 0.5, 1.0]), 16)
        assert values.tolist() == [-32768, -16384, 0, 16383, 32767]

    def test_8bit_scaling_is_unsigned(self) -> None:
        values = quantize(np.array([-1.0, -0.5, 0.0, 0.5, 1.0]), 8)
        assert values.dtype == np.uint8
        assert values.tolist() == [0, 64, 128, 191, 255]

    def test_out_of_range_is_clamped(self) -> None:
        assert quantize(np.array([-3.0, 3.0]), 16).tolist() == [-32768, 32767]
        assert quantize(np.array([-3.0, 3.0]), 8).tolist() == [0, 255]

    def test_nan_is_silence(self) -> None:
        assert quantize(np.array([np.nan]), 16).tolist() == [0]
        assert quantize(np.array([np.nan]), 8).tolist() == [128]

    def test_sample_ranges(self) -> None:
        noise = np.random.default_rng(42).uniform(-2, 2, 10_000)
        pcm16 = quantize(noise, 16)
        pcm8 = quantize(noise, 8)
        assert pcm16.min() >= -32768 and pcm16.max() <= 32767
        assert pcm8.min() >= 0 and pcm8.max() <= 255

    def test_unsupported_bit_depth(self) -> None:
        with pytest.raises(EncodingError):
            quantize(np.zeros(4), 24)


class TestEncodeWav:
    def test_16bit_data_is_little_endian(self) -> None:
        encoded = encode_wav(chunk_of([1.0, -1.0]), bit_depth=16)
        assert encoded.data[44:] == b"\xff\x7f\x00\x80"

    def test_8bit_data_length(self) -> None:
        encoded = encode_wav(chunk_of(np.zeros(1000), 8000), bit_depth=8)
        assert encoded.size_bytes == 44 + 1000
        assert encoded.bit_depth == 8
        assert encoded.duration_ms == pytest.approx(125.0)

    @pytest.mark.parametrize("bit_depth,subtype", [(8, "PCM_U8"), (16, "PCM_16")])
    def test_readable_by_libsndfile(self, bit_depth: int, subtype: str) -> None:
        samples = np.linspace(-0.9, 0.9, 1600)
        encoded = encode_wav(chunk_of(samples), bit_depth=bit_depth)
        info = sf.info(io.BytesIO(encoded.data))
        assert info.samplerate == 16000
        assert info.channels == 1
        assert info.frames == 1600
        assert info.subtype == subtype

    def test_invalid_bit_depth_raises(self) -> None:
        with pytest.raises(EncodingError):
            encode_wav(chunk_of([0.0]), bit_depth=12)
