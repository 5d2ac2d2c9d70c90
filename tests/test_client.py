"""Tests for longscribe.transcribe.client module."""

from __future__ import annotations

import httpx
import numpy as np
import pytest

from longscribe.audio.resample import ResampledChunk
from longscribe.audio.wav import encode_wav
from longscribe.config import LongscribeConfig
from longscribe.exceptions import ConfigError, SizeLimitExceeded, TranscriptionError, TransportError
from longscribe.transcribe.client import WhisperClient, create_client_from_config, filename_for


def make_client(handler, **kwargs) -> WhisperClient:
    return WhisperClient(api_key="sk-test", transport=httpx.MockTransport(handler), **kwargs)


def small_chunk():
    return encode_wav(ResampledChunk(np.zeros(160, dtype=np.float32), 16000), bit_depth=8)


class TestFilenameFor:
    def test_known_types(self) -> None:
        assert filename_for("audio/wav") == "audio.wav"
        assert filename_for("audio/mpeg") == "audio.mp3"
        assert filename_for("audio/x-m4a") == "audio.m4a"

    def test_codec_parameters_ignored(self) -> None:
        assert filename_for("audio/webm;codecs=opus") == "audio.webm"

    def test_video_containers_keep_their_extension(self) -> None:
        assert filename_for("video/mp4") == "audio.mp4"
        assert filename_for("video/webm") == "audio.webm"

    def test_unknown_defaults_to_webm(self) -> None:
        assert filename_for(None) == "audio.webm"
        assert filename_for("application/x-unknown") == "audio.webm"

    def test_custom_stem(self) -> None:
        assert filename_for("audio/flac", stem="meeting") == "meeting.flac"


class TestTranscribe:
    def test_sends_multipart_request(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = request.read()
            return httpx.Response(200, json={"text": "hello world"})

        with make_client(handler) as client:
            text = client.transcribe_chunk(small_chunk(), "zh", 1)

        assert text == "hello world"
        assert seen["path"] == "/v1/audio/transcriptions"
        assert seen["auth"] == "Bearer sk-test"
        body = seen["body"]
        assert b'name="file"; filename="chunk_2.wav"' in body
        assert b'name="model"' in body and b"whisper-1" in body
        assert b'name="language"' in body and b"zh" in body
        assert b'name="response_format"' in body and b"json" in body
        assert b"RIFF" in body

    def test_missing_text_is_empty(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={}))
        assert client.transcribe(b"abc", "audio.webm", "en") == ""

    @pytest.mark.parametrize("body", [["x"], "just a string", 42])
    def test_non_object_json_is_transcription_error(self, body) -> None:
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(TranscriptionError, match="expected a JSON object") as exc_info:
            client.transcribe(b"abc", "a.wav", "en", index=3)
        assert exc_info.value.index == 3
        assert exc_info.value.status_code == 200

    def test_text_response_format(self) -> None:
        client = make_client(
            lambda request: httpx.Response(200, text="plain transcript"),
            response_format="text",
        )
        assert client.transcribe(b"abc", "audio.webm", "en") == "plain transcript"

    def test_remote_error_message_surfaces(self) -> None:
        client = make_client(
            lambda request: httpx.Response(429, json={"error": {"message": "rate limited"}})
        )
        with pytest.raises(TranscriptionError) as exc_info:
            client.transcribe_chunk(small_chunk(), "en", 2)

        assert exc_info.value.message == "rate limited"
        assert exc_info.value.index == 2
        assert exc_info.value.status_code == 429
        assert not isinstance(exc_info.value, TransportError)

    def test_status_text_when_no_error_body(self) -> None:
        client = make_client(lambda request: httpx.Response(502, text="<html>bad</html>"))
        with pytest.raises(TranscriptionError, match="Bad Gateway"):
            client.transcribe(b"abc", "audio.webm", "en")

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        client = make_client(handler)
        with pytest.raises(TransportError) as exc_info:
            client.transcribe_chunk(small_chunk(), "en", 0)

        assert "connection refused" in exc_info.value.message
        assert exc_info.value.index == 0
        assert exc_info.value.status_code is None

    def test_oversized_payload_never_sent(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"text": "x"})

        client = make_client(handler, max_file_size=10)
        with pytest.raises(SizeLimitExceeded) as exc_info:
            client.transcribe(b"x" * 11, "audio.webm", "en", index=3)

        assert calls == []
        assert exc_info.value.size_bytes == 11
        assert exc_info.value.index == 3

    def test_custom_base_url(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"text": "ok"})

        client = make_client(handler, base_url="http://localhost:8000/v1/")
        client.transcribe(b"abc", "audio.wav", "en")
        assert seen["url"] == "http://localhost:8000/v1/audio/transcriptions"


class TestCreateClientFromConfig:
    def test_requires_api_key(self) -> None:
        with pytest.raises(ConfigError):
            create_client_from_config(LongscribeConfig())

    def test_uses_config_values(self) -> None:
        config = LongscribeConfig(api_key="sk-abc", model="whisper-2", response_format="text")
        client = create_client_from_config(config)
        assert client.model == "whisper-2"
        assert client.response_format == "text"
        assert client.max_file_size == config.max_bytes_per_chunk
        client.close()
