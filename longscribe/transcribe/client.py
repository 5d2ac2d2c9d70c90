"""
longscribe.transcribe.client - Whisper-style transcription API client.

Uploads one audio payload per request as multipart form data with bearer
authentication and returns the transcript text.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from longscribe.audio.planner import MAX_BYTES_PER_CHUNK
from longscribe.audio.wav import EncodedChunk
from longscribe.exceptions import SizeLimitExceeded, TranscriptionError, TransportError
from longscribe.utils import format_size

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
TRANSCRIPTIONS_PATH = "/audio/transcriptions"
TEXT_RESPONSE_FORMATS = {"text", "srt", "vtt"}

MIME_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/ogg": "ogg",
    "audio/opus": "ogg",
    "audio/flac": "flac",
    "audio/x-flac": "flac",
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/aac": "m4a",
    "video/mp4": "mp4",
    "video/webm": "webm",
}


def filename_for(mime_type: str | None, stem: str = "audio") -> str:
    """Upload filename whose extension matches the declared MIME type.

    Parameters after ';' are ignored; unknown types default to WebM, the
    format browsers record in.
    """
    clean = (mime_type or "").split(";")[0].strip().lower()
    return f"{stem}.{MIME_EXTENSIONS.get(clean, 'webm')}"


class WhisperClient:
    """Transcription endpoint client. One request per call, no retries."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = "whisper-1",
        response_format: str = "json",
        timeout: float = 300.0,
        max_file_size: int = MAX_BYTES_PER_CHUNK,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.response_format = response_format
        self.max_file_size = max_file_size
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> WhisperClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def transcribe(
        self,
        audio: bytes,
        filename: str,
        language: str,
        index: int | None = None,
    ) -> str:
        """Upload one audio payload and return its transcript.

        Args:
            audio: Encoded audio bytes
            filename: Filename sent with the multipart file field
            language: Language code passed to the API
            index: Chunk index, recorded on raised errors

        Returns:
            Transcript text ("" when the service returns none)

        Raises:
            SizeLimitExceeded: If the payload is above max_file_size
            TranscriptionError: If the service answers with an error
            TransportError: If the request never got a response
        """
        if len(audio) > self.max_file_size:
            raise SizeLimitExceeded(len(audio), self.max_file_size, index)

        files = {"file": (filename, audio, "application/octet-stream")}
        data = {
            "model": self.model,
            "language": language,
            "response_format": self.response_format,
        }

        logger.debug("Uploading %s (%s)", filename, format_size(len(audio)))
        try:
            response = self._client.post(TRANSCRIPTIONS_PATH, files=files, data=data)
        except httpx.TransportError as e:
            raise TransportError(str(e) or type(e).__name__, index=index) from e

        if not response.is_success:
            raise TranscriptionError(
                _error_message(response),
                index=index,
                status_code=response.status_code,
            )

        if self.response_format in TEXT_RESPONSE_FORMATS:
            return response.text

        try:
            result = response.json()
        except ValueError as e:
            raise TranscriptionError(
                f"Malformed response from transcription API: {e}",
                index=index,
                status_code=response.status_code,
            ) from e
        if not isinstance(result, dict):
            raise TranscriptionError(
                "Malformed response from transcription API: expected a JSON object",
                index=index,
                status_code=response.status_code,
            )
        return result.get("text") or ""

    def transcribe_chunk(self, encoded: EncodedChunk, language: str, index: int) -> str:
        """Upload one encoded WAV chunk; filenames are numbered from 1."""
        return self.transcribe(encoded.data, f"chunk_{index + 1}.wav", language, index=index)


def _error_message(response: httpx.Response) -> str:
    """The service's own error text, else the HTTP status text."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"Transcription API error: {response.status_code} {response.reason_phrase}"


def create_client_from_config(config: Any, transport: httpx.BaseTransport | None = None) -> WhisperClient:
    """Create a WhisperClient from LongscribeConfig.

    Args:
        config: LongscribeConfig instance
        transport: Optional httpx transport (tests)

    Returns:
        Configured WhisperClient

    Raises:
        ConfigError: If no API key is configured
    """
    from longscribe.exceptions import ConfigError

    if not config.api_key:
        raise ConfigError("No API key configured. Set api_key in longscribe.yaml or OPENAI_API_KEY.")

    return WhisperClient(
        api_key=config.api_key,
        base_url=config.base_url,
        model=config.model,
        response_format=config.response_format,
        timeout=config.timeout,
        max_file_size=config.max_bytes_per_chunk,
        transport=transport,
    )
