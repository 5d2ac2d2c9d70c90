"""
longscribe.transcribe.keycheck - API key validation.

One lightweight GET against the models listing, classified by an explicit
decision table. Any failure is reported as "invalid" rather than raised.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from longscribe.transcribe.client import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

MODELS_PATH = "/models"

# Status codes that decide the outcome regardless of the body.
STATUS_DECISIONS: dict[int, bool] = {
    401: False,
    403: False,
}

# Lowercase fragments of an error message that mark the key as invalid.
INVALID_KEY_KEYWORDS: tuple[str, ...] = (
    "invalid",
    "invalid api key",
    "invalid_api_key",
    "unauthorized",
)


def extract_error_message(body_text: str) -> str:
    """Pick error.message, then message, then the raw body."""
    try:
        body: Any = json.loads(body_text)
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return body_text or ""


def classify_key_response(status_code: int, body_text: str, strict: bool = False) -> bool:
    """Decide whether a validation response means the key is usable.

    Args:
        status_code: HTTP status of the validation request
        body_text: Raw response body
        strict: Only 2xx counts as valid; body and status table are ignored

    Returns:
        True if the key is considered valid
    """
    is_success = 200 <= status_code < 300
    if strict:
        return is_success

    if status_code in STATUS_DECISIONS:
        return STATUS_DECISIONS[status_code]

    message = extract_error_message(body_text).lower()
    if any(keyword in message for keyword in INVALID_KEY_KEYWORDS):
        return False

    return is_success


def validate_api_key(
    api_key: str,
    base_url: str = DEFAULT_BASE_URL,
    strict: bool = False,
    timeout: float = 30.0,
    transport: httpx.BaseTransport | None = None,
) -> bool:
    """Check an API key with a single request.

    Returns:
        True if valid; False for rejected keys and for any request failure
    """
    try:
        with httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        ) as client:
            response = client.get(MODELS_PATH)
    except httpx.HTTPError as e:
        logger.warning("API key validation request failed: %s", e)
        return False

    valid = classify_key_response(response.status_code, response.text, strict=strict)
    logger.debug("API key validation: HTTP %d -> %s", response.status_code, valid)
    return valid
