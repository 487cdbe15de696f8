"""HTTP client for the generative-AI transcription endpoint."""

from __future__ import annotations

import base64
import logging
import os
import re
import time
from typing import Any, Callable, Optional

import httpx

from tidyvault.config.models import OcrSettings

from .errors import OcrError, OcrRateLimitError

LOGGER = logging.getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"
_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*s?\s*$")


def parse_retry_delay(response: httpx.Response) -> Optional[float]:
    """Return the server-suggested retry delay in seconds, if any.

    The ``RetryInfo.retryDelay`` detail of the JSON error body wins over the
    ``Retry-After`` header.
    """

    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        details = (payload.get("error") or {}).get("details") or []
        for detail in details:
            if not isinstance(detail, dict):
                continue
            delay = detail.get("retryDelay")
            if isinstance(delay, str):
                match = _DURATION.match(delay)
                if match:
                    return float(match.group(1))

    header = response.headers.get("Retry-After")
    if header:
        match = _DURATION.match(header)
        if match:
            return float(match.group(1))
    return None


class OcrClient:
    """Send files to the ``generateContent`` endpoint and return the transcription."""

    def __init__(
        self,
        settings: OcrSettings,
        *,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            settings: OCR configuration.
            http_client: Optional preconfigured httpx client.
            sleep: Function used to wait between retries.

        Raises:
            OcrError: If no API key is configured.
        """
        api_key = settings.api_key or os.environ.get(API_KEY_ENV)
        if not api_key:
            raise OcrError(
                f"No OCR API key configured. Set ocr.api_key or the {API_KEY_ENV} environment variable."
            )
        self._settings = settings
        self._api_key = api_key
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(settings.timeout_seconds))
        self._sleep = sleep

    def close(self) -> None:
        """Release the underlying HTTP client when owned by this instance."""
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "OcrClient":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    @property
    def model(self) -> str:
        """Return the configured model name."""
        return self._settings.model

    def transcribe(self, content: bytes, mime_type: str, prompt: Optional[str] = None) -> str:
        """Return the transcription of ``content``.

        Rate-limited (429) responses are retried up to ``max_attempts`` attempts,
        waiting for the server-suggested delay when one is given and for an
        exponentially growing delay otherwise. Waits never exceed
        ``max_delay_seconds``.

        Args:
            content: Raw file bytes.
            mime_type: MIME type sent alongside the data.
            prompt: Optional override for the configured prompt.

        Returns:
            str: Transcribed text.

        Raises:
            OcrRateLimitError: If every attempt was rate limited.
            OcrError: For any other API or transport failure.
        """

        url = f"{self._settings.endpoint.rstrip('/')}/models/{self._settings.model}:generateContent"
        body = self._request_body(content, mime_type, prompt or self._settings.prompt)
        headers = {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}

        attempts = self._settings.max_attempts
        for attempt in range(attempts):
            try:
                response = self._http.post(url, json=body, headers=headers)
            except httpx.HTTPError as exc:
                raise OcrError(f"OCR request failed: {exc}") from exc

            if response.status_code == 429:
                if attempt == attempts - 1:
                    break
                delay = self._backoff_delay(response, attempt)
                LOGGER.warning(
                    "OCR rate limited (attempt %d/%d); retrying in %.1fs.",
                    attempt + 1,
                    attempts,
                    delay,
                )
                self._sleep(delay)
                continue

            if response.is_error:
                raise OcrError(
                    f"OCR request failed with HTTP {response.status_code}: {_error_message(response)}"
                )
            return self._extract_text(response)

        raise OcrRateLimitError(f"OCR request still rate limited after {attempts} attempt(s).")

    def _backoff_delay(self, response: httpx.Response, attempt: int) -> float:
        delay = parse_retry_delay(response)
        if delay is None:
            delay = self._settings.base_delay_seconds * (2**attempt)
        return min(delay, self._settings.max_delay_seconds)

    def _request_body(self, content: bytes, mime_type: str, prompt: str) -> dict[str, Any]:
        encoded = base64.b64encode(content).decode("ascii")
        return {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"inline_data": {"mime_type": mime_type, "data": encoded}},
                    ]
                }
            ]
        }

    def _extract_text(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError as exc:
            raise OcrError("OCR response was not valid JSON.") from exc

        candidates = payload.get("candidates") if isinstance(payload, dict) else None
        if not candidates:
            raise OcrError("OCR response contained no candidates.")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise OcrError("OCR response contained no text.")
        return text.strip()


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return str(payload["error"].get("message", ""))
    return response.text[:200]


__all__ = ["API_KEY_ENV", "OcrClient", "parse_retry_delay"]
