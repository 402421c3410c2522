"""OpenAI-compatible completion client."""

from __future__ import annotations

import json
import time
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import httpx

from llmactions.errors import CompletionError
from llmactions.models.base import BaseCompletionModel
from llmactions.util.logging import get_logger

logger = get_logger(__name__)

_COMPLETIONS_SEGMENTS = ["chat", "completions"]


class RetryableCompletionError(CompletionError):
    """Transient backend failure (rate limit, server error, transport error)."""


def completions_url(base_url: str) -> str:
    """Resolve the chat/completions endpoint from a base URL.

    ``host``, ``host/v1``, ``host/api/v1`` and a full endpoint URL are all
    accepted; query string and fragment are discarded.
    """
    base = base_url.strip()
    if "://" not in base:
        base = f"http://{base}"
    scheme, netloc, path, _, _ = urlsplit(base)
    segments = [segment for segment in path.split("/") if segment]
    if segments[-2:] != _COMPLETIONS_SEGMENTS:
        if "v1" not in segments:
            segments.append("v1")
        segments.extend(_COMPLETIONS_SEGMENTS)
    return urlunsplit((scheme, netloc, "/" + "/".join(segments), "", ""))


class OpenAICompatCompletionModel(BaseCompletionModel):
    """Sends each prompt as a single user message to an OpenAI-compatible API.

    Rate limits, 5xx responses and transport errors are retried with
    exponential backoff; any other failure raises ``CompletionError`` at once.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout_seconds: int = 60,
        max_response_bytes: int = 2_000_000,
        extra_headers: dict[str, str] | None = None,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = completions_url(base_url)
        self.default_model = model
        self.headers = {"Authorization": f"Bearer {api_key}", **(extra_headers or {})}
        self.timeout = httpx.Timeout(timeout_seconds)
        self.max_response_bytes = max_response_bytes
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.transport = transport

    def complete(
        self, prompt: str, *, model: str | None = None, temperature: float | None = None
    ) -> str:
        payload: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            payload["temperature"] = temperature

        attempt = 1
        while True:
            try:
                return self._answer_of(self._post(payload))
            except RetryableCompletionError as exc:
                if attempt >= self.max_attempts:
                    raise CompletionError(
                        f"Completion failed after {attempt} attempts: {exc}"
                    ) from exc
                delay = self.backoff_seconds * 2 ** (attempt - 1)
                logger.warning(
                    "Completion attempt %d failed (%s), retrying in %.1fs", attempt, exc, delay
                )
                time.sleep(delay)
                attempt += 1

    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.url, headers=self.headers, json=payload)
        except httpx.TransportError as exc:
            raise RetryableCompletionError(str(exc)) from exc
        if response.status_code == 429 or response.status_code >= 500:
            raise RetryableCompletionError(f"HTTP {response.status_code}: {response.text[:200]}")
        if response.is_error:
            raise CompletionError(f"HTTP {response.status_code}: {response.text[:200]}")
        return response

    def _answer_of(self, response: httpx.Response) -> str:
        if len(response.content) > self.max_response_bytes:
            raise CompletionError("Response too large")
        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise CompletionError("Malformed JSON response") from exc
        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content")
        return content if isinstance(content, str) else ""
