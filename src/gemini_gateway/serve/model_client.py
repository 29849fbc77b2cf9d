"""Async client for the Gemini ``generateContent`` REST endpoint.

Payloads are either a bare prompt string or the structured form::

    {"contents": [{"parts": [{"text": ...}, {"inlineData": {...}}]}]}

No retries and no payload validation; failures surface as ``UpstreamError``.
"""
from __future__ import annotations
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from gemini_gateway.common.config import ConfigError, Settings
from gemini_gateway.common.schema import ContentPart

LOGGER = logging.getLogger("gemini_gateway.serve.model_client")

Payload = str | dict[str, Any]


class UpstreamError(RuntimeError):
    """The model API could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_payload(parts: Sequence[ContentPart]) -> dict[str, Any]:
    return {"contents": [{"parts": [part.to_dict() for part in parts]}]}


def _error_message(r: httpx.Response) -> str:
    """Prefer the API's own ``error.message``; fall back to the status line."""
    try:
        message = r.json()["error"]["message"]
        if message:
            return str(message)
    except Exception:
        pass
    return f"Gemini API returned HTTP {r.status_code}"


@dataclass(frozen=True)
class GeminiClient:
    """Immutable handle on one configured Gemini model; safe to share across requests."""
    api_key: str
    model: str
    base_url: str
    timeout: float | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        if not settings.gemini_api_key:
            raise ConfigError("GEMINI_API_KEY is not set")
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model_name,
            base_url=settings.gemini_base_url.rstrip("/"),
            timeout=settings.gemini_timeout,
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.model}:generateContent"

    async def generate_content(self, payload: Payload) -> dict[str, Any]:
        """
        Submit a prompt or structured payload and return the raw JSON response.

        Args:
            payload: A bare prompt string, or a ``{"contents": [...]}`` mapping.
        """
        body = {"contents": [{"parts": [{"text": payload}]}]} if isinstance(payload, str) else payload
        headers = {"x-goog-api-key": self.api_key}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(self.url, headers=headers, json=body)
        except httpx.HTTPError as e:
            LOGGER.debug("Gemini request failed: %s", e)
            raise UpstreamError(str(e) or type(e).__name__) from e

        if r.is_error:
            message = _error_message(r)
            LOGGER.debug("Gemini API error %s: %s", r.status_code, message)
            raise UpstreamError(message, status_code=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            LOGGER.debug("Malformed Gemini response: %s", e)
            raise UpstreamError("Malformed Gemini response") from e
