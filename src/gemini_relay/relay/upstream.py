"""Outbound generateContent call and mapping of Gemini's reply."""
from __future__ import annotations
import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from gemini_relay.common.schema import RelayResult
from gemini_relay.relay.errors import TransportError, UpstreamError

LOGGER = logging.getLogger("gemini_relay.upstream")

FALLBACK_TEXT = "Sorry, I couldn't generate a response. Please contact us directly."


def generate_content_url(api_base: str, model: str) -> str:
    return f"{api_base.rstrip('/')}/models/{quote(model, safe='')}:generateContent"


def post_generate_content(
    url: str,
    api_key: str,
    body: dict[str, Any],
    client: httpx.Client | None = None,
    timeout: float | None = None,
) -> httpx.Response:
    """
    Send one generateContent request.

    Args:
        url: Model endpoint URL, without credentials.
        api_key: Secret passed as the ``key`` query parameter.
        body: Normalized request body.
        client: Optional pre-built client; a short-lived one is created otherwise.
        timeout: Request timeout in seconds, None for no limit.

    Raises:
        TransportError: When no HTTP response was obtained.
    """
    try:
        if client is not None:
            return client.post(url, params={"key": api_key}, json=body)
        with httpx.Client(timeout=timeout) as owned:
            return owned.post(url, params={"key": api_key}, json=body)
    except httpx.HTTPError as e:
        LOGGER.error("Gemini request failed: %s", e)
        raise TransportError("Server error calling Gemini API", details=str(e) or type(e).__name__)


def parse_body(text: str) -> Any:
    """Parse Gemini's reply, wrapping non-JSON text instead of failing."""
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


def extract_text(data: Any) -> str:
    """Join the text parts of the first candidate with newlines."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(parts, list):
        return ""
    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    return "\n".join(texts)


def map_response(status_code: int, text: str) -> RelayResult:
    """
    Map an upstream HTTP reply onto a relay result.

    Args:
        status_code: Upstream HTTP status.
        text: Raw upstream body.

    Raises:
        UpstreamError: On a non-2xx status or an embedded error object.
    """
    data = parse_body(text)

    if not 200 <= status_code < 300:
        LOGGER.error("Gemini API returned HTTP %s", status_code)
        raise UpstreamError("Gemini API error", status_code=status_code, details=data)

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, (dict, list)) or error:
        LOGGER.error("Gemini API error: %s", error)
        message = error.get("message") if isinstance(error, dict) else None
        raise UpstreamError(str(message) if message else "Gemini API error", details=error)

    return RelayResult(status_code=200, text=extract_text(data) or FALLBACK_TEXT)
