"""Chat relay boundary: one inbound request in, one HTTP response out."""
from __future__ import annotations
import json
import logging
from typing import Any

import httpx

from gemini_relay.common.config import API_KEY_ENV_VARS, Settings
from gemini_relay.common.schema import HttpResponse, RelayResult
from gemini_relay.relay.errors import ClientInputError, ConfigurationError, MethodNotAllowedError, RelayError
from gemini_relay.relay.normalize import build_request
from gemini_relay.relay.upstream import generate_content_url, map_response, post_generate_content

LOGGER = logging.getLogger("gemini_relay.relay")

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _headers(settings: Settings) -> dict[str, str]:
    return {
        "Content-Type": "application/json; charset=utf-8",
        "Cache-Control": "no-store",
        "Access-Control-Allow-Origin": settings.allow_origin,
    }


def json_response(status_code: int, body: dict[str, Any], settings: Settings) -> HttpResponse:
    return HttpResponse(status_code=status_code, headers=_headers(settings), body=json.dumps(body))


def preflight_response(settings: Settings) -> HttpResponse:
    headers = {"Access-Control-Allow-Origin": settings.allow_origin, **PREFLIGHT_HEADERS}
    return HttpResponse(status_code=204, headers=headers, body="")


def parse_payload(raw_body: str | bytes | None) -> dict[str, Any]:
    """
    Parse the inbound JSON body.

    Raises:
        ClientInputError: When the body is not a JSON object.
    """
    if isinstance(raw_body, bytes):
        try:
            raw_body = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            raise ClientInputError("Invalid JSON body.")
    try:
        payload = json.loads(raw_body or "{}")
    except ValueError:
        raise ClientInputError("Invalid JSON body.")
    if not isinstance(payload, dict):
        raise ClientInputError("Request body must be a JSON object.")
    return payload


def relay(
    raw_body: str | bytes | None,
    secret_key: str | None,
    settings: Settings,
    client: httpx.Client | None = None,
) -> RelayResult:
    if not secret_key or not secret_key.strip():
        raise ConfigurationError(
            f"Missing {API_KEY_ENV_VARS[0]} (or {API_KEY_ENV_VARS[1]}) environment variable."
        )
    payload = parse_payload(raw_body)
    model, body = build_request(payload, settings)
    url = generate_content_url(settings.api_base, model)
    LOGGER.debug("Relaying %d turn(s) to model %s", len(body["contents"]), model)
    resp = post_generate_content(url, secret_key, body, client=client, timeout=settings.timeout)
    return map_response(resp.status_code, resp.text)


def handle(
    http_method: str,
    raw_body: str | bytes | None,
    secret_key: str | None,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
) -> HttpResponse:
    """
    Translate one chat request, forward it to Gemini and wrap the outcome.

    Args:
        http_method: Inbound HTTP method.
        raw_body: Inbound request body.
        secret_key: Gemini API key, None when not configured.
        settings: Relay settings; built-in defaults when omitted.
        client: Optional httpx client for the outbound call.

    Returns:
        A JSON response; failures never raise.
    """
    settings = settings or Settings()
    method = (http_method or "").upper()

    if method == "OPTIONS":
        return preflight_response(settings)

    try:
        if method != "POST":
            raise MethodNotAllowedError("Method not allowed. Use POST.")
        result = relay(raw_body, secret_key, settings, client=client)
    except RelayError as e:
        if e.status_code >= 500:
            LOGGER.error("Relay failed (%s): %s", e.status_code, e.message)
        else:
            LOGGER.warning("Rejected request (%s): %s", e.status_code, e.message)
        result = e.to_result()
    except Exception as e:
        LOGGER.exception("Unexpected relay failure")
        result = RelayResult(status_code=500, error=f"Internal server error: {e}")

    return json_response(result.status_code, result.to_body(), settings)
