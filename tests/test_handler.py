from __future__ import annotations

import json
from typing import Any, Callable

import httpx

from gemini_relay.common.config import Settings
from gemini_relay.relay.handler import handle
from gemini_relay.relay.upstream import FALLBACK_TEXT


class _Recorder:
    """MockTransport responder that counts outbound calls."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    @property
    def last_body(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


def _reply(*texts: str) -> Callable[[httpx.Request], httpx.Response]:
    parts = [{"text": t} for t in texts]
    return lambda request: httpx.Response(200, json={"candidates": [{"content": {"parts": parts}}]})


def test_preflight_never_calls_upstream() -> None:
    rec = _Recorder(_reply("unused"))
    resp = handle("OPTIONS", None, None, client=rec.client())
    assert resp.status_code == 204
    assert resp.body == ""
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]
    assert rec.requests == []


def test_wrong_method_is_rejected() -> None:
    rec = _Recorder(_reply("unused"))
    resp = handle("GET", None, "key", client=rec.client())
    assert resp.status_code == 405
    assert "error" in resp.json()
    assert rec.requests == []


def test_missing_key_fails_closed() -> None:
    rec = _Recorder(_reply("unused"))
    resp = handle("POST", '{"message": "hi"}', None, client=rec.client())
    assert resp.status_code == 500
    assert "GEMINI_API_KEY" in resp.json()["error"]
    assert rec.requests == []


def test_invalid_json_is_client_error() -> None:
    rec = _Recorder(_reply("unused"))
    resp = handle("POST", "{not json", "key", client=rec.client())
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid JSON body."}
    assert rec.requests == []


def test_non_object_json_is_client_error() -> None:
    resp = handle("POST", "[1, 2]", "key", client=_Recorder(_reply("unused")).client())
    assert resp.status_code == 400


def test_single_message_round_trip() -> None:
    rec = _Recorder(_reply("a", "b"))
    resp = handle("post", b'{"message": "hi", "system": "be terse"}', "key", client=rec.client())

    assert resp.status_code == 200
    assert resp.json() == {"text": "a\nb"}
    assert resp.headers["Content-Type"].startswith("application/json")

    assert len(rec.requests) == 1
    sent = rec.last_body
    assert sent["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]
    assert sent["systemInstruction"] == {"parts": [{"text": "be terse"}]}
    assert rec.requests[0].url.path.endswith("/models/gemini-2.5-flash-lite:generateContent")
    assert rec.requests[0].url.params["key"] == "key"


def test_settings_drive_model_and_base() -> None:
    rec = _Recorder(_reply("ok"))
    settings = Settings(model="gemini-2.0-flash", api_base="https://proxy.test/v1", allow_origin="https://site.test")
    resp = handle("POST", '{"messages": [{"role": "user", "content": "x"}]}', "key", settings, client=rec.client())
    assert resp.status_code == 200
    assert str(rec.requests[0].url).startswith("https://proxy.test/v1/models/gemini-2.0-flash:generateContent")
    assert resp.headers["Access-Control-Allow-Origin"] == "https://site.test"


def test_embedded_error_is_failure() -> None:
    rec = _Recorder(lambda request: httpx.Response(200, json={"error": {"code": 400, "message": "bad request"}}))
    resp = handle("POST", '{"message": "hi"}', "key", client=rec.client())
    assert resp.status_code == 500
    assert resp.json()["error"] == "bad request"


def test_upstream_status_is_propagated() -> None:
    rec = _Recorder(lambda request: httpx.Response(503, text="overloaded"))
    resp = handle("POST", '{"message": "hi"}', "key", client=rec.client())
    assert resp.status_code == 503
    assert resp.json() == {"error": "Gemini API error", "details": {"raw": "overloaded"}}


def test_non_json_success_body_does_not_raise() -> None:
    rec = _Recorder(lambda request: httpx.Response(200, text="plain text"))
    resp = handle("POST", '{"message": "hi"}', "key", client=rec.client())
    assert resp.status_code == 200
    assert resp.json() == {"text": FALLBACK_TEXT}


def test_transport_failure_is_wrapped() -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    resp = handle("POST", '{"message": "hi"}', "key", client=_Recorder(boom).client())
    assert resp.status_code == 500
    assert resp.json()["error"] == "Server error calling Gemini API"
    assert resp.json()["details"] == "timed out"


def test_empty_body_is_rejected_without_upstream_call() -> None:
    rec = _Recorder(_reply("unused"))
    resp = handle("POST", "", "key", client=rec.client())
    assert resp.status_code == 400
    assert rec.requests == []


def test_huge_temperature_is_not_a_server_error() -> None:
    rec = _Recorder(_reply("ok"))
    resp = handle("POST", '{"message": "hi", "temperature": 1' + "0" * 400 + "}", "key", client=rec.client())
    assert resp.status_code == 200
    assert rec.last_body["generationConfig"]["temperature"] == 0.4


def test_empty_embedded_error_object_is_failure() -> None:
    rec = _Recorder(lambda request: httpx.Response(200, json={"error": {}}))
    resp = handle("POST", '{"message": "hi"}', "key", client=rec.client())
    assert resp.status_code == 500
    assert resp.json()["error"] == "Gemini API error"
