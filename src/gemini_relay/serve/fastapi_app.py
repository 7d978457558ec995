"""FastAPI host for the Gemini chat relay.

Endpoints:
- GET /health
- POST /api/chat  { "message": "...", "history": [...] } or { "messages": [...] }
- OPTIONS /api/chat  (CORS pre-flight)
"""
from __future__ import annotations
import argparse
import logging

import uvicorn
import yaml
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from gemini_relay.common.config import load_settings
from gemini_relay.common.logging_setup import setup_logging
from gemini_relay.relay.handler import handle

LOGGER = logging.getLogger("gemini_relay.serve.app")
setup_logging()

RELAY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]
SETTINGS_ERRORS = (OSError, ValueError, yaml.YAMLError)

class HealthOut(BaseModel):
    status: str
    model: str

app = FastAPI(title="Gemini chat relay")

def _config_error(e: Exception) -> JSONResponse:
    LOGGER.error("Invalid relay configuration: %s", e)
    return JSONResponse({"error": "Relay configuration is invalid."}, status_code=500)

@app.on_event("startup")
def _warn_on_missing_key() -> None:
    """Warn early when no API key is configured; requests still fail closed."""
    try:
        settings = load_settings()
    except Exception as e:
        LOGGER.warning("Failed to load relay settings: %s", e)
        return
    if not settings.api_key:
        LOGGER.warning("No Gemini API key configured; /api/chat will return 500")

@app.get("/health", response_model=HealthOut)
def health() -> HealthOut | JSONResponse:
    try:
        settings = load_settings()
    except SETTINGS_ERRORS as e:
        return _config_error(e)
    return HealthOut(status="ok", model=settings.model)


@app.api_route("/api/chat", methods=RELAY_METHODS)
async def chat(request: Request) -> Response:
    raw_body = await request.body()
    try:
        settings = load_settings()
    except SETTINGS_ERRORS as e:
        return _config_error(e)
    result = await run_in_threadpool(handle, request.method, raw_body, settings.api_key, settings)
    return Response(content=result.body, status_code=result.status_code, headers=result.headers)


def main() -> None:
    ap = argparse.ArgumentParser(description="Serve the Gemini chat relay")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    args = ap.parse_args()
    uvicorn.run(app, host=args.host, port=args.port)

if __name__ == "__main__":
    main()
