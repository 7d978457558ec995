"""Send one chat turn through the relay from the command line.

Uses the same normalization, key handling and error mapping as the HTTP
host, so it doubles as a smoke test for a deployment's configuration.
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import Any

from gemini_relay.common.config import load_settings
from gemini_relay.common.logging_setup import setup_logging
from gemini_relay.relay.handler import handle

LOGGER = logging.getLogger("gemini_relay.cli.chat")

def build_payload(args: argparse.Namespace) -> dict[str, Any]:
    payload: dict[str, Any] = {"message": args.text}
    if args.system:
        payload["system"] = args.system
    if args.model:
        payload["model"] = args.model
    if args.temperature is not None:
        payload["temperature"] = args.temperature
    if args.max_tokens is not None:
        payload["max_output_tokens"] = args.max_tokens
    return payload

def main(argv: list[str] | None = None) -> int:
    setup_logging()
    ap = argparse.ArgumentParser(description="Send one message through the Gemini chat relay")
    ap.add_argument("--text", required=True, help="User message")
    ap.add_argument("--system", default=None, help="System instruction")
    ap.add_argument("--model", default=None, help="Override the configured model")
    ap.add_argument("--temperature", type=float, default=None)
    ap.add_argument("--max-tokens", type=int, default=None)
    ap.add_argument("--cfg", default=None, help="Relay YAML config path")
    args = ap.parse_args(argv)

    settings = load_settings(args.cfg)
    resp = handle("POST", json.dumps(build_payload(args)), settings.api_key, settings)
    body = resp.json()
    if resp.status_code != 200:
        LOGGER.error("Relay returned %s: %s", resp.status_code, body)
        return 1
    print(body["text"])
    return 0

if __name__ == "__main__":
    sys.exit(main())
