"""Translate browser chat payloads into Gemini generateContent bodies.

Two inbound shapes are accepted:
- {system, message, history: [{role, content}]}
- {model, system, messages | contents, temperature, max_output_tokens | maxOutputTokens | max_tokens}

Conversation turns are resolved with a fixed precedence: a pre-built
``contents`` list, then a ``messages``/``history`` list, then nothing; a
separate ``message`` is always appended last as a user turn.
"""
from __future__ import annotations
import math
from typing import Any, Mapping

from gemini_relay.common.config import MAX_OUTPUT_TOKENS_RANGE, TEMPERATURE_RANGE, Settings
from gemini_relay.common.schema import MODEL_ROLE, USER_ROLE, Conversation, GenerationConfig, Turn
from gemini_relay.relay.errors import ClientInputError

MAX_TOKENS_FIELDS = ("max_output_tokens", "maxOutputTokens", "max_tokens")
DEFAULT_TEMPERATURE = 0.4
DEFAULT_MAX_OUTPUT_TOKENS = 1000


def map_role(role: Any) -> str:
    """Rename the chat-style assistant role to Gemini's model role."""
    role = USER_ROLE if role is None or role == "" else str(role)
    return MODEL_ROLE if role == "assistant" else role


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def message_to_turn(message: Any) -> Turn:
    if not isinstance(message, Mapping):
        return Turn(role=USER_ROLE, text="")
    return Turn(role=map_role(message.get("role")), text=_as_text(message.get("content")))


def to_number(value: Any) -> float | None:
    """
    Coerce a loosely typed value to a finite float.

    Returns:
        The number, or None for booleans, blanks, non-numeric strings, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        if not value.strip():
            return None
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def normalize_temperature(value: Any, default: float = DEFAULT_TEMPERATURE) -> float:
    number = to_number(value)
    if number is None:
        return default
    return clamp(number, *TEMPERATURE_RANGE)


def normalize_max_output_tokens(value: Any, default: int = DEFAULT_MAX_OUTPUT_TOKENS) -> int:
    number = to_number(value)
    if number is None:
        return default
    return int(clamp(number, *MAX_OUTPUT_TOKENS_RANGE))


def first_present(payload: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if payload.get(name) is not None:
            return payload[name]
    return None


def build_contents(payload: Mapping[str, Any]) -> list[Any]:
    """
    Resolve the ordered upstream contents list.

    Args:
        payload: Parsed request body.
    """
    contents = payload.get("contents")
    if isinstance(contents, list):
        resolved = list(contents)
    else:
        messages = payload.get("messages")
        if not isinstance(messages, list):
            messages = payload.get("history")
        if not isinstance(messages, list):
            messages = []
        resolved = [message_to_turn(m).to_content() for m in messages]

    if payload.get("message") is not None:
        resolved.append(Turn(role=USER_ROLE, text=_as_text(payload["message"])).to_content())
    return resolved


def build_system(payload: Mapping[str, Any]) -> str | None:
    system = _as_text(payload.get("system"))
    return system if system.strip() else None


def build_generation_config(payload: Mapping[str, Any], settings: Settings | None = None) -> GenerationConfig:
    settings = settings or Settings()
    return GenerationConfig(
        temperature=normalize_temperature(payload.get("temperature"), settings.default_temperature),
        max_output_tokens=normalize_max_output_tokens(
            first_present(payload, MAX_TOKENS_FIELDS), settings.default_max_output_tokens
        ),
    )


def resolve_model(payload: Mapping[str, Any], settings: Settings | None = None) -> str:
    settings = settings or Settings()
    requested = payload.get("model")
    if settings.allow_model_override and isinstance(requested, str) and requested.strip():
        return requested.strip()
    return settings.model


def build_request(payload: Mapping[str, Any], settings: Settings | None = None) -> tuple[str, dict[str, Any]]:
    """
    Normalize a parsed request body.

    Args:
        payload: Parsed JSON object from the caller.
        settings: Relay settings for defaults and model selection.

    Returns:
        The model name and the generateContent request body.

    Raises:
        ClientInputError: When the payload carries no conversation turns.
    """
    conversation = Conversation(contents=build_contents(payload), system=build_system(payload))
    if not conversation.contents:
        raise ClientInputError("Request must include message, messages, history or contents.")
    generation = build_generation_config(payload, settings)
    return resolve_model(payload, settings), conversation.to_payload(generation)
