"""Dataclasses for the request-scoped values passed through the relay."""
from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import Any

USER_ROLE = "user"
MODEL_ROLE = "model"

@dataclass
class Turn:
    """One role-tagged text message."""
    role: str
    text: str

    def to_content(self) -> dict[str, Any]:
        return {"role": self.role, "parts": [{"text": self.text}]}


@dataclass
class GenerationConfig:
    """Sampling knobs, already clamped to the upstream-accepted ranges."""
    temperature: float
    max_output_tokens: int

    def to_payload(self) -> dict[str, Any]:
        return {"temperature": self.temperature, "maxOutputTokens": self.max_output_tokens}


@dataclass
class Conversation:
    """Ordered upstream contents plus an optional system instruction."""
    contents: list[Any] = field(default_factory=list)
    system: str | None = None

    def to_payload(self, generation: GenerationConfig) -> dict[str, Any]:
        """
        Build the generateContent request body.

        Args:
            generation: Clamped generation parameters.
        """
        body: dict[str, Any] = {
            "contents": self.contents,
            "generationConfig": generation.to_payload(),
        }
        if self.system is not None:
            body["systemInstruction"] = {"parts": [{"text": self.system}]}
        return body


@dataclass
class RelayResult:
    """Outcome of one relay invocation: a reply or an error, never both."""
    status_code: int = 200
    text: str | None = None
    error: str | None = None
    details: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_body(self) -> dict[str, Any]:
        if self.ok:
            return {"text": self.text}
        body: dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


@dataclass
class HttpResponse:
    """Transport-neutral HTTP response produced by the relay handler."""
    status_code: int
    headers: dict[str, str]
    body: str = ""

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None
