"""Relay failure classes and their JSON error envelope."""
from __future__ import annotations
from typing import Any

from gemini_relay.common.schema import RelayResult


class RelayError(Exception):
    """Base failure; carries the HTTP status the caller should see."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_result(self) -> RelayResult:
        return RelayResult(status_code=self.status_code, error=self.message, details=self.details)


class ClientInputError(RelayError):
    status_code = 400


class MethodNotAllowedError(RelayError):
    status_code = 405


class ConfigurationError(RelayError):
    pass


class UpstreamError(RelayError):
    """Non-success status from Gemini, or an error object in a 2xx body."""


class TransportError(RelayError):
    """The outbound request never produced a response."""
