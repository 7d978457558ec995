"""Relay settings loaded from an optional YAML file and the environment."""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field

LOGGER = logging.getLogger("gemini_relay.config")

DEFAULT_CFG_PATH = "configs/relay.yaml"
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")

TEMPERATURE_RANGE = (0.0, 2.0)
MAX_OUTPUT_TOKENS_RANGE = (1, 8192)


class Settings(BaseModel):
    api_key: str | None = None
    model: str = "gemini-2.5-flash-lite"
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    allow_model_override: bool = True
    default_temperature: float = Field(0.4, ge=TEMPERATURE_RANGE[0], le=TEMPERATURE_RANGE[1])
    default_max_output_tokens: int = Field(
        1000, ge=MAX_OUTPUT_TOKENS_RANGE[0], le=MAX_OUTPUT_TOKENS_RANGE[1]
    )
    timeout: float | None = None
    allow_origin: str = "*"


def load_cfg(path: str | Path) -> dict[str, Any]:
    """
    Read a YAML settings file.

    Args:
        path: YAML file path. A missing file yields an empty mapping.
    """
    path = Path(path)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Relay config at {path} must be a mapping")
    if data.pop("api_key", None) is not None:
        LOGGER.warning("Ignoring api_key in %s; set %s instead", path, API_KEY_ENV_VARS[0])
    return data


def _api_key_from_env(environ: Mapping[str, str]) -> str | None:
    for name in API_KEY_ENV_VARS:
        value = environ.get(name, "").strip()
        if value:
            return value
    return None


def load_settings(
    cfg_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Build relay settings for one invocation.

    YAML values are applied first, environment variables override them.

    Args:
        cfg_path: YAML path; falls back to RELAY_CONFIG, then configs/relay.yaml.
        environ: Environment mapping, os.environ when omitted.

    Returns:
        Validated settings.
    """
    env = os.environ if environ is None else environ
    path = cfg_path or env.get("RELAY_CONFIG") or DEFAULT_CFG_PATH
    values = load_cfg(path)

    if env.get("GEMINI_MODEL"):
        values["model"] = env["GEMINI_MODEL"]
    if env.get("GEMINI_API_BASE"):
        values["api_base"] = env["GEMINI_API_BASE"]
    if env.get("RELAY_UPSTREAM_TIMEOUT"):
        values["timeout"] = env["RELAY_UPSTREAM_TIMEOUT"]
    values["api_key"] = _api_key_from_env(env)

    return Settings(**values)
