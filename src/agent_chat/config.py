"""Configuration loading utilities.

This module handles layered configuration:
1. Explicit path argument (highest precedence)
2. Environment variable AGENT_CHAT_CONFIG
3. Fallback to "config/default.yaml"

File values are merged over :data:`DEFAULTS`. Environment variables with
prefix ``AGENT_CHAT__`` override last (e.g.,
AGENT_CHAT__HISTORY__MAX_LENGTH=20).
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "AGENT_CHAT__"
ENV_CONFIG_PATH = "AGENT_CHAT_CONFIG"

DEFAULTS: Dict[str, Any] = {
    "server": {"cors_origins": ["*"]},
    "storage": {"db_path": "data/agent_chat.db"},
    "history": {"max_length": 10},
    "completion": {
        "api_url": "https://api.openai.com/v1/chat/completions",
        "model": "gpt-3.5-turbo",
        "timeout": 30.0,
        "api_key": None,
        "api_key_env": "OPENAI_API_KEY",
        "system_prompt_mode": "legacy",
    },
    "prompt": {"template": None},
    "personas": {"dir": "personas", "inline": []},
    "console": {"agent_name": "Console Agent"},
    "logging": {"level": "INFO"},
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def _coerce(value: str) -> Any:
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix AGENT_CHAT__."""
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        # e.g., AGENT_CHAT__STORAGE__DB_PATH -> cfg["storage"]["db_path"]
        parts = key[len(ENV_PREFIX):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if p not in sub or not isinstance(sub[p], dict):
                sub[p] = {}
            sub = sub[p]
        sub[parts[-1]] = _coerce(value)
    return cfg


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load YAML configuration.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``AGENT_CHAT_CONFIG`` is consulted. As a
        last resort ``config/default.yaml`` is used.

    Returns
    -------
    Dict[str, Any]
        Defaults merged with the file, environment overrides applied.
    """
    if path is None:
        path = os.environ.get(ENV_CONFIG_PATH, "config/default.yaml")

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("Config file not found at %s. Using defaults.", path_obj)
        return _apply_env_overrides(copy.deepcopy(DEFAULTS))

    with path_obj.open("r", encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuntimeError(f"Failed to parse config file {path_obj}: {e}") from e

    if not isinstance(loaded, dict):
        raise RuntimeError(f"Invalid config format in {path_obj}, expected dict.")

    return _apply_env_overrides(_deep_merge(DEFAULTS, loaded))


def resolve_api_key(cfg: Dict[str, Any]) -> Optional[str]:
    """Return the completion credential: explicit ``completion.api_key`` or its env var."""
    c = cfg.get("completion", {}) or {}
    key = c.get("api_key")
    if not key:
        key = os.environ.get(c.get("api_key_env") or "OPENAI_API_KEY")
    if key:
        logger.info("Completion API key is set")
    else:
        logger.warning("Completion API key is not set (%s)", c.get("api_key_env") or "OPENAI_API_KEY")
    return key or None


def setup_logging(cfg: Dict[str, Any]) -> None:
    level = str((cfg.get("logging", {}) or {}).get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
