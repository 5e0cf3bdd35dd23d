"""Configuration loading for the chat relay.

Layered, highest precedence first:
1. Explicit path argument
2. Environment variable CHAT_RELAY_CONFIG
3. ``config/default.yaml``
4. Built-in defaults (when the file is missing)

Any key can then be overridden from the environment with prefix
``CHAT_RELAY__`` (e.g. CHAT_RELAY__COMPLETION__MODEL=gpt-4o-mini).
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "CHAT_RELAY__"
CONFIG_ENV = "CHAT_RELAY_CONFIG"
DEFAULT_CONFIG_PATH = "config/default.yaml"

DEFAULTS: Dict[str, Any] = {
    "server": {"host": "127.0.0.1", "port": 5000, "cors_origins": ["*"]},
    "storage": {"url": "jsonl://data/messages.jsonl"},
    "completion": {
        "base_url": "https://api.openai.com/v1",
        "model": "gpt-3.5-turbo",
        "api_key_env": "OPENAI_API_KEY",
        "timeout_seconds": 30,
        "system_prompt": None,
    },
    "client": {"base_url": "http://127.0.0.1:5000", "timeout_seconds": 60},
    "logging": {"level": "INFO"},
}


def _coerce(value: str) -> Any:
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix CHAT_RELAY__."""
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        # CHAT_RELAY__STORAGE__URL -> cfg["storage"]["url"]
        parts = key[len(ENV_PREFIX):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if not isinstance(sub.get(p), dict):
                sub[p] = {}
            sub = sub[p]
        sub[parts[-1]] = _coerce(value)
    return cfg


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load YAML configuration merged over :data:`DEFAULTS`.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``CHAT_RELAY_CONFIG`` is consulted, then
        ``config/default.yaml``.

    Returns
    -------
    Dict[str, Any]
        Configuration dictionary with environment overrides applied.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH)

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("Config file not found at %s; using defaults.", path_obj)
        return _apply_env_overrides(copy.deepcopy(DEFAULTS))

    with path_obj.open("r", encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuntimeError(f"Failed to parse config file {path_obj}: {e}") from e

    if not isinstance(loaded, dict):
        raise RuntimeError(f"Invalid config format in {path_obj}, expected a mapping.")

    return _apply_env_overrides(_merge(DEFAULTS, loaded))


def get_api_key(cfg: Dict[str, Any]) -> Optional[str]:
    """Read the completion API key from the env var named in config."""
    env_name = cfg.get("completion", {}).get("api_key_env") or "OPENAI_API_KEY"
    return os.environ.get(str(env_name)) or None
