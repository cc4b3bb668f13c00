"""Config loading."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

# Keys read from the environment, by lowercase name or its uppercase form
ENV_KEYS = (
    "telegram_bot_token",
    "telegram_group_id",
    "telegram_admin",
    "mqtt_server",
    "mqtt_port",
    "mqtt_keepalive",
    "mqtt_client_id",
    "mqtt_topic",
    "mqtt_message_to",
    "group_to_topic",
    "presence_topic",
    "poll_interval",
    "poll_timeout",
    "connect_timeout",
)


def load_config(path: str | Path) -> dict[str, Any]:
    """Load config from YAML file. Use SafeLoader. Returns raw dict."""
    path = Path(path)
    if not path.exists():
        logger.debug("Config file not found: {}; using environment only", path)
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("Config file {} has invalid structure (expected dict)", path)
            return {}
        return data
    except yaml.YAMLError as exc:
        logger.error("Failed to parse config {}: {}", path, exc)
        raise


def load_env_overrides() -> dict[str, str]:
    """Collect non-empty environment values for known keys."""
    overrides: dict[str, str] = {}
    for key in ENV_KEYS:
        value = os.environ.get(key) or os.environ.get(key.upper())
        if value:
            overrides[key] = value
    return overrides


def load_config_with_env(path: str | Path) -> dict[str, Any]:
    """Load config from YAML and overlay env-derived values (env wins).

    Loads .env via python-dotenv when present; it never overrides variables
    already set in the process environment.
    """
    from dotenv import load_dotenv

    load_dotenv()
    data = load_config(path)
    data.update(load_env_overrides())
    return data
