"""Configuration: YAML + .env + environment overlay."""

from mqttbridge.config.loader import ENV_KEYS, load_config, load_config_with_env, load_env_overrides
from mqttbridge.config.schema import Config, cfg

__all__ = ["ENV_KEYS", "Config", "cfg", "load_config", "load_config_with_env", "load_env_overrides"]
