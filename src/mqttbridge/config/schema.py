"""Config schema and accessor."""

from __future__ import annotations

from typing import Any

from loguru import logger

from mqttbridge.core.constants import PRESENCE_TOPIC
from mqttbridge.core.errors import BridgeConfigurationError

DEFAULT_MQTT_PORT = 1883


def _optional_int(data: dict[str, Any], key: str) -> int | None:
    val = data.get(key)
    if val is None or (isinstance(val, str) and not val.strip()):
        return None
    try:
        return int(str(val).strip())
    except ValueError as exc:
        raise BridgeConfigurationError(
            f"{key} must be an integer",
            code="invalid_value",
            details={"key": key, "value": val},
            original_error=exc,
        ) from exc


def _number(key: str, val: Any, cast: type = float) -> Any:
    try:
        return cast(val)
    except (TypeError, ValueError) as exc:
        raise BridgeConfigurationError(
            f"{key} must be a number",
            code="invalid_value",
            details={"key": key, "value": val},
            original_error=exc,
        ) from exc


def _str(data: dict[str, Any], key: str) -> str:
    val = data.get(key)
    return str(val).strip() if val is not None else ""


class Config:
    """Config accessor over the merged YAML/env dict."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}

    def reload(self, data: dict[str, Any], *, validate: bool = True) -> None:
        """Replace config data."""
        self._data = data or {}
        if validate:
            self._validate()
        logger.debug("Config loaded: {} keys", len(self._data))

    def missing_required(self) -> list[str]:
        """Names of required settings that are not set."""
        missing = []
        if not self.telegram_bot_token:
            missing.append("telegram_bot_token")
        if not self.mqtt_server:
            missing.append("mqtt_server")
        if not self.mapping_spec:
            missing.append("group_to_topic")
        return missing

    def _validate(self) -> None:
        """Validate config; raise BridgeConfigurationError on failure."""
        missing = self.missing_required()
        if missing:
            raise BridgeConfigurationError(
                "One or more required settings not defined",
                code="missing_required",
                details={"missing": missing},
            )
        # Force parsing of typed values so bad input fails at startup
        _ = (
            self.telegram_group_id,
            self.telegram_admin,
            self.mqtt_port,
            self.mqtt_keepalive,
            self.poll_interval,
            self.poll_timeout,
            self.connect_timeout,
        )

    @property
    def raw(self) -> dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    @property
    def telegram_bot_token(self) -> str:
        return _str(self._data, "telegram_bot_token")

    @property
    def telegram_group_id(self) -> int | None:
        """Default group for single-topic mode."""
        return _optional_int(self._data, "telegram_group_id")

    @property
    def telegram_admin(self) -> int | None:
        return _optional_int(self._data, "telegram_admin")

    @property
    def mqtt_server(self) -> str:
        return _str(self._data, "mqtt_server")

    def _broker_address(self) -> str:
        """mqtt_server without a ``tcp://`` or ``mqtt://`` scheme."""
        _, sep, rest = self.mqtt_server.partition("://")
        return rest if sep else self.mqtt_server

    @property
    def mqtt_host(self) -> str:
        host, _, _ = self._broker_address().partition(":")
        return host

    @property
    def mqtt_port(self) -> int:
        """Port from ``host:port`` in mqtt_server, else mqtt_port, else 1883."""
        _, sep, port = self._broker_address().partition(":")
        if sep and port:
            return _number("mqtt_server", port, int)
        return _number("mqtt_port", self._data.get("mqtt_port", DEFAULT_MQTT_PORT), int)

    @property
    def mqtt_keepalive(self) -> int:
        return _number("mqtt_keepalive", self._data.get("mqtt_keepalive", 60), int)

    @property
    def mqtt_client_id(self) -> str:
        return _str(self._data, "mqtt_client_id")

    @property
    def mqtt_topic(self) -> str:
        """Single-topic name."""
        return _str(self._data, "mqtt_topic")

    @property
    def mqtt_message_to(self) -> str:
        """Single-topic destination."""
        return _str(self._data, "mqtt_message_to")

    @property
    def group_to_topic(self) -> str:
        return _str(self._data, "group_to_topic")

    @property
    def mapping_spec(self) -> str:
        """Mapping source string; falls back to the single-topic settings."""
        if self.group_to_topic:
            return self.group_to_topic
        group = self._data.get("telegram_group_id")
        if group is not None and str(group).strip() and self.mqtt_topic:
            spec = f"{str(group).strip()}:{self.mqtt_topic}"
            if self.mqtt_message_to:
                spec += f":{self.mqtt_message_to}"
            return spec
        return ""

    @property
    def presence_topic(self) -> str:
        return _str(self._data, "presence_topic") or PRESENCE_TOPIC

    @property
    def poll_interval(self) -> float:
        return _number("poll_interval", self._data.get("poll_interval", 1.0))

    @property
    def poll_timeout(self) -> int:
        return _number("poll_timeout", self._data.get("poll_timeout", 60), int)

    @property
    def connect_timeout(self) -> float:
        return _number("connect_timeout", self._data.get("connect_timeout", 10.0))


cfg: Config = Config({})
