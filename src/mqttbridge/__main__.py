"""Bridge entrypoint. Loads config, connects MQTT and Telegram, runs until signalled."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from mqttbridge import __version__
from mqttbridge.adapters import MQTTAdapter, TelegramAdapter
from mqttbridge.config import Config, cfg, load_config_with_env
from mqttbridge.core.constants import MAPPING_FORMAT_HINT
from mqttbridge.errors import BridgeConfigurationError, BridgeConnectionError
from mqttbridge.gateway import BridgeRunner

# Third-party libraries to intercept and route through loguru
_INTERCEPTED_LIBRARIES = ["telegram", "telegram.ext", "httpx", "paho", "paho.mqtt.client"]
# httpx logs every long-poll request at INFO
_NOISY_LIBRARIES = ["httpx"]

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _intercept_logging(level: str) -> None:
    """Route third-party library logs to loguru."""

    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            try:
                log_level = logger.level(record.levelname).name
            except ValueError:
                log_level = str(record.levelno)
            msg = record.getMessage().replace("{", "{{").replace("}", "}}")
            logger.patch(
                lambda r: r.update(
                    name=record.name,
                    function=record.funcName,
                    line=record.lineno,
                ),
            ).opt(exception=record.exc_info).log(log_level, msg)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for lib in _INTERCEPTED_LIBRARIES:
        lib_logger = logging.getLogger(lib)
        lib_logger.handlers = [InterceptHandler()]
        lib_logger.propagate = False
        lib_logger.setLevel("WARNING" if lib in _NOISY_LIBRARIES and level != "DEBUG" else level)


def _safe_message_filter(record: Any) -> bool:
    """Escape braces/angles in log messages to prevent format/tag errors."""
    if isinstance(record.get("message"), str):
        msg = record["message"]
        msg = msg.replace("{", "{{").replace("}", "}}").replace("<", "\\<")
        record["message"] = msg
    return True


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru. Replace default logging.
    Level: verbose=True or LOG_LEVEL=DEBUG enables DEBUG; otherwise INFO."""
    level = "INFO"
    if verbose:
        level = "DEBUG"
    else:
        env_level = (os.environ.get("LOG_LEVEL") or "").upper()
        if env_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            level = env_level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=("<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}"),
        filter=_safe_message_filter,
    )
    _intercept_logging(level)


def reload_config(config_path: Path) -> Config:
    """Load config from path + environment and update global cfg."""
    data = load_config_with_env(config_path)
    cfg.reload(data)
    return cfg


def _report_config_error(exc: BridgeConfigurationError) -> None:
    """Log which settings are missing or invalid, one line each."""
    missing = exc.details.get("missing")
    if isinstance(missing, list):
        for key in missing:
            logger.error("{} was not defined! Please define at environment variable '{}'", key, key)
            if key == "group_to_topic":
                logger.warning("Format: {}", MAPPING_FORMAT_HINT)
    else:
        logger.error("Invalid configuration: {}", exc)
    logger.critical("One or more environment variables not defined or invalid. Aborting...")


def main() -> None:
    """Main entrypoint."""
    parser = argparse.ArgumentParser(description="MQTT Telegram Bridge: relay MQTT topics to Telegram groups and back")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Optional YAML config file; environment variables override it (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        config = reload_config(args.config)
    except BridgeConfigurationError as exc:
        _report_config_error(exc)
        sys.exit(1)

    logger.info("Starting")

    # Run async main (uvloop if available for better I/O throughput)
    try:
        import uvloop

        code = uvloop.run(_run(config))
    except ImportError:
        code = asyncio.run(_run(config))
    sys.exit(code)


async def _run(config: Config) -> int:
    """Async run loop. Returns the process exit status."""
    bus = MQTTAdapter(
        config.mqtt_host,
        config.mqtt_port,
        keepalive=config.mqtt_keepalive,
        client_id=config.mqtt_client_id,
        connect_timeout=config.connect_timeout,
    )
    chat = TelegramAdapter(config.telegram_bot_token, poll_timeout=config.poll_timeout)
    runner = BridgeRunner(
        config.mapping_spec,
        bus,
        chat,
        presence_topic=config.presence_topic,
        admin_id=config.telegram_admin,
        poll_interval=config.poll_interval,
    )

    loop = asyncio.get_running_loop()
    for sig in _STOP_SIGNALS:
        loop.add_signal_handler(sig, runner.request_stop)

    try:
        await runner.run()
    except BridgeConfigurationError as exc:
        _report_config_error(exc)
        return 1
    except BridgeConnectionError as exc:
        logger.critical("Connection failed: {}", exc)
        return 1
    finally:
        for sig in _STOP_SIGNALS:
            loop.remove_signal_handler(sig)
    return 0


if __name__ == "__main__":
    main()
