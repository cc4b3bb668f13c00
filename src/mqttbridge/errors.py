"""Re-export from core.errors."""

from mqttbridge.core.errors import (
    BridgeConfigurationError,
    BridgeConnectionError,
    BridgeError,
    DeliveryError,
    EnvelopeError,
)

__all__ = [
    "BridgeConfigurationError",
    "BridgeConnectionError",
    "BridgeError",
    "DeliveryError",
    "EnvelopeError",
]
