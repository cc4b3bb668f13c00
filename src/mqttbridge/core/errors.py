"""Bridge domain exceptions."""

from __future__ import annotations


class BridgeError(Exception):
    """Base for bridge domain errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class BridgeConfigurationError(BridgeError):
    """Config validation or load failure."""


class BridgeConnectionError(BridgeError):
    """Bus or chat session could not be established at startup."""


class EnvelopeError(BridgeError):
    """Inbound bus payload cannot be interpreted."""


class DeliveryError(BridgeError):
    """Chat send or bus publish failed."""
