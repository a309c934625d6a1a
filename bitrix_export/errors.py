"""Exception hierarchy for the Bitrix24 company export."""
from __future__ import annotations

from typing import Optional


class BitrixError(Exception):
    """Base class for every error raised by the exporter."""


class ConfigError(BitrixError):
    """Missing or malformed webhook endpoint."""


class TransportError(BitrixError):
    """The request never produced an HTTP response."""

    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ApiError(BitrixError):
    """Bitrix24 answered with an error envelope (or no body at all)."""

    EMPTY_RESPONSE = "empty_response"

    def __init__(
        self,
        code: str,
        description: Optional[str] = None,
        *,
        status: Optional[int] = None,
    ) -> None:
        text = f"API Error: {code}"
        if description:
            text = f"{text} - {description}"
        super().__init__(text)
        self.code = code
        self.description = description
        self.status = status


class WebhookError(BitrixError):
    """Failure while posting a message to the webhook."""


class FormatError(BitrixError):
    """A page did not have the expected ``result`` list."""


class PersistenceError(BitrixError):
    """The snapshot could not be written or read back."""
