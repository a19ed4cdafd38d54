"""Error taxonomy for the chat exchange pipeline."""

from __future__ import annotations

from typing import Optional


class ChatEngineError(Exception):
    """Base class for every failure raised by the chat engine."""


class InvalidInput(ChatEngineError):
    """The submitted user text is missing or blank."""


class StoreUnavailable(ChatEngineError):
    """The message store could not be reached or failed to persist."""


class UpstreamTimeout(ChatEngineError):
    """The completion service did not answer within the configured budget."""


class UpstreamError(ChatEngineError):
    """The completion service failed or returned an unusable response.

    Attributes:
        status_code: HTTP status reported by the upstream service, when known.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClientAborted(ChatEngineError):
    """A client-side request was abandoned (hard timeout), not a server fault."""
