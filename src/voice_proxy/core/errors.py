from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    UPSTREAM_ERROR = "upstream_error"
    UNEXPECTED_FORMAT = "unexpected_format"
    EMPTY_AUDIO = "empty_audio"
    INTERNAL_ERROR = "internal_error"


class SynthesisError(RuntimeError):
    """
    Base for every failure of a synthesis call.

    `message` is safe to show to API clients; upstream payloads never go in here.
    """

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    http_status: int = 500
    default_message: str = "Internal server error during voice generation"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message}


class InvalidInput(SynthesisError):
    """Raised when the client request cannot be synthesized as sent."""

    kind = ErrorKind.INVALID_INPUT
    http_status = 400
    default_message = "Invalid request"


class UpstreamError(SynthesisError):
    """Raised when the provider is unreachable, times out or answers non-2xx."""

    kind = ErrorKind.UPSTREAM_ERROR

    def __init__(self, status_code: Optional[int], status_text: str) -> None:
        self.status_code = status_code
        self.status_text = status_text
        if status_code is None:
            message = "Voice generation failed: %s" % (status_text,)
        else:
            message = "Voice generation failed: %d %s" % (status_code, status_text)
        super().__init__(message.strip())


class UnexpectedFormat(SynthesisError):
    """Raised when the provider answered with a shape we cannot turn into audio."""

    kind = ErrorKind.UNEXPECTED_FORMAT
    default_message = "Unexpected response format from voice API"


class EmptyAudio(SynthesisError):
    """Raised when the provider answered with zero audio bytes."""

    kind = ErrorKind.EMPTY_AUDIO
    default_message = "Failed to process voice generation request"


class InternalError(SynthesisError):
    """Raised for any other exception escaping the synthesis pipeline."""

    kind = ErrorKind.INTERNAL_ERROR
