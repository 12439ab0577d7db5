"""Error taxonomy for review generation.

Every error carries a short ``public_message`` that is safe to show to the
caller; the exception text itself may hold upstream detail and is only logged.
"""

from __future__ import annotations


class ReviewServiceError(RuntimeError):
    status_code = 500
    public_message = "Review generation failed"
    reason = "internal"

    def __init__(self, detail: str | None = None, *, public_message: str | None = None) -> None:
        super().__init__(detail or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class ConfigurationError(ReviewServiceError):
    """A required upstream credential is missing."""

    status_code = 500
    public_message = "Review generation is not configured"
    reason = "configuration"


class ReviewValidationError(ReviewServiceError):
    status_code = 400
    public_message = "Invalid review request"
    reason = "validation"


class EmptySelectionError(ReviewValidationError):
    """No tags remain once categories flagged "none" are cleared."""

    public_message = "Select at least one tag"
    reason = "empty_selection"


class UpstreamError(ReviewServiceError):
    """The text-completion backend failed or returned an unusable response."""

    status_code = 502
    public_message = "Review generation failed"
    reason = "upstream"


class UpstreamTimeout(UpstreamError):
    status_code = 504
    public_message = "Review generation timed out"
    reason = "timeout"


class SinkError(ReviewServiceError):
    """Usage logging failed. Never surfaced to callers."""

    reason = "sink"


__all__ = [
    "ConfigurationError",
    "EmptySelectionError",
    "ReviewServiceError",
    "ReviewValidationError",
    "SinkError",
    "UpstreamError",
    "UpstreamTimeout",
]
