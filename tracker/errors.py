"""
Error taxonomy for the coursework tracker.

None of these are fatal: every one is recoverable by the user retrying or
correcting input. Each carries a short ``user_message`` suitable for display.
"""
from __future__ import annotations


class TrackerError(Exception):
    """Base class for all tracker errors."""

    user_message = "Something went wrong."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.user_message)


class ValidationError(TrackerError):
    """A required field is missing or a value is outside its enum."""

    user_message = "Invalid input."


class NotFoundError(TrackerError):
    """An operation referenced an id that is not in the collection."""

    user_message = "Record not found."


class PersistenceError(TrackerError):
    """The external store rejected a read or write."""

    user_message = "Could not save your changes. Reload to resync."


class ExtractionError(TrackerError):
    """The AI syllabus extraction failed or returned unusable content."""

    user_message = "Failed to parse syllabus with AI."


class RateLimitError(ExtractionError):
    user_message = "Rate limit exceeded. Please try again later."


class CreditsExhaustedError(ExtractionError):
    user_message = "AI service credits exhausted. Please add credits to continue."
