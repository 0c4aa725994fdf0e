from __future__ import annotations


class IconographError(Exception):
    """Base class for pipeline errors."""


class QueryValidationError(IconographError):
    """Raised when an inbound query is empty."""

    def __init__(self, message: str = "Query is required"):
        super().__init__(message)


class UpstreamGenerationError(IconographError):
    """A text-generation call failed or returned unusable content."""

    def __init__(self, caller: str, reason: str):
        super().__init__(f"{caller}: {reason}")
        self.caller = caller
        self.reason = reason


class IllustrationError(IconographError):
    """Image lookup or annotation failed for a single candidate work."""
