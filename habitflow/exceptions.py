"""
Exception taxonomy for the entity framework.

Repository and service code raise these; the generation orchestrator
converts them into result envelopes before they reach callers.
"""
from typing import Iterable, Optional


class HabitflowError(Exception):
    """Base exception for all habitflow errors."""
    pass


class ValidationError(HabitflowError):
    """Raised when input fails entity-specific required-field checks."""

    def __init__(self, resource: str, detail: str):
        self.resource = resource
        self.detail = detail
        super().__init__(f"Invalid {resource} data: {detail}")


class NotFoundError(HabitflowError):
    """Raised when an id-keyed operation targets a nonexistent row."""

    def __init__(self, resource: str, record_id):
        self.resource = resource
        self.record_id = record_id
        super().__init__(f"{resource} {record_id} not found")


class UnknownFieldError(HabitflowError):
    """Raised when a filter references a field the entity does not expose."""

    def __init__(self, field: str, available: Optional[Iterable[str]] = None):
        self.field = field
        self.available = sorted(available) if available else []
        msg = f"Unknown field: {field}"
        if self.available:
            msg += f". Available fields: {', '.join(self.available)}"
        super().__init__(msg)


class GenerationParseError(HabitflowError):
    """Raised when generator output cannot be reduced to the expected shape."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class ExternalCallError(HabitflowError):
    """Raised when the text generator call itself fails."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider} generation failed: {message}")
