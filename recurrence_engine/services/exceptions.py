"""Errors raised by the recurrence engine."""
from typing import Any, Dict, Optional


class RecurrenceError(Exception):
    """Base exception for recurrence engine errors"""

    code = "RECURRENCE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFound(RecurrenceError):
    """Template does not exist or belongs to another organization."""

    code = "NOT_FOUND"


class InvalidRule(RecurrenceError):
    """Recurrence rule the calculator cannot evaluate."""

    code = "INVALID_RULE"

    def __init__(self, message: str, errors: Optional[list] = None, details: Optional[Dict[str, Any]] = None):
        self.errors = errors or [message]
        super().__init__(message, details)


class NotSchedulable(RecurrenceError):
    """Template is paused or terminal, so it has no next occurrence to act on."""

    code = "NOT_SCHEDULABLE"


class ConcurrentClaimLost(RecurrenceError):
    """Another worker advanced the template after it was read."""

    code = "CLAIM_LOST"


class StorageFailure(RecurrenceError):
    """Transient storage error; nothing was committed."""

    code = "STORAGE_FAILURE"
