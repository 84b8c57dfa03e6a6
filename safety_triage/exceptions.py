"""
Exceptions raised by the routing core.

Capability (HTTP) errors live in safety_triage.api.exceptions.
"""


class TriageValidationError(ValueError):
    """Raised when a submission is malformed and must not be classified."""

    def __init__(self, message: str, field_name: str = None):
        super().__init__(message)
        self.message = message
        self.field_name = field_name

    def __str__(self):
        if self.field_name:
            return f"{self.field_name}: {self.message}"
        return self.message


class AuditWriteError(Exception):
    """Raised when the audit sink cannot persist an event."""


class RateLimitExceeded(Exception):
    """Raised when a client exceeds its request window."""

    def __init__(self, key: str, retry_after: float):
        super().__init__("Too many requests. Please wait a moment.")
        self.key = key
        self.retry_after = retry_after
