"""
Errors raised by the moderation and assistant capability clients.

The gateway treats every CapabilityError the same way: moderation
failures fail closed and assistant failures fall back to the safety
template. The subclasses exist so retries and logs can tell them apart.
"""

from typing import Optional


class CapabilityError(Exception):
    """A capability call did not produce a usable reply."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self):
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class CapabilityAuthError(CapabilityError):
    """Credentials were rejected. Never retried."""

    def __init__(self, message: str = "Capability rejected the API key"):
        super().__init__(message, status_code=401)


class CapabilityRateLimitError(CapabilityError):
    """The provider throttled the call; ``retry_after`` is in seconds when known."""

    def __init__(self, message: str = "Capability rate limited", retry_after: Optional[int] = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class CapabilityServerError(CapabilityError):
    """The provider answered with a 5xx status."""

    def __init__(self, message: str = "Capability unavailable", status_code: int = 500):
        super().__init__(message, status_code=status_code)


class CapabilityTimeoutError(CapabilityError):
    """No answer within the client timeout."""

    def __init__(self, message: str = "Capability timed out"):
        super().__init__(message, status_code=408)


class CapabilityConnectionError(CapabilityError):
    """The provider could not be reached."""


class MalformedReplyError(CapabilityError):
    """The reply arrived but could not be interpreted."""
