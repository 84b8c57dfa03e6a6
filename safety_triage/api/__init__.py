"""
API module for the external capabilities.

This module provides the moderation and assistant clients that wrap an
OpenAI-compatible chat completion endpoint.
"""

from safety_triage.api.llm_client import CompletionClient, resolve_mock_mode
from safety_triage.api.moderation_client import ModerationClient
from safety_triage.api.assistant_client import AssistantClient
from safety_triage.api.models import (
    ChatCompletionRequest, ChatCompletionResponse,
    ModerationPayload, ModerationCategories
)
from safety_triage.api.exceptions import (
    CapabilityError, CapabilityAuthError, CapabilityRateLimitError,
    CapabilityTimeoutError, CapabilityServerError, MalformedReplyError, CapabilityConnectionError
)

__all__ = [
    "CompletionClient",
    "resolve_mock_mode",
    "ModerationClient",
    "AssistantClient",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ModerationPayload",
    "ModerationCategories",
    "CapabilityError",
    "CapabilityAuthError",
    "CapabilityRateLimitError",
    "CapabilityTimeoutError",
    "CapabilityServerError",
    "MalformedReplyError",
    "CapabilityConnectionError"
]
