"""
Safety module for chat screening.

This module provides the moderation gateway that must approve a chat
message before any AI-generated reply is produced.
"""

from safety_triage.safety.models import (
    ChatMessage, ModerationVerdict, ChatOutcome, ChatReply, MAX_MESSAGE_CHARS
)
from safety_triage.safety.gateway import ModerationGateway
from safety_triage.safety.resources import CrisisResource, CrisisResourceDirectory, NATIONAL_RESOURCES
from safety_triage.safety.templates import (
    CRISIS_FALLBACK, SAFETY_TEMPLATE, DISALLOWED_CONTENT_FALLBACK,
    ASSISTANT_UNAVAILABLE, EMERGENCY_DIRECTIVE, contains_disallowed_content
)

__all__ = [
    "ChatMessage",
    "ModerationVerdict",
    "ChatOutcome",
    "ChatReply",
    "MAX_MESSAGE_CHARS",
    "ModerationGateway",
    "CrisisResource",
    "CrisisResourceDirectory",
    "NATIONAL_RESOURCES",
    "CRISIS_FALLBACK",
    "SAFETY_TEMPLATE",
    "DISALLOWED_CONTENT_FALLBACK",
    "ASSISTANT_UNAVAILABLE",
    "EMERGENCY_DIRECTIVE",
    "contains_disallowed_content"
]
