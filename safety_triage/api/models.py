"""
Pydantic models for the capability wire format.

This module defines data models for the OpenAI-compatible chat
completion API used by the moderation and assistant capabilities,
including the structured moderation reply.
"""

import re
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from safety_triage.safety.models import ModerationVerdict


def extract_json_from_text(text: str) -> Optional[str]:
    """
    Extract first JSON object from text using regex.

    Args:
        text: Raw text that may contain JSON

    Returns:
        Extracted JSON string or None if not found
    """
    match = re.search(r'\{.*\}', text, re.DOTALL)
    if match:
        return match.group()
    return None


class CompletionMessage(BaseModel):
    """A chat completion message."""
    role: str = Field(..., description="Message role (system, user, assistant)")
    content: str = Field(..., description="Message content")


class ChatCompletionRequest(BaseModel):
    """Request model for chat completion."""
    model: str = Field(..., description="Model name")
    messages: List[CompletionMessage] = Field(..., description="Conversation messages")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = Field(default=400, ge=1, le=4096)
    response_format: Optional[Dict[str, Any]] = Field(default=None)


class ChatCompletionChoice(BaseModel):
    """A completion choice in the response."""
    index: int = 0
    message: CompletionMessage
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    """Token usage information."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """Response model for chat completion."""
    id: str = ""
    object: str = "chat.completion"
    created: int = 0
    model: str = ""
    choices: List[ChatCompletionChoice] = Field(default_factory=list)
    usage: Optional[Usage] = None


class ModerationCategories(BaseModel):
    """Per-category flags returned by the moderation capability."""
    self_harm: bool
    violence: bool
    crisis: bool


class ModerationPayload(BaseModel):
    """Structured reply of the moderation capability."""
    flagged: bool
    selfHarm: bool
    harmOthers: bool
    crisis: bool
    categories: ModerationCategories

    def to_verdict(self) -> ModerationVerdict:
        """
        Map the structured reply onto a gateway verdict.

        Any self-harm, harm-to-others or crisis flag is a crisis signal.
        A message that is only generically flagged is disallowed without
        triggering crisis mode.
        """
        category_flags = self.categories.model_dump()
        categories = frozenset(name for name, value in category_flags.items() if value)

        crisis_signal = (
            self.selfHarm
            or self.harmOthers
            or self.crisis
            or bool(categories)
        )

        return ModerationVerdict(
            allowed=not (self.flagged or crisis_signal),
            crisis_signal=crisis_signal,
            categories=categories
        )


MODERATION_RESPONSE_FORMAT: Dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "moderation_result",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "flagged": {"type": "boolean"},
                "selfHarm": {"type": "boolean"},
                "harmOthers": {"type": "boolean"},
                "crisis": {"type": "boolean"},
                "categories": {
                    "type": "object",
                    "properties": {
                        "self_harm": {"type": "boolean"},
                        "violence": {"type": "boolean"},
                        "crisis": {"type": "boolean"},
                    },
                    "required": ["self_harm", "violence", "crisis"],
                    "additionalProperties": False,
                },
            },
            "required": ["flagged", "selfHarm", "harmOthers", "crisis", "categories"],
            "additionalProperties": False,
        },
    },
}
