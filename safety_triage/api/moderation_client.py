"""
Moderation capability client.

Sends user text to an OpenAI-compatible model with a strict JSON
schema and parses the reply into a ModerationVerdict. Raises on any
failure; the gateway decides what a failure means.
"""

import json
from typing import Optional

import httpx
from pydantic import ValidationError

from safety_triage.api.llm_client import CompletionClient
from safety_triage.api.models import (
    ChatCompletionRequest, CompletionMessage, ModerationPayload,
    MODERATION_RESPONSE_FORMAT, extract_json_from_text
)
from safety_triage.api.exceptions import MalformedReplyError
from safety_triage.api.prompts import MODERATION_SYSTEM_PROMPT, build_moderation_user_prompt
from safety_triage.config import ModerationConfig
from safety_triage.safety.models import ModerationVerdict
from safety_triage.utils.logging_config import setup_logging

logger = setup_logging("moderation_client")

# Mock-mode keyword lists, checked in this order
_MOCK_CRISIS_KEYWORDS = {
    "self_harm": ["suicide", "kill myself", "end my life", "want to die", "hurt myself", "cutting"],
    "violence": ["kill someone", "hurt someone", "murder"],
    "crisis": ["overdose", "emergency", "in danger"],
}
_MOCK_FLAGGED_KEYWORDS = ["weapon", "drugs", "hate"]


class ModerationClient(CompletionClient):
    """
    Client for the external content-safety capability.

    Example:
        client = ModerationClient()
        verdict = await client.screen("I've been feeling anxious lately")
        if verdict.crisis_signal:
            ...
    """

    def __init__(
        self,
        config: Optional[ModerationConfig] = None,
        mock_mode: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(config or ModerationConfig(), mock_mode, transport)
        logger.info(f"ModerationClient initialized (mock_mode={self.mock_mode})")

    async def screen(self, text: str) -> ModerationVerdict:
        """
        Classify a message.

        Args:
            text: Raw user text (truncated before sending)

        Returns:
            ModerationVerdict: Parsed verdict

        Raises:
            CapabilityError: If the capability fails or replies with something
                that is not a valid moderation result
        """
        if self.mock_mode:
            return self._mock_screen(text)

        request = ChatCompletionRequest(
            model=self.config.model,
            messages=[
                CompletionMessage(role="system", content=MODERATION_SYSTEM_PROMPT),
                CompletionMessage(
                    role="user",
                    content=build_moderation_user_prompt(text, self.config.max_input_chars)
                ),
            ],
            temperature=0.0,
            max_tokens=200,
            response_format=MODERATION_RESPONSE_FORMAT
        )

        response = await self._chat_completion(request)
        if not response.choices:
            raise MalformedReplyError("Moderation reply had no choices")

        return self.parse_verdict(response.choices[0].message.content)

    @staticmethod
    def parse_verdict(content: str) -> ModerationVerdict:
        """
        Parse a moderation reply.

        Raises:
            MalformedReplyError: If the reply is empty or does not match
                the moderation schema
        """
        if not content or not content.strip():
            raise MalformedReplyError("Empty moderation reply")

        json_str = extract_json_from_text(content)
        if not json_str:
            raise MalformedReplyError("Moderation reply contained no JSON object")

        try:
            payload = ModerationPayload(**json.loads(json_str))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            raise MalformedReplyError(f"Malformed moderation reply: {type(e).__name__}")

        return payload.to_verdict()

    def _mock_screen(self, text: str) -> ModerationVerdict:
        """Keyword-based stand-in for local development and tests."""
        lowered = text[:self.config.max_input_chars].lower()

        categories = frozenset(
            category
            for category, keywords in _MOCK_CRISIS_KEYWORDS.items()
            if any(keyword in lowered for keyword in keywords)
        )
        if categories:
            return ModerationVerdict(allowed=False, crisis_signal=True, categories=categories)

        if any(keyword in lowered for keyword in _MOCK_FLAGGED_KEYWORDS):
            return ModerationVerdict(allowed=False, crisis_signal=False)

        return ModerationVerdict(allowed=True, crisis_signal=False)
