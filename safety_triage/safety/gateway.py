"""
Moderation Gateway for chat screening.

This module provides the ModerationGateway class that screens every
chat message with the external moderation capability before the AI
assistant is allowed to see it.
"""

import asyncio
from typing import Tuple

from safety_triage.safety.models import (
    ChatMessage, ModerationVerdict, ChatOutcome, ChatReply
)
from safety_triage.safety.templates import (
    CRISIS_FALLBACK, SAFETY_TEMPLATE, DISALLOWED_CONTENT_FALLBACK,
    ASSISTANT_UNAVAILABLE, contains_disallowed_content
)
from safety_triage.utils.logging_config import setup_logging

logger = setup_logging("moderation_gateway")


class ModerationGateway:
    """
    Screening layer in front of the AI assistant.

    Three terminal outcomes per message:
      - pass: allowed and no crisis signal; the assistant is invoked
      - crisis: crisis signal set; the assistant is never invoked
      - soft block: disallowed without crisis signal, or the moderation
        capability failed; the assistant is never invoked

    Example:
        gateway = ModerationGateway(ModerationClient(), AssistantClient())
        verdict = await gateway.screen(message)
        reply = await gateway.respond(message, verdict)
    """

    def __init__(
        self,
        moderation,
        assistant,
        moderation_timeout: float = 5.0,
        assistant_timeout: float = 20.0
    ):
        """
        Initialize the gateway.

        Args:
            moderation: Capability with ``async screen(text) -> ModerationVerdict``
            assistant: Capability with ``async generate(message) -> str``
            moderation_timeout: Upper bound on one screening call, in seconds
            assistant_timeout: Upper bound on one generation call, in seconds
        """
        self.moderation = moderation
        self.assistant = assistant
        self.moderation_timeout = moderation_timeout
        self.assistant_timeout = assistant_timeout

        logger.info("ModerationGateway initialized")

    async def screen(self, message: ChatMessage) -> ModerationVerdict:
        """
        Screen a message. Never raises; failures fail closed.

        Args:
            message: The user's chat message

        Returns:
            ModerationVerdict: The capability's verdict, or the
                unavailable verdict (soft block) on timeout or error
        """
        try:
            verdict = await asyncio.wait_for(
                self.moderation.screen(message.content),
                timeout=self.moderation_timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Moderation timed out after {self.moderation_timeout}s; failing closed")
            return ModerationVerdict.unavailable()
        except Exception as e:
            logger.error(f"Moderation failed ({type(e).__name__}); failing closed")
            return ModerationVerdict.unavailable()

        if not isinstance(verdict, ModerationVerdict):
            logger.error(f"Moderation returned {type(verdict).__name__}; failing closed")
            return ModerationVerdict.unavailable()

        return verdict

    async def respond(self, message: ChatMessage, verdict: ModerationVerdict) -> ChatReply:
        """
        Produce the reply for a screened message.

        Args:
            message: The user's chat message
            verdict: Verdict from ``screen``

        Returns:
            ChatReply: Tagged reply; only the PASS outcome involves the assistant
        """
        if verdict.crisis_signal:
            return ChatReply(
                outcome=ChatOutcome.CRISIS,
                content=CRISIS_FALLBACK,
                blocked=False,
                crisis_mode=True
            )

        if not verdict.allowed:
            return ChatReply(
                outcome=ChatOutcome.SOFT_BLOCK,
                content=SAFETY_TEMPLATE,
                blocked=True,
                crisis_mode=False
            )

        return await self._generate(message)

    async def process(self, message: ChatMessage) -> Tuple[ModerationVerdict, ChatReply]:
        """Screen and respond in one call."""
        verdict = await self.screen(message)
        reply = await self.respond(message, verdict)
        return verdict, reply

    async def _generate(self, message: ChatMessage) -> ChatReply:
        """Invoke the assistant for a message that passed screening."""
        try:
            text = await asyncio.wait_for(
                self.assistant.generate(message),
                timeout=self.assistant_timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Assistant timed out after {self.assistant_timeout}s")
            return self._unavailable_reply()
        except Exception as e:
            logger.error(f"Assistant failed ({type(e).__name__})")
            return self._unavailable_reply()

        if not isinstance(text, str) or not text.strip():
            logger.error("Assistant returned an empty reply")
            return self._unavailable_reply()

        if contains_disallowed_content(text):
            logger.warning("Assistant reply contained disallowed clinical content; replaced")
            return ChatReply(
                outcome=ChatOutcome.PASS,
                content=DISALLOWED_CONTENT_FALLBACK,
                blocked=True,
                crisis_mode=False
            )

        return ChatReply(
            outcome=ChatOutcome.PASS,
            content=text,
            blocked=False,
            crisis_mode=False
        )

    @staticmethod
    def _unavailable_reply() -> ChatReply:
        return ChatReply(
            outcome=ChatOutcome.PASS,
            content=ASSISTANT_UNAVAILABLE,
            blocked=True,
            crisis_mode=False
        )
