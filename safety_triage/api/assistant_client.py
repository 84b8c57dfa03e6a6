"""
AI generation capability client.

Only the moderation gateway calls this client, and only after a
message has passed screening.
"""

from typing import Optional

import httpx

from safety_triage.api.llm_client import CompletionClient
from safety_triage.api.models import ChatCompletionRequest, CompletionMessage
from safety_triage.api.exceptions import MalformedReplyError
from safety_triage.api.prompts import build_assistant_system_prompt
from safety_triage.config import AssistantConfig
from safety_triage.safety.models import ChatMessage
from safety_triage.utils.logging_config import setup_logging

logger = setup_logging("assistant_client")


class AssistantClient(CompletionClient):
    """
    Client for the navigation assistant model.

    Example:
        client = AssistantClient()
        text = await client.generate(ChatMessage(role="user", content="What is CBT?"))
    """

    def __init__(
        self,
        config: Optional[AssistantConfig] = None,
        mock_mode: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(config or AssistantConfig(), mock_mode, transport)
        logger.info(f"AssistantClient initialized (mock_mode={self.mock_mode})")

    async def generate(self, message: ChatMessage) -> str:
        """
        Generate a navigation reply.

        Args:
            message: Screened user message

        Returns:
            str: Assistant reply text

        Raises:
            CapabilityError: If the capability fails or returns no text
        """
        if self.mock_mode:
            return self._mock_generate(message)

        request = ChatCompletionRequest(
            model=self.config.model,
            messages=[
                CompletionMessage(
                    role="system",
                    content=build_assistant_system_prompt(message.region_code)
                ),
                CompletionMessage(role="user", content=message.content),
            ],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens
        )

        response = await self._chat_completion(request)
        if not response.choices or not response.choices[0].message.content:
            raise MalformedReplyError("Assistant reply was empty")

        return response.choices[0].message.content

    def _mock_generate(self, message: ChatMessage) -> str:
        """Generate mock reply for testing."""
        return (
            "[MOCK] I can help you explore therapy options, insurance coverage "
            "and how to search for a provider near you."
        )
