"""
Async HTTP client for OpenAI-compatible chat completion endpoints.

Shared by the moderation and assistant capability clients: owns the
httpx client, retries and error mapping.
"""

import os
import asyncio
from typing import Optional

import httpx

from safety_triage.api.models import ChatCompletionRequest, ChatCompletionResponse
from safety_triage.api.exceptions import (
    CapabilityError, CapabilityAuthError, CapabilityRateLimitError,
    CapabilityTimeoutError, CapabilityServerError, CapabilityConnectionError
)
from safety_triage.utils.logging_config import setup_logging

logger = setup_logging("llm_client")


def resolve_mock_mode(mock_mode: Optional[bool]) -> bool:
    """Fall back to the LLM_TYPE environment variable when unset."""
    if mock_mode is None:
        return os.getenv("LLM_TYPE", "MOCK").upper() == "MOCK"
    return mock_mode


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Seconds from a Retry-After header; None for HTTP-dates or junk."""
    if not value:
        return None
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return None


class CompletionClient:
    """
    Base client for a chat completion capability.

    Subclasses build the request; this class sends it with retries and
    maps HTTP failures onto the CapabilityError hierarchy.
    """

    def __init__(
        self,
        config,
        mock_mode: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            config: ModerationConfig or AssistantConfig
            mock_mode: Whether to answer in-process instead of over HTTP
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.mock_mode = resolve_mock_mode(mock_mode)
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json"
                }
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _chat_completion(
        self,
        request: ChatCompletionRequest
    ) -> ChatCompletionResponse:
        """
        Send chat completion request with retries.

        Args:
            request: Chat completion request

        Returns:
            ChatCompletionResponse: API response
        """
        client = self._ensure_client()
        last_error = None
        attempts = max(1, self.config.max_retries)

        for attempt in range(attempts):
            try:
                response = await client.post(
                    "/chat/completions",
                    json=request.model_dump(exclude_none=True)
                )

                if response.status_code == 200:
                    return ChatCompletionResponse(**response.json())

                self._handle_error_response(response)

            except httpx.TimeoutException:
                last_error = CapabilityTimeoutError("Request timed out")
                logger.warning(f"Request timeout (attempt {attempt + 1})")

            except CapabilityAuthError:
                raise

            except CapabilityError as e:
                last_error = e
                logger.warning(f"API error {e.status_code} (attempt {attempt + 1})")

            except httpx.HTTPError as e:
                last_error = CapabilityConnectionError(type(e).__name__)
                logger.warning(f"Connection error: {type(e).__name__} (attempt {attempt + 1})")

            if attempt < attempts - 1:
                await asyncio.sleep(self.config.retry_delay * (attempt + 1))

        raise last_error or CapabilityError("Max retries exceeded")

    def _handle_error_response(self, response: httpx.Response) -> None:
        """Handle error response from API."""
        status = response.status_code
        message = "Unknown error"
        try:
            error = response.json().get("error")
            if isinstance(error, dict):
                message = error.get("message", message)
        except (ValueError, AttributeError):
            pass

        if status == 401:
            raise CapabilityAuthError(message)
        elif status == 429:
            raise CapabilityRateLimitError(
                message, _parse_retry_after(response.headers.get("Retry-After"))
            )
        elif status >= 500:
            raise CapabilityServerError(message, status)
        else:
            raise CapabilityError(message, status)
