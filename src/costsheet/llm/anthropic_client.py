"""Anthropic LLM client."""

from anthropic import Anthropic

from .base import LLMClient, LLMResponse


class AnthropicClient(LLMClient):
    """Anthropic Claude client."""

    provider = "anthropic"

    def __init__(self, api_key: str, timeout: float = 60.0):
        # Retries are handled by the classification oracle
        self.client = Anthropic(api_key=api_key, timeout=timeout, max_retries=0)

    def create_message(
        self,
        messages: list[dict],
        system: str,
        max_tokens: int,
        model: str,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Create a message with Claude.

        The Messages API has no JSON response mode; the system prompt asks
        for JSON and the caller parses it.
        """
        response = self.client.messages.create(
            model=model,
            max_tokens=max_tokens,
            system=system,
            messages=messages,
        )

        return LLMResponse(
            content=response.content,
            stop_reason=response.stop_reason,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            }
        )
