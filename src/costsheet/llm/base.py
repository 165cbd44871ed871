"""Base LLM client interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional
from dataclasses import dataclass


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: list[Any]
    stop_reason: str
    usage: Optional[dict] = None

    @property
    def text(self) -> str:
        """Concatenated text blocks of the response."""
        parts = []
        for block in self.content:
            if isinstance(block, dict):
                if block.get("type") == "text":
                    parts.append(block.get("text", ""))
            elif getattr(block, "type", None) == "text":
                # Anthropic SDK content blocks
                parts.append(block.text)
        return "".join(parts)


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    provider = "unknown"

    @abstractmethod
    def create_message(
        self,
        messages: list[dict],
        system: str,
        max_tokens: int,
        model: str,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Create a message with the LLM."""
        pass
