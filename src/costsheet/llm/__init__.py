"""Classification oracle and LLM clients."""

from .base import LLMClient, LLMResponse
from .anthropic_client import AnthropicClient
from .openrouter_client import OpenRouterClient
from .call_log import OracleCallLogger, OracleCallRecord
from .models import BoundedRow, CompoundRowHint, OracleRequest, OracleResponse
from .prompts import CLASSIFIER_SYSTEM_PROMPT, build_classification_message
from .oracle import (
    ClassificationOracle,
    LLMClassificationOracle,
    classify_failure,
    create_classification_oracle,
    parse_oracle_response,
)
from .offline import DeterministicOracle

__all__ = [
    "LLMClient",
    "LLMResponse",
    "AnthropicClient",
    "OpenRouterClient",
    "OracleCallLogger",
    "OracleCallRecord",
    "BoundedRow",
    "CompoundRowHint",
    "OracleRequest",
    "OracleResponse",
    "CLASSIFIER_SYSTEM_PROMPT",
    "build_classification_message",
    "ClassificationOracle",
    "LLMClassificationOracle",
    "classify_failure",
    "create_classification_oracle",
    "parse_oracle_response",
    "DeterministicOracle",
]
