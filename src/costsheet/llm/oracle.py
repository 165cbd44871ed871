"""Classification oracle contract and the LLM-backed implementation."""

import asyncio
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import anthropic
import httpx

from ..errors import OracleFailure, OracleMalformedError, OracleUnavailableError
from .anthropic_client import AnthropicClient
from .base import LLMClient
from .call_log import OracleCallLogger
from .models import OracleRequest, OracleResponse
from .openrouter_client import OpenRouterClient
from .prompts import CLASSIFIER_SYSTEM_PROMPT, build_classification_message

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


class ClassificationOracle(ABC):
    """Turns bounded rows into candidate line items."""

    @abstractmethod
    async def classify(self, request: OracleRequest) -> OracleResponse:
        """Classify the rows of one import."""
        pass


def parse_oracle_response(text: str) -> list[Any]:
    """
    Extract the ``lineItems`` list from a classifier reply.

    Markdown code fences and text around the JSON object are tolerated.
    Items are returned as parsed; validation happens downstream.

    Raises:
        OracleMalformedError: If no JSON object with a lineItems list is found
    """
    stripped = (text or "").strip()
    fenced = _CODE_FENCE.match(stripped)
    if fenced:
        stripped = fenced.group(1)

    try:
        data = json.loads(stripped)
    except ValueError:
        start, end = stripped.find("{"), stripped.rfind("}")
        if start == -1 or end <= start:
            raise OracleMalformedError(
                "The classification service did not return JSON. Try the import again."
            )
        try:
            data = json.loads(stripped[start : end + 1])
        except ValueError as e:
            raise OracleMalformedError(
                "The classification service returned JSON that could not be parsed. "
                "Try the import again."
            ) from e

    items = None
    if isinstance(data, dict):
        items = data.get("lineItems", data.get("line_items"))
    if not isinstance(items, list):
        raise OracleMalformedError(
            "The classification response did not contain a lineItems list."
        )
    return items


def _status_failure(status_code: int) -> OracleFailure:
    if status_code == 429:
        return OracleFailure.RATE_LIMITED
    if status_code in (401, 403):
        return OracleFailure.AUTH
    if status_code == 402:
        return OracleFailure.CREDITS_EXHAUSTED
    if status_code == 413:
        return OracleFailure.PAYLOAD_TOO_LARGE
    return OracleFailure.UNAVAILABLE


def classify_failure(exc: BaseException) -> Optional[OracleFailure]:
    """Map a provider exception to a failure cause, or None if it is not one."""
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException, anthropic.APITimeoutError)):
        return OracleFailure.TIMEOUT
    if isinstance(exc, anthropic.RateLimitError):
        return OracleFailure.RATE_LIMITED
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return OracleFailure.AUTH
    if isinstance(exc, anthropic.APIStatusError):
        return _status_failure(exc.status_code)
    if isinstance(exc, anthropic.APIConnectionError):
        return OracleFailure.UNAVAILABLE
    if isinstance(exc, httpx.HTTPStatusError):
        return _status_failure(exc.response.status_code)
    if isinstance(exc, httpx.TransportError):
        return OracleFailure.UNAVAILABLE
    return None


class LLMClassificationOracle(ClassificationOracle):
    """
    Classification through an LLM provider.

    The blocking client call runs in a worker thread and is bounded by
    ``timeout_seconds``. Transient failures retry the whole request up to
    ``max_attempts`` times with a linear backoff.
    """

    def __init__(
        self,
        client: LLMClient,
        model: str,
        max_tokens: int = 8192,
        timeout_seconds: float = 60.0,
        max_attempts: int = 2,
        retry_backoff_seconds: float = 1.0,
        payload_max_chars: int = 60000,
        use_json_mode: bool = True,
        call_logger: Optional[OracleCallLogger] = None,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self.payload_max_chars = payload_max_chars
        self.use_json_mode = use_json_mode
        self.call_logger = call_logger

    async def classify(self, request: OracleRequest) -> OracleResponse:
        message = build_classification_message(request)
        if len(message) > self.payload_max_chars:
            raise OracleUnavailableError(
                OracleFailure.PAYLOAD_TOO_LARGE,
                detail=f"({len(message)} characters, limit {self.payload_max_chars})",
            )

        messages = [{"role": "user", "content": message}]
        logger.info(
            f"Classifying {len(request.bounded_rows)} rows with {self.model} "
            f"({len(message)} chars)"
        )

        for attempt in range(1, self.max_attempts + 1):
            started = time.monotonic()
            try:
                response = await asyncio.wait_for(
                    asyncio.to_thread(
                        self.client.create_message,
                        messages=messages,
                        system=CLASSIFIER_SYSTEM_PROMPT,
                        max_tokens=self.max_tokens,
                        model=self.model,
                        json_mode=self.use_json_mode,
                    ),
                    timeout=self.timeout_seconds,
                )
            except (KeyError, IndexError, TypeError, ValueError) as e:
                self._log_call(attempt, "malformed", started, len(message))
                raise OracleMalformedError(
                    "The classification service returned a response that could not be read."
                ) from e
            except Exception as e:
                cause = classify_failure(e)
                if cause is None:
                    raise
                self._log_call(attempt, cause.value, started, len(message))
                logger.warning(
                    f"Classification attempt {attempt}/{self.max_attempts} failed: "
                    f"{cause.value} ({e})"
                )
                if not cause.retryable or attempt >= self.max_attempts:
                    raise OracleUnavailableError(cause, attempts=attempt) from e
                await asyncio.sleep(self.retry_backoff_seconds * attempt)
                continue

            self._log_call(attempt, "ok", started, len(message), response.usage)
            text = response.text
            if response.stop_reason == "max_tokens":
                logger.warning("Classifier output was cut off at max_tokens")
            return OracleResponse(line_items=parse_oracle_response(text), raw_text=text)

        # The loop either returns or raises
        raise OracleUnavailableError(OracleFailure.UNAVAILABLE, attempts=self.max_attempts)

    def _log_call(
        self,
        attempt: int,
        outcome: str,
        started: float,
        message_chars: int,
        usage: Optional[dict] = None,
    ):
        if self.call_logger is None:
            return
        self.call_logger.log_call(
            model=self.model,
            provider=self.client.provider,
            attempt=attempt,
            outcome=outcome,
            duration_ms=int((time.monotonic() - started) * 1000),
            message_chars=message_chars,
            max_tokens=self.max_tokens,
            usage_data=usage,
        )


def create_classification_oracle(settings, call_logger: Optional[OracleCallLogger] = None):
    """
    Build the oracle selected by ``settings.llm_provider``.

    Raises:
        OracleUnavailableError: If the provider is unknown or has no API key
    """
    from .offline import DeterministicOracle

    provider = settings.llm_provider.strip().lower()
    if provider == "offline":
        return DeterministicOracle()

    if provider == "openrouter":
        if not settings.openrouter_api_key:
            raise OracleUnavailableError(
                OracleFailure.CONFIGURATION,
                detail="OPENROUTER_API_KEY is required when LLM_PROVIDER is 'openrouter'.",
            )
        client = OpenRouterClient(
            api_key=settings.openrouter_api_key, timeout=settings.oracle_timeout_seconds
        )
    elif provider == "anthropic":
        if not settings.anthropic_api_key:
            raise OracleUnavailableError(
                OracleFailure.CONFIGURATION,
                detail="ANTHROPIC_API_KEY is required when LLM_PROVIDER is 'anthropic'.",
            )
        client = AnthropicClient(
            api_key=settings.anthropic_api_key, timeout=settings.oracle_timeout_seconds
        )
    else:
        raise OracleUnavailableError(
            OracleFailure.CONFIGURATION,
            detail=f"Unknown LLM_PROVIDER '{settings.llm_provider}'.",
        )

    if call_logger is None:
        call_logger = OracleCallLogger(
            settings.call_log_path, enabled=settings.enable_call_logging
        )

    return LLMClassificationOracle(
        client=client,
        model=settings.classifier_model,
        max_tokens=settings.classifier_max_tokens,
        timeout_seconds=settings.oracle_timeout_seconds,
        max_attempts=settings.oracle_max_attempts,
        retry_backoff_seconds=settings.oracle_retry_backoff_seconds,
        payload_max_chars=settings.payload_max_chars,
        use_json_mode=settings.use_json_mode,
        call_logger=call_logger,
    )
