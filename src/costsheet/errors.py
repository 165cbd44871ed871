"""Exceptions raised by the import pipeline."""

from enum import Enum
from typing import Optional


class ImportPipelineError(Exception):
    """Base class for failures that abort an import invocation.

    ``message`` is user facing and is what the orchestrator surfaces when it
    returns to the upload step.
    """

    code = "import_failed"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EmptyInputError(ImportPipelineError):
    """The uploaded sheet has too few rows to contain a budget."""

    code = "empty_input"


class FormatNotRecognizedError(ImportPipelineError):
    """Required budget sheet columns could not be located."""

    code = "format_not_recognized"

    def __init__(
        self,
        message: str,
        missing_columns: Optional[list[str]] = None,
        detected_format: str = "unknown",
    ):
        self.missing_columns = list(missing_columns or [])
        self.detected_format = detected_format
        super().__init__(message)


class OracleFailure(str, Enum):
    """Why the classification service could not be used."""

    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    AUTH = "auth"
    CREDITS_EXHAUSTED = "credits_exhausted"
    CONFIGURATION = "configuration"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UNAVAILABLE = "unavailable"

    @property
    def retryable(self) -> bool:
        return self in (
            OracleFailure.TIMEOUT,
            OracleFailure.RATE_LIMITED,
            OracleFailure.UNAVAILABLE,
        )


_ORACLE_MESSAGES = {
    OracleFailure.TIMEOUT: (
        "The classification service timed out after {attempts} attempt(s). "
        "Try the import again in a moment."
    ),
    OracleFailure.RATE_LIMITED: (
        "The classification service is rate limiting requests "
        "(gave up after {attempts} attempt(s)). Wait a minute and try again."
    ),
    OracleFailure.AUTH: (
        "The classification service rejected the configured credentials. "
        "Check the API key for the selected provider."
    ),
    OracleFailure.CREDITS_EXHAUSTED: (
        "The classification service account has run out of credits. "
        "Add credits or switch provider before importing."
    ),
    OracleFailure.CONFIGURATION: "The classification service is not configured.",
    OracleFailure.PAYLOAD_TOO_LARGE: (
        "The sheet has too much content to classify in one request. "
        "Remove unrelated tabs or rows and try again."
    ),
    OracleFailure.UNAVAILABLE: (
        "The classification service is unavailable "
        "(gave up after {attempts} attempt(s))."
    ),
}


class OracleUnavailableError(ImportPipelineError):
    """The classification call failed and retries are exhausted."""

    code = "oracle_unavailable"

    def __init__(
        self,
        cause: OracleFailure,
        attempts: int = 1,
        detail: Optional[str] = None,
    ):
        self.cause = cause
        self.attempts = attempts
        self.detail = detail
        message = _ORACLE_MESSAGES[cause].format(attempts=attempts)
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class OracleMalformedError(ImportPipelineError):
    """The classification response could not be read as a line item list."""

    code = "oracle_malformed"


class InvalidTransitionError(Exception):
    """An orchestrator operation was called in the wrong import step."""

    pass
