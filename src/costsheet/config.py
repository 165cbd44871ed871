"""Configuration management for costsheet."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


DEFAULT_STOP_MARKERS = [
    "total cost",
    "total contract",
    "total job proposal",
    "subcontractor expenses",
    "sub expenses",
    "expenses",
    "expense tracking",
    "expense log",
    "rcg labor",
    "labor tracking",
    "timecard",
    "payroll",
    "reconciliation",
    "construction contract",
    "terms and conditions",
    "client signature",
    "signature",
    "hereby",
    "contingency",
]


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


def _parse_stop_markers() -> list[str]:
    """Parse the end-of-line-items marker vocabulary from the environment."""
    markers_env = os.getenv("STOP_MARKERS")
    if markers_env:
        markers = [m.strip().lower() for m in markers_env.split(",") if m.strip()]
        if markers:
            return markers
    return list(DEFAULT_STOP_MARKERS)


class Settings(BaseModel):
    """Application settings."""

    # Classification provider ('anthropic', 'openrouter' or 'offline')
    llm_provider: str = os.getenv("LLM_PROVIDER", "anthropic")

    # Anthropic API key (required when LLM_PROVIDER=anthropic)
    anthropic_api_key: Optional[str] = os.getenv("ANTHROPIC_API_KEY")

    # OpenRouter API configuration (required when LLM_PROVIDER=openrouter)
    openrouter_api_key: Optional[str] = os.getenv("OPENROUTER_API_KEY")
    openrouter_model: str = os.getenv("OPENROUTER_MODEL", "anthropic/claude-3.5-sonnet")

    # Classifier model configuration
    model_name: str = os.getenv("MODEL_NAME", "claude-sonnet-4-20250514")
    classifier_max_tokens: int = int(os.getenv("CLASSIFIER_MAX_TOKENS", "8192"))
    use_json_mode: bool = os.getenv("USE_JSON_MODE", "true").lower() == "true"

    # Oracle call bounds - the only suspending step of an import
    oracle_timeout_seconds: float = float(os.getenv("ORACLE_TIMEOUT_SECONDS", "60"))
    oracle_max_attempts: int = int(os.getenv("ORACLE_MAX_ATTEMPTS", "2"))
    oracle_retry_backoff_seconds: float = float(os.getenv("ORACLE_RETRY_BACKOFF_SECONDS", "1.0"))
    payload_max_chars: int = int(os.getenv("PAYLOAD_MAX_CHARS", "60000"))
    max_oracle_items: int = int(os.getenv("MAX_ORACLE_ITEMS", "600"))

    # Sheet layout detection
    header_scan_rows: int = int(os.getenv("HEADER_SCAN_ROWS", "20"))
    min_header_signals: int = int(os.getenv("MIN_HEADER_SIGNALS", "3"))
    empty_row_run: int = int(os.getenv("EMPTY_ROW_RUN", "3"))
    max_import_rows: int = int(os.getenv("MAX_IMPORT_ROWS", "300"))
    stop_markers: list[str] = _parse_stop_markers()

    # Validation and financial tolerances
    max_description_chars: int = int(os.getenv("MAX_DESCRIPTION_CHARS", "200"))
    price_tolerance: float = float(os.getenv("PRICE_TOLERANCE", "0.01"))
    total_tolerance: float = float(os.getenv("TOTAL_TOLERANCE", "1.0"))
    markup_inversion_ratio: float = float(os.getenv("MARKUP_INVERSION_RATIO", "0.9"))

    # Labor rate defaults offered by the CLI and API when the caller omits them
    default_billing_rate: float = float(os.getenv("DEFAULT_BILLING_RATE", "75"))
    default_actual_cost_rate: float = float(os.getenv("DEFAULT_ACTUAL_COST_RATE", "35"))

    # Oracle call logging
    enable_call_logging: bool = os.getenv("ENABLE_CALL_LOGGING", "true").lower() == "true"
    call_log_path: Path = Path(os.getenv("CALL_LOG_PATH", "logs/oracle_calls.jsonl"))

    # Review sessions held by the HTTP surface
    session_ttl_minutes: int = int(os.getenv("SESSION_TTL_MINUTES", "30"))

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"

    # CORS settings (comma-separated list of allowed origins, or * for all)
    cors_allow_origins: list[str] = _parse_cors_origins()

    @property
    def classifier_model(self) -> str:
        """Model identifier for the configured provider."""
        if self.llm_provider == "openrouter":
            return self.openrouter_model
        return self.model_name


settings = Settings()
