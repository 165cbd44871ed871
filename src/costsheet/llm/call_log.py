"""JSONL log of classification calls."""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


@dataclass
class OracleCallRecord:
    """Record of a single classification call attempt."""

    timestamp: str
    model: str
    provider: str
    attempt: int
    outcome: str
    duration_ms: int
    message_chars: int
    max_tokens: int
    input_tokens: int = 0
    output_tokens: int = 0
    usage_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class OracleCallLogger:
    """Appends one JSON line per classification call attempt."""

    def __init__(self, log_path: Path, enabled: bool = True):
        """Initialize the logger.

        Args:
            log_path: Path to the JSONL log file
            enabled: Whether records are written to disk
        """
        self.log_path = Path(log_path)
        self.enabled = enabled

    def log_call(
        self,
        model: str,
        provider: str,
        attempt: int,
        outcome: str,
        duration_ms: int,
        message_chars: int,
        max_tokens: int,
        usage_data: Optional[Dict[str, Any]] = None,
    ) -> OracleCallRecord:
        """Record one attempt.

        Args:
            outcome: "ok", or the failure cause of the attempt
            usage_data: Raw usage data from the API, when the call succeeded
        """
        usage = usage_data or {}
        record = OracleCallRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            model=model,
            provider=provider,
            attempt=attempt,
            outcome=outcome,
            duration_ms=duration_ms,
            message_chars=message_chars,
            max_tokens=max_tokens,
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            usage_data=usage_data,
        )

        if self.enabled:
            self._write_to_log(record)

        return record

    def _write_to_log(self, record: OracleCallRecord):
        """Write a record to the log file."""
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a") as f:
                f.write(json.dumps(record.to_dict()) + "\n")
        except OSError as e:
            # A failed log write must not fail the import
            logger.warning(f"Failed to write to call log {self.log_path}: {e}")
