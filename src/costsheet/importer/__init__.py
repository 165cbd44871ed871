"""Import pipeline, review flow and session storage."""

from .models import ImportResult, ImportStep
from .pipeline import ImportPipeline
from .orchestrator import ImportOrchestrator
from .sessions import ImportSessionStore

__all__ = [
    "ImportResult",
    "ImportStep",
    "ImportPipeline",
    "ImportOrchestrator",
    "ImportSessionStore",
]
