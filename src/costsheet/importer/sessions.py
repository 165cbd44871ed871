"""In-memory store of imports awaiting review."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from .orchestrator import ImportOrchestrator


class ImportSessionStore:
    """Holds orchestrators between HTTP requests.

    Access goes through an asyncio.Lock. Sessions expire ``ttl`` minutes
    after their last use.
    """

    def __init__(self, default_ttl_minutes: int = 30):
        self._sessions: dict[str, tuple[ImportOrchestrator, datetime]] = {}
        self._default_ttl = default_ttl_minutes
        self._lock = asyncio.Lock()

    def _expiry(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(minutes=self._default_ttl)

    async def add(self, orchestrator: ImportOrchestrator) -> str:
        """
        Store an orchestrator.

        Returns:
            The import ID it is stored under
        """
        async with self._lock:
            self._sessions[orchestrator.import_id] = (orchestrator, self._expiry())
            return orchestrator.import_id

    async def get(self, import_id: str) -> Optional[ImportOrchestrator]:
        """
        Retrieve an orchestrator and extend its expiry.

        Returns:
            The orchestrator if found and not expired, None otherwise
        """
        async with self._lock:
            entry = self._sessions.get(import_id)
            if entry is None:
                return None

            orchestrator, expires_at = entry
            if datetime.now(timezone.utc) > expires_at:
                del self._sessions[import_id]
                return None

            self._sessions[import_id] = (orchestrator, self._expiry())
            return orchestrator

    async def remove(self, import_id: str) -> bool:
        """Remove an import. Returns True if it was present."""
        async with self._lock:
            return self._sessions.pop(import_id, None) is not None

    async def cleanup_expired(self) -> int:
        """
        Remove all expired imports.

        Returns:
            Number of imports removed
        """
        async with self._lock:
            now = datetime.now(timezone.utc)
            expired_ids = [
                import_id
                for import_id, (_, expires_at) in self._sessions.items()
                if now > expires_at
            ]
            for import_id in expired_ids:
                del self._sessions[import_id]
            return len(expired_ids)

    def size(self) -> int:
        """Get the number of stored imports."""
        return len(self._sessions)
