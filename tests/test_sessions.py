"""Tests for the import session store."""

from datetime import datetime, timedelta, timezone

import pytest

from costsheet.importer import ImportOrchestrator, ImportSessionStore
from costsheet.llm import DeterministicOracle


@pytest.fixture
def orchestrator(labor_rates, test_settings) -> ImportOrchestrator:
    return ImportOrchestrator(DeterministicOracle(), labor_rates, test_settings)


def _expire(store: ImportSessionStore, import_id: str):
    orchestrator, _ = store._sessions[import_id]
    store._sessions[import_id] = (orchestrator, datetime.now(timezone.utc) - timedelta(seconds=1))


class TestImportSessionStore:
    """Test ImportSessionStore."""

    @pytest.mark.asyncio
    async def test_add_and_get(self, orchestrator):
        store = ImportSessionStore()

        import_id = await store.add(orchestrator)

        assert import_id == orchestrator.import_id
        assert await store.get(import_id) is orchestrator
        assert store.size() == 1

    @pytest.mark.asyncio
    async def test_get_unknown(self):
        assert await ImportSessionStore().get("missing") is None

    @pytest.mark.asyncio
    async def test_expired_session_is_removed(self, orchestrator):
        store = ImportSessionStore(default_ttl_minutes=5)
        import_id = await store.add(orchestrator)
        _expire(store, import_id)

        assert await store.get(import_id) is None
        assert store.size() == 0

    @pytest.mark.asyncio
    async def test_get_extends_expiry(self, orchestrator):
        store = ImportSessionStore(default_ttl_minutes=5)
        import_id = await store.add(orchestrator)
        _, first_expiry = store._sessions[import_id]

        await store.get(import_id)

        assert store._sessions[import_id][1] >= first_expiry

    @pytest.mark.asyncio
    async def test_remove(self, orchestrator):
        store = ImportSessionStore()
        import_id = await store.add(orchestrator)

        assert await store.remove(import_id) is True
        assert await store.remove(import_id) is False

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, orchestrator, labor_rates, test_settings):
        store = ImportSessionStore()
        kept = ImportOrchestrator(DeterministicOracle(), labor_rates, test_settings)
        expired_id = await store.add(orchestrator)
        await store.add(kept)
        _expire(store, expired_id)

        assert await store.cleanup_expired() == 1
        assert store.size() == 1
        assert await store.get(kept.import_id) is kept
