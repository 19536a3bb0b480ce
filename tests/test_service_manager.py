from __future__ import annotations

import asyncio
from collections.abc import Iterator
from pathlib import Path

import pytest

from formschema_mcp.services.form_schema_service import FormSchemaService
from formschema_mcp.services.service_manager import FormSchemaServiceManager
from formschema_mcp.services.state import ServiceInitPhase


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("FORMSCHEMA_MCP_DB_SCHEMA", "FORMSCHEMA_MCP_MAX_COLUMNS"):
        monkeypatch.delenv(name, raising=False)
    yield
    FormSchemaServiceManager.reset_instance()


def test_get_instance_is_a_singleton_until_reset() -> None:
    first = FormSchemaServiceManager.get_instance()
    assert FormSchemaServiceManager.get_instance() is first

    FormSchemaServiceManager.reset_instance()

    assert FormSchemaServiceManager.get_instance() is not first


def test_service_is_unavailable_before_initialization() -> None:
    manager = FormSchemaServiceManager()
    assert manager.status().phase is ServiceInitPhase.IDLE

    with pytest.raises(RuntimeError, match="in progress"):
        asyncio.run(manager.get_form_schema_service())


def test_background_initialization_becomes_ready(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("FORMSCHEMA_MCP_DATABASE_URL", f"sqlite:///{tmp_path / 'forms.db'}")
    manager = FormSchemaServiceManager()

    async def _run() -> tuple[bool, FormSchemaService]:
        manager.start_background_initialization()
        manager.start_background_initialization()
        ready = await manager.ensure_ready(wait_timeout=30)
        return ready, await manager.get_form_schema_service()

    ready, service = asyncio.run(_run())

    assert ready
    state = manager.status()
    assert state.phase is ServiceInitPhase.READY
    assert state.attempts == 1
    assert state.completed_at is not None
    assert service.store.schema_name == "main"

    asyncio.run(manager.shutdown())
    assert manager.status().phase is ServiceInitPhase.STOPPED
    with pytest.raises(RuntimeError, match="stopped"):
        asyncio.run(manager.get_form_schema_service())


def test_missing_database_url_fails_initialization(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FORMSCHEMA_MCP_DATABASE_URL", raising=False)
    manager = FormSchemaServiceManager()

    async def _run() -> bool:
        manager.start_background_initialization()
        return await manager.ensure_ready(wait_timeout=30)

    assert asyncio.run(_run()) is False
    state = manager.status()
    assert state.phase is ServiceInitPhase.FAILED
    assert state.error_message is not None
    assert "FORMSCHEMA_MCP_DATABASE_URL" in state.error_message
    with pytest.raises(RuntimeError, match="initialization failure"):
        asyncio.run(manager.get_form_schema_service())
