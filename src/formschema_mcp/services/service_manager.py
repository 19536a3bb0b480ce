"""Form schema service manager for formschema-mcp.

Provides a singleton `FormSchemaService` with background initialization during
FastMCP lifespan. Ensures exactly-once startup per process and fast-fails
while initializing.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import replace
import hashlib
import threading
import time
from typing import ClassVar

from fastmcp.utilities.logging import get_logger
import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from formschema_mcp.schema_tools.exceptions import StoreUnavailableError
from formschema_mcp.services.config_service import ConfigService
from formschema_mcp.services.form_schema_service import FormSchemaService
from formschema_mcp.services.state import (
    INIT_NOT_READY_PHASES,
    ServiceInitPhase,
    ServiceInitState,
)


class FormSchemaServiceManager:
    """Singleton manager for the FormSchemaService instance.

    This manager ensures that FormSchemaService is initialized once during
    FastMCP lifespan startup and provides thread-safe access throughout
    the session lifecycle.
    """

    _instance: ClassVar[FormSchemaServiceManager | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        """Initialize the form schema service manager."""
        self._service: FormSchemaService | None = None
        self._shutdown_lock = asyncio.Lock()
        self._logger = get_logger(__name__)

        self._thread_lock = threading.Lock()
        self._init_thread: threading.Thread | None = None
        self._thread_ready = threading.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._state = ServiceInitState(phase=ServiceInitPhase.IDLE)

    @classmethod
    def get_instance(cls) -> FormSchemaServiceManager:
        """Get the singleton instance of FormSchemaServiceManager.

        Returns:
            FormSchemaServiceManager: The singleton instance
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (primarily for testing)."""
        with cls._lock:
            cls._instance = None

    def start_background_initialization(self) -> None:
        """Start background initialization exactly once without blocking."""
        with self._thread_lock:
            if self._state.phase in {
                ServiceInitPhase.STARTING,
                ServiceInitPhase.RUNNING,
                ServiceInitPhase.READY,
            }:
                self._logger.debug("Initialization already %s; skipping start", self._state.phase)
                return
            if self._state.phase in {ServiceInitPhase.FAILED, ServiceInitPhase.STOPPED}:
                self._logger.warning(
                    "Initialization in phase %s; not restarting", self._state.phase
                )
                return

            self._state = replace(
                self._state, phase=ServiceInitPhase.STARTING, started_at=time.time()
            )
            self._thread_ready.clear()
            self._loop = asyncio.get_running_loop()

            def _runner() -> None:
                self._state = replace(self._state, phase=ServiceInitPhase.RUNNING)
                try:
                    self._initialize_sync()
                except (
                    ValueError,
                    RuntimeError,
                    OSError,
                    SQLAlchemyError,
                    StoreUnavailableError,
                ) as exc:
                    self._state = replace(
                        self._state,
                        phase=ServiceInitPhase.FAILED,
                        error_message=str(exc),
                        completed_at=time.time(),
                        attempts=self._state.attempts + 1,
                    )
                    self._logger.exception("FormSchemaService initialization failed")
                else:
                    self._state = replace(
                        self._state,
                        phase=ServiceInitPhase.READY,
                        completed_at=time.time(),
                        attempts=self._state.attempts + 1,
                    )
                finally:
                    self._thread_ready.set()
                    if self._loop is not None:
                        with contextlib.suppress(RuntimeError):
                            self._loop.call_soon_threadsafe(lambda: None)

            self._init_thread = threading.Thread(
                target=_runner, name="form-schema-init", daemon=True
            )
            self._init_thread.start()

    async def ensure_ready(self, wait_timeout: float | None = None) -> bool:
        """Wait for initialization completion.

        Returns True when READY. Returns False on timeout or FAILED.
        """
        phase = self._state.phase
        if phase is ServiceInitPhase.READY:
            return True
        if phase is ServiceInitPhase.FAILED:
            return False
        await asyncio.to_thread(self._thread_ready.wait, wait_timeout)
        return self._state.phase is ServiceInitPhase.READY

    async def get_form_schema_service(self) -> FormSchemaService:
        """Get the initialized FormSchemaService instance.

        Raises:
            RuntimeError: If the service is not initialized or initialization failed
        """
        phase = self._state.phase
        if phase in INIT_NOT_READY_PHASES:
            self._logger.info("FormSchemaService requested while initializing (phase=%s)", phase)
            msg = "FormSchemaService initialization in progress"
            raise RuntimeError(msg)
        if phase is ServiceInitPhase.FAILED:
            self._logger.error(
                "FormSchemaService initialization previously failed: %s",
                self._state.error_message,
            )
            msg = "FormSchemaService is not available due to initialization failure"
            raise RuntimeError(msg)
        if phase is ServiceInitPhase.STOPPED:
            msg = "FormSchemaService has been stopped"
            raise RuntimeError(msg)

        if self._service is None:
            msg = "FormSchemaService instance is unexpectedly None"
            raise RuntimeError(msg)
        return self._service

    async def shutdown(self) -> None:
        """Shutdown the FormSchemaService and dispose of its engine."""
        async with self._shutdown_lock:
            if self._service is not None:
                try:
                    self._logger.info("Shutting down FormSchemaService…")
                    self._service.engine.dispose()
                    self._service = None
                    self._logger.info("FormSchemaService shutdown completed")
                except (OSError, RuntimeError, SQLAlchemyError) as exc:
                    self._logger.warning("Error during FormSchemaService shutdown: %s", exc)
                finally:
                    self._state = replace(self._state, phase=ServiceInitPhase.STOPPED)

    def status(self) -> ServiceInitState:
        """Return a snapshot of the initialization state."""
        return self._state

    # ---- internal ------------------------------------------------------------

    def _initialize_sync(self) -> None:
        """Perform synchronous initialization work. Runs in background thread."""
        self._logger.info("Starting FormSchemaService initialization…")

        database_url = ConfigService.get_database_url()
        fp = hashlib.sha256(database_url.encode("utf-8")).hexdigest()[:10]
        self._logger.debug("Using database fingerprint: %s", fp)

        engine = ConfigService.create_database_engine(database_url)
        self._logger.debug("Testing database connectivity…")
        with engine.connect() as conn:
            conn.execute(sa.text("SELECT 1"))

        config = ConfigService.get_form_schema_config()
        self._service = FormSchemaService(engine, config)
        self._logger.info(
            "FormSchemaService ready (schema %s, max %d columns per table)",
            self._service.store.schema_name,
            config.max_columns,
        )
