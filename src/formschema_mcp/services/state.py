"""Typed initialization state for the form schema service.

Internal module providing strongly-typed lifecycle state for
`FormSchemaServiceManager`. Not exposed outside the process.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Final


class ServiceInitPhase(Enum):
    """Initialization phase for the form schema service lifecycle."""

    IDLE = auto()
    STARTING = auto()
    RUNNING = auto()
    READY = auto()
    FAILED = auto()
    STOPPED = auto()


@dataclass(frozen=True)
class ServiceInitState:
    """Snapshot of initialization state with timestamps and error details."""

    phase: ServiceInitPhase
    started_at: float | None = None
    completed_at: float | None = None
    error_message: str | None = None
    attempts: int = 0


INIT_NOT_READY_PHASES: Final[set[ServiceInitPhase]] = {
    ServiceInitPhase.IDLE,
    ServiceInitPhase.STARTING,
    ServiceInitPhase.RUNNING,
}
