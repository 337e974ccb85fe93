"""Outcome, progress and event types produced by an import run."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Union

from catalog_import.db.models import CatalogEntry
from catalog_import.errors import ErrorKind


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Per-address outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Success:
    url: str
    entry: CatalogEntry

    status = "success"

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "url": self.url, "entry": self.entry.to_dict()}


@dataclass(frozen=True)
class Skipped:
    url: str
    reason: str = "duplicate"

    status = "skipped"

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "url": self.url, "reason": self.reason}


@dataclass(frozen=True)
class Failed:
    url: str
    kind: ErrorKind
    message: str
    detail: Optional[str] = None

    status = "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "url": self.url,
            "kind": self.kind.value,
            "detail": self.detail,
            "message": self.message,
        }


PipelineOutcome = Union[Success, Skipped, Failed]


# ---------------------------------------------------------------------------
# Aggregate progress
# ---------------------------------------------------------------------------

@dataclass
class PipelineProgress:
    """Counters for one run.

    ``success_count + skipped_count + failed_count == current_index`` holds
    after every :meth:`record` call.
    """

    total: int
    current_index: int = 0
    success_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    current_url: str = ""
    state: RunState = RunState.IDLE

    def record(self, outcome: PipelineOutcome) -> None:
        if isinstance(outcome, Success):
            self.success_count += 1
        elif isinstance(outcome, Skipped):
            self.skipped_count += 1
        else:
            self.failed_count += 1
        self.current_index += 1

    def snapshot(self) -> "PipelineProgress":
        """Return an independent copy safe to hand to consumers."""
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "total": self.total,
            "current_index": self.current_index,
            "current_url": self.current_url,
            "success_count": self.success_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
        }


@dataclass(frozen=True)
class PipelineEvent:
    """One item of the run's event stream: a log line, a progress snapshot, or both."""

    log: Optional[str] = None
    progress: Optional[PipelineProgress] = None
