"""Deployment state - per-target slots and run records."""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, Dict, Any, Optional

from models.targets import TargetConfig


class RunStatus(str, Enum):
    """Outcome of a single deploy run."""
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Notification:
    """One inbound "deploy this version" signal."""
    target: str
    version: str
    received_at: str = field(default_factory=lambda: datetime.now().isoformat())
    source: Optional[str] = None


@dataclass
class ExecutionResult:
    """Result of a successful deploy command."""
    exit_code: int
    output: str
    duration: float


@dataclass
class RunRecord:
    """Info about one deploy run of a target."""
    run_id: str
    target: str
    version: str
    status: RunStatus = RunStatus.RUNNING
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    finished_at: Optional[str] = None
    duration: Optional[float] = None
    exit_code: Optional[int] = None
    output: str = ""
    error: Optional[str] = None

    def finish(self, status: RunStatus, duration: float,
               exit_code: Optional[int] = None, output: str = "",
               error: Optional[str] = None) -> None:
        self.status = status
        self.finished_at = datetime.now().isoformat()
        self.duration = round(duration, 4)
        self.exit_code = exit_code
        self.output = output
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "run_id": self.run_id,
            "target": self.target,
            "version": self.version,
            "status": self.status.value,
            "started_at": self.started_at,
        }
        if self.finished_at:
            d["finished_at"] = self.finished_at
            d["duration"] = self.duration
        if self.exit_code is not None:
            d["exit_code"] = self.exit_code
        if self.error:
            d["error"] = self.error
        if self.output:
            d["output"] = self.output
        return d


@dataclass
class TargetSlot:
    """Mutable per-target state owned by the deployment manager.

    `pending_version` is None when no notification is waiting. `running` is
    the run lock: at most one run loop task exists per slot. Both are only
    touched while holding `lock`.
    """
    target: TargetConfig
    history: Deque[RunRecord]
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    pending_version: Optional[str] = None
    running: bool = False
    task: Optional[asyncio.Task] = None
    current: Optional[RunRecord] = None
    notifications: int = 0
    coalesced: int = 0

    @classmethod
    def create(cls, target: TargetConfig, history_size: int) -> "TargetSlot":
        return cls(target=target, history=deque(maxlen=history_size))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.name,
            "state": "running" if self.running else "idle",
            "pending_version": self.pending_version,
            "current_run": self.current.to_dict() if self.current else None,
            "notifications": self.notifications,
            "coalesced": self.coalesced,
            "runs": [r.to_dict() for r in reversed(self.history)],
        }
