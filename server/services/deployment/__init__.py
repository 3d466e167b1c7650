"""Deployment module - coalesced, per-target serialized deploy runs."""

from .exceptions import (
    DeploymentError,
    Unauthorized,
    MalformedRequest,
    InternalUnavailable,
    TargetConfigError,
    DeployActionFailed,
)
from .state import Notification, RunRecord, RunStatus, TargetSlot, ExecutionResult
from .executor import DeployExecutor
from .manager import DeploymentManager

__all__ = [
    "DeploymentError",
    "Unauthorized",
    "MalformedRequest",
    "InternalUnavailable",
    "TargetConfigError",
    "DeployActionFailed",
    "Notification",
    "RunRecord",
    "RunStatus",
    "TargetSlot",
    "ExecutionResult",
    "DeployExecutor",
    "DeploymentManager",
]
