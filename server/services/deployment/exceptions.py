"""Deployment exception hierarchy."""

from typing import Optional


class DeploymentError(Exception):
    """Base exception for all deployment-related errors."""


class Unauthorized(DeploymentError):
    """Unknown target or secret mismatch."""


class MalformedRequest(DeploymentError):
    """Webhook request is missing required fields or carries invalid ones."""


class InternalUnavailable(DeploymentError):
    """The service cannot accept notifications (e.g. shutting down)."""


class TargetConfigError(DeploymentError):
    """Invalid targets configuration."""


class DeployActionFailed(DeploymentError):
    """The external deploy action failed to start, exited non-zero or timed out."""

    def __init__(self, target: str, version: str, cause: str,
                 exit_code: Optional[int] = None, output: str = ""):
        self.target = target
        self.version = version
        self.cause = cause
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"[{target}@{version or '-'}] {cause}")
