"""Operator routes for target state and run history.

Protected by the admin bearer token (see middleware.auth).
"""

from fastapi import APIRouter, Depends, HTTPException

from core.container import container
from services.deployment import DeploymentManager
from services.targets import TargetRegistry

router = APIRouter(prefix="/api/targets", tags=["targets"])


def get_deployment_manager() -> DeploymentManager:
    return container.deployment_manager()


def get_target_registry() -> TargetRegistry:
    return container.target_registry()


@router.get("")
async def list_targets(manager: DeploymentManager = Depends(get_deployment_manager)):
    """State of every target: idle/running, pending version, recent runs."""
    return manager.get_status()


@router.get("/{name}")
async def get_target(
    name: str,
    manager: DeploymentManager = Depends(get_deployment_manager),
    registry: TargetRegistry = Depends(get_target_registry),
):
    """State and redacted configuration of a single target."""
    config = registry.get(name)
    if config is None:
        raise HTTPException(status_code=404, detail=f"Unknown target: {name}")

    return {
        **manager.get_status(name),
        "config": config.redacted(),
    }
