"""Webhook endpoint router for deploy notifications.

    GET|POST|PUT /<prefix>/<secret>/<target>?version=<ref>

Always answers before the deploy runs. Every rejection looks exactly like
an unknown route so callers cannot discover target names or secrets.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from constants import WEBHOOK_METHODS
from core.container import container
from core.logging import get_logger
from services.auth import Authenticator, validate_version
from services.deployment import (
    DeploymentManager,
    InternalUnavailable,
    MalformedRequest,
    Notification,
    Unauthorized,
)

logger = get_logger(__name__)
router = APIRouter(tags=["webhook"])


def get_authenticator() -> Authenticator:
    return container.authenticator()


def get_deployment_manager() -> DeploymentManager:
    return container.deployment_manager()


@router.api_route("/{secret}/{target}", methods=WEBHOOK_METHODS,
                  status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def handle_webhook(
    secret: str,
    target: str,
    request: Request,
    version: Optional[str] = None,
    authenticator: Authenticator = Depends(get_authenticator),
    manager: DeploymentManager = Depends(get_deployment_manager),
):
    """Accept a deploy notification and hand it to the deployment manager."""
    try:
        version = validate_version(version)
        config = authenticator.authenticate(target, secret)
    except (MalformedRequest, Unauthorized):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    notification = Notification(
        target=config.name,
        version=version,
        source=request.client.host if request.client else None,
    )

    try:
        started = await manager.notify(notification)
    except InternalUnavailable:
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    logger.info("Notification accepted", target=config.name, version=version,
                method=request.method, source=notification.source, started=started)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
