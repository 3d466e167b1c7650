"""Authentication middleware for the operator API."""

import hmac
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from constants import PROTECTED_PREFIXES, PUBLIC_PATHS
from core.container import container
from core.logging import get_logger

logger = get_logger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Requires `Authorization: Bearer <ADMIN_TOKEN>` on operator routes.

    Webhook routes authenticate with their path secret instead and are not
    covered here.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not self._is_protected_path(path):
            return await call_next(request)

        settings = container.settings()

        # No token configured - operator API disabled
        if not settings.admin_token:
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated"}
            )

        scheme, _, token = request.headers.get("authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not token:
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated"}
            )

        if not hmac.compare_digest(token.strip().encode(), settings.admin_token.encode()):
            logger.warning("Operator API token rejected", path=path)
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid token"}
            )

        return await call_next(request)

    def _is_protected_path(self, path: str) -> bool:
        """Check if path requires the admin token."""
        if path in PUBLIC_PATHS:
            return False

        for prefix in PROTECTED_PREFIXES:
            if path.startswith(prefix):
                return True

        return False
