"""
Webhook-triggered deployment service.

Receives deploy notifications over HTTP (TCP, unix socket, or a systemd
activated socket), authenticates them per target, and runs the target's
deploy command with the latest notified version.
"""

import os
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from constants import SD_LISTEN_FDS_START
from core.config import Settings
from core.container import container
from core.health import get_health_status, set_startup_time
from core.logging import configure_logging, get_logger
from middleware.auth import AuthMiddleware
from routers import targets, webhook

# Initialize settings and logging
settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)

# Suppress noisy loggers
import logging
logging.getLogger("uvicorn").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    set_startup_time()
    registry = container.target_registry()
    manager = container.deployment_manager()
    container.authenticator()
    logger.info("Webhook deployer started", targets=registry.names(),
                webhook_prefix=settings.webhook_prefix)

    yield

    # Shutdown: refuse new notifications, let running deploys finish
    await manager.shutdown(container.settings().shutdown_grace)
    logger.info("Services shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="hookdeploy",
    version="1.0.0",
    description="Webhook-triggered deployments with per-target coalescing",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled exception: {type(e).__name__}: {str(e)}",
                         path=request.url.path, exc_info=True)
            # No diagnostic detail for webhook callers
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": "Internal server error"}
            )


app.add_middleware(AuthMiddleware)
app.add_middleware(CatchAllExceptionsMiddleware)

# Include routers
app.include_router(webhook.router, prefix=f"/{settings.webhook_prefix}")
app.include_router(targets.router)


@app.get("/health")
async def health_check():
    """Liveness and basic counters."""
    return get_health_status(
        container.settings(),
        container.target_registry(),
        container.deployment_manager(),
    )


def listener_options(settings: Settings) -> Dict[str, Any]:
    """uvicorn bind options: systemd socket, unix socket, or host/port."""
    if settings.systemd_socket:
        listen_pid = os.getenv("LISTEN_PID")
        listen_fds = int(os.getenv("LISTEN_FDS", "0"))
        if listen_fds < 1 or (listen_pid and int(listen_pid) != os.getpid()):
            raise RuntimeError("SYSTEMD_SOCKET is set but no socket was passed by systemd")
        return {"fd": SD_LISTEN_FDS_START}
    if settings.unix_socket:
        return {"uds": settings.unix_socket}
    return {"host": settings.host, "port": settings.port}


def proxy_options(settings: Settings) -> Dict[str, Any]:
    """uvicorn proxy header options so the caller address survives nginx.

    Clients on a unix or systemd socket have no address to check, so those
    listeners trust any forwarding peer unless told otherwise.
    """
    allow = settings.forwarded_allow_ips
    if allow is None:
        allow = "*" if (settings.systemd_socket or settings.unix_socket) else "127.0.0.1"
    return {"proxy_headers": True, "forwarded_allow_ips": allow}


def run() -> None:
    """Console entry point."""
    import uvicorn
    options = listener_options(settings)
    logger.info("Starting webhook deployer", debug=settings.debug, **options)
    # Single worker: coalescing state lives in this process
    uvicorn.run(
        app,
        workers=1,
        log_level=settings.log_level.lower(),
        access_log=settings.debug,
        **proxy_options(settings),
        **options,
    )


if __name__ == "__main__":
    run()
