"""Health check utilities for daemon monitoring.

Provides uptime tracking and health status for the /health endpoint.
"""
import time
from datetime import datetime
from typing import Dict, Any, TYPE_CHECKING

import psutil

if TYPE_CHECKING:
    from core.config import Settings
    from services.deployment import DeploymentManager
    from services.targets import TargetRegistry

# Module-level startup time tracking
_startup_time: float = 0.0


def set_startup_time() -> None:
    """Record the application startup time. Call once during lifespan startup."""
    global _startup_time
    _startup_time = time.time()


def get_uptime() -> float:
    """Get uptime in seconds since startup."""
    return time.time() - _startup_time if _startup_time else 0.0


def get_memory_mb() -> float:
    """Get current process memory usage in MB."""
    try:
        return psutil.Process().memory_info().rss / (1024 * 1024)
    except psutil.Error:
        return 0.0


def get_health_status(
    settings: "Settings",
    registry: "TargetRegistry",
    manager: "DeploymentManager",
) -> Dict[str, Any]:
    """Get health status for /health endpoint.

    Target names are not listed; /health is unauthenticated.
    """
    return {
        "status": "shutting_down" if manager.is_closed else "OK",
        "service": "hookdeploy",
        "environment": "development" if settings.debug else "production",
        "uptime_seconds": round(get_uptime(), 1),
        "memory_mb": round(get_memory_mb(), 1),
        "targets": len(registry),
        "active_runs": manager.active_runs,
        "timestamp": datetime.now().isoformat(),
    }
