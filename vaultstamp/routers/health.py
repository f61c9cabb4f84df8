"""
Health & Metrics Router

Endpoints:
- /healthz - Liveness check (is the process running?)
- /readyz - Readiness check (can the registry serve traffic?)
- /metrics/json - Registry statistics
"""

import time
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Depends

from vaultstamp.core.config import Settings, get_settings
from vaultstamp.routers.deps import get_file_registry
from vaultstamp.services.file_registry import FileRegistryService

router = APIRouter()

_start_time = time.time()


@router.get("/healthz")
async def health_check():
    """Liveness probe. Returns 200 while the process is alive."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/readyz")
async def readiness_check(
    settings: Settings = Depends(get_settings),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """
    Readiness probe.
    Checks the registry is reachable and, when persistence is configured,
    that the snapshot directory is writable.
    """
    checks = {"registry": True}

    if settings.data_dir:
        data_dir = Path(settings.data_dir)
        writable = False
        if data_dir.is_dir():
            try:
                test_file = data_dir / ".write_test"
                test_file.write_text("test")
                test_file.unlink()
                writable = True
            except OSError:
                writable = False
        checks["data_dir"] = writable

    try:
        registry.get_statistics()
    except Exception:
        checks["registry"] = False

    return {
        "status": "ready" if all(checks.values()) else "degraded",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/metrics/json")
async def metrics_json(
    settings: Settings = Depends(get_settings),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """Registry statistics as JSON."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "uptime_seconds": round(time.time() - _start_time, 2),
        "registry": registry.get_statistics(),
    }
