from fastapi import APIRouter, Depends
import psutil
from datetime import datetime, UTC

from ...dependencies import (
    get_app_state,
    get_settings,
    get_page_fetcher,
    ApplicationState
)
from ...models.responses import HealthResponse
from ...config import Settings
from ...services.page_fetcher import PageFetcher

router = APIRouter()


@router.get("/health/detailed", response_model=HealthResponse)
async def detailed_health_check(
    app_state: ApplicationState = Depends(get_app_state),
    settings: Settings = Depends(get_settings),
    fetcher: PageFetcher = Depends(get_page_fetcher)
):
    """
    Detailed health check with system information.

    Returns comprehensive health information including:
    - System metrics (CPU, memory, disk)
    - Application statistics
    - HTTP client status
    """
    uptime = app_state.get_uptime()

    try:
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage('/')

        system_info = {
            "cpu_percent": psutil.cpu_percent(interval=None),
            "memory_total": memory.total,
            "memory_available": memory.available,
            "memory_percent": memory.percent,
            "disk_total": disk.total,
            "disk_free": disk.free,
            "disk_percent": (disk.used / disk.total) * 100
        }
    except (psutil.Error, OSError):
        system_info = {"error": "Unable to fetch system metrics"}

    details = {
        "system": system_info,
        "application": {
            "uptime_seconds": uptime,
            "total_requests": app_state.request_count,
            "analyses_completed": app_state.analyses_completed,
            "analyses_failed": app_state.analyses_failed,
            "environment": settings.environment,
            "debug_mode": settings.debug
        },
        "http_client": {
            "open": fetcher.is_open,
            "max_html_size": fetcher.max_html_size
        }
    }

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=settings.app_version,
        uptime=uptime,
        details=details
    )


@router.get("/health/quick")
async def quick_health_check():
    """Quick health check for load balancers."""
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


@router.get("/health/config")
async def config_health(
    settings: Settings = Depends(get_settings)
):
    """Get configuration status (sanitized for security)."""
    return {
        "environment": settings.environment,
        "debug": settings.debug,
        "rate_limiting": {
            "enabled": True,
            "requests_per_window": settings.rate_limit_requests,
            "window_seconds": settings.rate_limit_window
        },
        "fetch": {
            "request_timeout": settings.request_timeout,
            "connect_timeout": settings.connect_timeout,
            "follow_redirects": settings.follow_redirects,
            "max_redirects": settings.max_redirects,
            "max_html_size": settings.max_html_size
        },
        "logging": {
            "level": settings.log_level,
            "file_logging": settings.log_to_file
        }
    }
