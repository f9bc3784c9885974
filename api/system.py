"""
System API routes for the statgrid webapp.

This module provides FastAPI routes for system health and information, the
recent server error log and the grid settings.
"""

import logging
import platform
import sys
import traceback
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from .app_config import app_config
from .shared.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

MAX_ERROR_LOG_ENTRIES = 100

_error_log: Deque[Dict[str, Any]] = deque(maxlen=MAX_ERROR_LOG_ENTRIES)


def log_error(
    endpoint: str,
    message: str,
    level: str = "error",
    details: Optional[str] = None,
    exc: Optional[BaseException] = None,
) -> Dict[str, Any]:
    """Record a server error in the in-memory error log and the logger."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "endpoint": endpoint,
        "message": message,
        "level": level,
        "details": details,
        "traceback": (
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)) if exc else None
        ),
    }
    _error_log.append(entry)
    log_level = logging.CRITICAL if level == "critical" else logging.ERROR
    logger.log(log_level, "%s: %s", endpoint, message)
    return entry


def _get_package_versions() -> Dict[str, str]:
    """Get versions of key packages."""
    packages = {}
    for name in ["fastapi", "pydantic", "uvicorn", "orjson", "platformdirs"]:
        try:
            module = __import__(name)
            packages[name] = getattr(module, "__version__", "unknown")
        except ImportError:
            pass
    return packages


class GridSettingsUpdate(BaseModel):
    """Partial grid settings update."""
    min_rows: Optional[int] = Field(default=None, ge=1)
    min_columns: Optional[int] = Field(default=None, ge=1)
    default_column_width: Optional[int] = Field(default=None, ge=1)
    history_limit: Optional[int] = Field(default=None, ge=1)
    log_level: Optional[str] = None


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    from .grid.session import get_grid_session

    return {
        "status": "healthy",
        "message": "statgrid webapp is running",
        "queue_idle": get_grid_session().queue.is_idle,
    }


@router.get("/system/info")
async def system_info():
    """Get system and environment information."""
    return {
        "python": {
            "version": sys.version,
            "platform": sys.platform,
            "executable": sys.executable,
        },
        "system": {
            "os": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
        },
        "config_path": app_config.get_config_path(),
        "packages": _get_package_versions(),
    }


@router.get("/system/errors")
async def get_errors(limit: int = 50):
    """Get the most recent server errors, newest first."""
    errors = list(_error_log)
    errors.reverse()
    return {"errors": errors[:limit], "total": len(_error_log)}


@router.delete("/system/errors")
async def clear_errors():
    """Clear the server error log."""
    _error_log.clear()
    return {"success": True}


@router.get("/system/settings")
async def get_settings():
    """Get the grid settings in effect."""
    from .grid.session import get_grid_session

    return {"settings": get_grid_session().settings.to_dict(), "config_path": app_config.get_config_path()}


@router.put("/system/settings")
async def update_settings(request: GridSettingsUpdate):
    """Update and persist grid settings.

    Display settings apply to the running session immediately; the history
    limit applies from the next grid reset.
    """
    from .grid.session import get_grid_session

    updates = request.model_dump(exclude_none=True)
    try:
        settings = app_config.update_grid_settings(updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    get_grid_session().settings = settings
    logging.getLogger().setLevel(settings.log_level)
    return {"success": True, "settings": settings.to_dict()}
