"""
Grid state API endpoints for the statgrid webapp.

Snapshot, bulk load and reset of the variable and data stores, plus the
operation history of the queue.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from .app_config import app_config
from .grid.session import get_grid_session, reset_grid_session
from .operations import OperationStatus
from .shared.logger import get_logger
from .shared.variables import Variable

logger = get_logger(__name__)

router = APIRouter(prefix="/grid", tags=["grid"])


class LoadRequest(BaseModel):
    """Replacement store contents."""
    variables: List[Dict[str, Any]] = Field(default_factory=list)
    data: List[List[Any]] = Field(default_factory=list)


@router.get("/snapshot")
async def get_snapshot():
    """Committed variables and data, without display padding."""
    return get_grid_session().snapshot()


@router.post("/load")
async def load_grid(request: LoadRequest):
    """Replace both stores once every queued operation has been applied."""
    session = get_grid_session()
    await session.queue.drain()

    try:
        variables = [Variable.from_dict(v) for v in request.variables]
        session.variable_store.load(variables)
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid variables: {e}")
    session.data_store.load(request.data)

    snapshot = session.snapshot()
    logger.info("Loaded grid: %d variables, %d rows", len(variables), snapshot["rows"])
    return snapshot


@router.post("/reset")
async def reset_grid():
    """Discard all variables, data and operation history."""
    await get_grid_session().queue.drain()
    session = reset_grid_session(settings=app_config.get_grid_settings())
    return session.snapshot()


@router.get("/operations")
async def list_operations(
    status: Optional[OperationStatus] = None,
    limit: int = Query(50, ge=1, le=1000),
):
    """Queued and finished operations, newest first."""
    queue = get_grid_session().queue
    operations = queue.list_operations(status=status, limit=limit)
    return {
        "operations": [op.to_dict() for op in operations],
        "pending": queue.pending_count,
        "idle": queue.is_idle,
    }
