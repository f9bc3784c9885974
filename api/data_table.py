"""
Data view API endpoints for the statgrid webapp.

The grid widget forwards its hooks here:
- beforeChange batches (always vetoed; changes are applied through the queue)
- selection changes and the context menu built from them
- afterColumnResize
Every mutating endpoint waits for the queue to drain, so the structure it
returns reflects the applied store state.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from websocket import notify_selection_changed

from .grid.context_menu import SelectionRange
from .grid.edits import filter_effective_edits, parse_edits
from .grid.session import DATA_VIEW, get_grid_session
from .shared.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/grid/data", tags=["grid-data"])


# ============================================================================
# Pydantic Models
# ============================================================================

class ChangeBatchRequest(BaseModel):
    """A beforeChange batch: ``[row, col, old_value, new_value]`` tuples."""
    changes: Optional[List[Optional[List[Any]]]] = None
    source: str = Field("edit", description="Grid change source, e.g. edit, CopyPaste.paste, loadData")


class SelectionRequest(BaseModel):
    """Corners of the selected range, in any order."""
    row: int = Field(..., ge=0)
    column: int = Field(..., ge=0)
    row2: Optional[int] = Field(None, ge=0)
    column2: Optional[int] = Field(None, ge=0)

    def to_range(self) -> SelectionRange:
        return SelectionRange.from_corners(
            self.row,
            self.column,
            self.row if self.row2 is None else self.row2,
            self.column if self.column2 is None else self.column2,
        )


class ColumnResizeRequest(BaseModel):
    column: int = Field(..., ge=0)
    width: int = Field(..., ge=1)


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/structure")
async def get_structure():
    """Headers, column configs and the padded display matrix."""
    session = get_grid_session()
    return session.structure().to_dict()


@router.post("/changes")
async def submit_changes(request: ChangeBatchRequest):
    """Reconcile a beforeChange batch and apply the resulting operations."""
    session = get_grid_session()
    result = session.data_reconciler.before_change(request.changes, request.source)
    await session.queue.drain()

    response: Dict[str, Any] = result.to_dict()
    response["structure"] = session.structure().to_dict()
    return response


@router.post("/validate")
async def validate_changes(request: ChangeBatchRequest):
    """Validate a batch against the current variables without applying it."""
    session = get_grid_session()
    edits = filter_effective_edits(parse_edits(request.changes))
    invalid = session.data_reconciler.validate(edits)
    return {
        "valid": not invalid,
        "invalid_cells": [c.to_dict() for c in invalid],
    }


@router.post("/selection")
async def set_selection(request: SelectionRequest):
    """Record the selection (afterSelectionEnd) and return the context menu for it."""
    session = get_grid_session()
    try:
        selection = request.to_range()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session.set_selection(DATA_VIEW, selection)
    await notify_selection_changed(DATA_VIEW, selection.to_dict())
    return {
        "selection": selection.to_dict(),
        "menu": session.context_menu.menu_items(selection),
    }


@router.delete("/selection")
async def clear_selection():
    """Clear the selection (afterDeselect)."""
    session = get_grid_session()
    session.set_selection(DATA_VIEW, None)
    await notify_selection_changed(DATA_VIEW, None)
    return {"selection": None}


@router.get("/context-menu")
async def get_context_menu():
    session = get_grid_session()
    selection = session.get_selection(DATA_VIEW)
    return {
        "selection": selection.to_dict() if selection else None,
        "items": session.context_menu.menu_items(selection),
    }


@router.post("/context-menu/{key}")
async def execute_context_menu(key: str):
    """Run a context menu command on the current selection."""
    session = get_grid_session()
    try:
        operation = session.context_menu.execute(key, session.get_selection(DATA_VIEW))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    await session.queue.drain()
    return {
        "operation": operation.to_dict(),
        "structure": session.structure().to_dict(),
    }


@router.post("/column-resize")
async def resize_column(request: ColumnResizeRequest):
    """Persist a column width change (afterColumnResize)."""
    session = get_grid_session()
    operation = session.context_menu.resize_column(request.column, request.width)
    await session.queue.drain()
    return {"operation": operation.to_dict() if operation else None}
