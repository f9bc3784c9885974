"""
Variable view API endpoints for the statgrid webapp.

One grid row per variable. Name, width, decimals, label, columns, align,
measure and role are edited in the grid; type, value labels and missing
values come from dialogs and have their own endpoints.
"""

from typing import Any, Dict, List, Union

from fastapi import APIRouter, HTTPException, Path
from pydantic import BaseModel, Field

from websocket import notify_selection_changed

from .grid.session import VARIABLE_VIEW, get_grid_session
from .operations import OperationStatus, PendingOperation
from .shared.logger import get_logger
from .data_table import ChangeBatchRequest, SelectionRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/grid/variables", tags=["grid-variables"])


# ============================================================================
# Pydantic Models
# ============================================================================

class VariableTypeRequest(BaseModel):
    type: str
    width: int = Field(8, ge=1)
    decimals: int = Field(2, ge=0)


class ValueLabelItem(BaseModel):
    value: Union[int, float, str]
    label: str


class ValueLabelsRequest(BaseModel):
    values: List[ValueLabelItem] = Field(default_factory=list)


class MissingValuesRequest(BaseModel):
    """Either a ``{kind, discrete, low, high}`` spec or a flat list of values."""
    missing: Union[Dict[str, Any], List[Union[int, float, str]], None] = None


# ============================================================================
# Helpers
# ============================================================================

async def _applied(operation: PendingOperation) -> Dict[str, Any]:
    session = get_grid_session()
    await session.queue.drain()
    if operation.status == OperationStatus.FAILED:
        raise HTTPException(status_code=409, detail=operation.error or "Operation failed")
    return {
        "operation": operation.to_dict(),
        "variable": session.variable_reconciler.selected_variable(operation.payload["row"]),
        "structure": session.variable_table().to_dict(),
    }


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/structure")
async def get_structure():
    session = get_grid_session()
    return session.variable_table().to_dict()


@router.post("/changes")
async def submit_changes(request: ChangeBatchRequest):
    """Reconcile a beforeChange batch from the variable view."""
    session = get_grid_session()
    result = session.variable_reconciler.before_change(request.changes, request.source)
    await session.queue.drain()

    response = result.to_dict()
    response["structure"] = session.variable_table().to_dict()
    return response


@router.post("/selection")
async def set_selection(request: SelectionRequest):
    """Record the selection and report the dialog it opens, if any."""
    session = get_grid_session()
    try:
        selection = request.to_range()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session.set_selection(VARIABLE_VIEW, selection)
    await notify_selection_changed(VARIABLE_VIEW, selection.to_dict())
    response = session.variable_reconciler.after_selection_end(selection)
    response["selection"] = selection.to_dict()
    response["menu"] = session.variable_reconciler.menu_items(selection)
    return response


@router.get("/context-menu")
async def get_context_menu():
    session = get_grid_session()
    selection = session.get_selection(VARIABLE_VIEW)
    return {
        "selection": selection.to_dict() if selection else None,
        "items": session.variable_reconciler.menu_items(selection),
    }


@router.post("/context-menu/{key}")
async def execute_context_menu(key: str):
    session = get_grid_session()
    try:
        operation = session.variable_reconciler.execute(key, session.get_selection(VARIABLE_VIEW))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    await session.queue.drain()
    return {
        "operation": operation.to_dict(),
        "structure": session.variable_table().to_dict(),
    }


@router.get("/{row}")
async def get_variable(row: int = Path(..., ge=0)):
    """The variable at ``row``, or the defaults a new variable would get."""
    session = get_grid_session()
    return {
        "exists": session.variable_store.get_variable_by_column_index(row) is not None,
        "variable": session.variable_reconciler.selected_variable(row),
    }


@router.post("/{row}/type")
async def save_type(request: VariableTypeRequest, row: int = Path(..., ge=0)):
    """Save the variable type dialog."""
    session = get_grid_session()
    try:
        operation = session.variable_reconciler.apply_type(row, request.type, request.width, request.decimals)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _applied(operation)


@router.post("/{row}/values")
async def save_value_labels(request: ValueLabelsRequest, row: int = Path(..., ge=0)):
    """Save the value labels dialog."""
    session = get_grid_session()
    try:
        operation = session.variable_reconciler.apply_value_labels(
            row, [item.model_dump() for item in request.values]
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _applied(operation)


@router.post("/{row}/missing")
async def save_missing_values(request: MissingValuesRequest, row: int = Path(..., ge=0)):
    """Save the missing values dialog."""
    session = get_grid_session()
    try:
        operation = session.variable_reconciler.apply_missing(row, request.missing)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _applied(operation)
