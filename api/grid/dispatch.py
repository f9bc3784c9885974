"""
Store call sequences for each operation kind.

Each handler is the fixed sequence of variable-store and data-store calls one
queued operation performs. Handlers re-read the stores when they run, so an
operation always sees the fully applied effect of the one before it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..operations import OperationKind, OperationQueue, PendingOperation
from ..shared.cells import CellValue, is_empty_like, parse_numeric
from ..shared.dates import format_spss_date, parse_spss_date
from ..shared.logger import get_logger
from ..shared.variables import Variable, VariableType
from ..stores import CellUpdate, DataStore, VariableStore

logger = get_logger(__name__)


def coerce_cell_value(variable: Optional[Variable], value: Any) -> CellValue:
    """Convert an entered value to what the column stores.

    Numeric columns store numbers, DATE columns the normalised
    ``DD-MM-YYYY`` text, STRING columns text cut to the variable width.

    Raises:
        ValueError: If the value cannot be stored in the column.
    """
    if is_empty_like(value):
        return ""
    if variable is None:
        return value

    if variable.is_numeric:
        number = parse_numeric(value)
        if number is None:
            raise ValueError(f"{value!r} is not numeric")
        return number

    if variable.type == VariableType.DATE:
        return format_spss_date(parse_spss_date(value))

    if variable.is_string:
        text = str(value)
        if variable.width and len(text) > variable.width:
            text = text[:variable.width]
        return text

    return value


class StoreOperationHandlers:
    """Applies queued operations to a variable store and a data store."""

    def __init__(self, variable_store: VariableStore, data_store: DataStore):
        self._variables = variable_store
        self._data = data_store

    def register(self, queue: OperationQueue) -> None:
        handlers = {
            OperationKind.ADD_ROW_AND_UPDATE: self.grow_and_update,
            OperationKind.ADD_COL_AND_UPDATE: self.add_columns_and_update,
            OperationKind.ADD_ROW_COL_AND_UPDATE: self.add_columns_and_update,
            OperationKind.ADD_COLS_IMPLICIT: self.add_columns_and_update,
            OperationKind.UPDATE_CELLS: self.grow_and_update,
            OperationKind.CREATE_VARIABLE: self.create_variable,
            OperationKind.UPDATE_VARIABLE: self.update_variable,
            OperationKind.INSERT_VARIABLE: self.insert_variable,
            OperationKind.DELETE_VARIABLE: self.delete_variable,
            OperationKind.INSERT_ROWS: self.insert_rows,
            OperationKind.DELETE_ROWS: self.delete_rows,
            OperationKind.INSERT_COLUMNS: self.insert_columns,
            OperationKind.DELETE_COLUMNS: self.delete_columns,
            OperationKind.SET_ALIGNMENT: self.set_alignment,
            OperationKind.RESIZE_COLUMN: self.resize_column,
        }
        for kind, handler in handlers.items():
            queue.register_handler(kind, handler)

    # ============= Data view cell edits =============

    async def add_columns_and_update(self, operation: PendingOperation) -> Dict[str, Any]:
        payload = operation.payload
        created = await self._create_missing_variables(payload.get("new_variables", []))
        await self._data.ensure_matrix_dimensions(payload["target_rows"], payload["target_cols"])
        result = await self._apply_updates(payload.get("updates", []))
        result["created_variables"] = created
        return result

    async def grow_and_update(self, operation: PendingOperation) -> Dict[str, Any]:
        payload = operation.payload
        await self._data.ensure_matrix_dimensions(payload["target_rows"], payload["target_cols"])
        return await self._apply_updates(payload.get("updates", []))

    async def _create_missing_variables(self, descriptors: List[Dict[str, Any]]) -> List[int]:
        # An earlier operation may already have created some of these columns
        missing = [
            d for d in descriptors
            if self._variables.get_variable_by_column_index(d["column_index"]) is None
        ]
        if missing:
            await self._variables.add_multiple_variables(missing)
        return [d["column_index"] for d in missing]

    async def _apply_updates(self, updates: List[Dict[str, Any]]) -> Dict[str, Any]:
        cells: List[CellUpdate] = []
        skipped = 0
        for update in updates:
            variable = self._variables.get_variable_by_column_index(update["col"])
            try:
                value = coerce_cell_value(variable, update["value"])
            except ValueError as e:
                logger.warning("Skipping cell (%d, %d): %s", update["row"], update["col"], e)
                skipped += 1
                continue
            cells.append(CellUpdate(row=update["row"], col=update["col"], value=value))

        if cells:
            await self._data.update_bulk_cells(cells)
        return {"updated": len(cells), "skipped": skipped}

    # ============= Variable view =============

    async def create_variable(self, operation: PendingOperation) -> Dict[str, Any]:
        row = operation.payload["row"]
        variable_data = dict(operation.payload.get("variable_data") or {})

        if self._variables.get_variable_by_column_index(row) is not None:
            variable = await self._variables.update_multiple_fields(row, variable_data)
        else:
            if row > 0:
                await self._variables.ensure_complete_variables(row - 1)
            # Free index: later variables keep their columns
            (variable,) = await self._variables.add_multiple_variables([{**variable_data, "column_index": row}])
        await self._data.ensure_matrix_dimensions(self._data.row_count, row + 1)
        return {"variable": variable.to_dict()}

    async def update_variable(self, operation: PendingOperation) -> Dict[str, Any]:
        row = operation.payload["row"]
        changes = operation.payload.get("changes") or {}

        variable = await self._variables.update_multiple_fields(row, changes)
        result: Dict[str, Any] = {"variable": variable.to_dict()}
        if "type" in changes or "width" in changes:
            result["normalised_cells"] = await self._data.validate_variable_data(
                row, variable.type, variable.width
            )
        return result

    async def insert_variable(self, operation: PendingOperation) -> Dict[str, Any]:
        row = operation.payload["row"]
        variable = await self._variables.add_variable({"column_index": row})
        await self._data.add_column(row)
        return {"variable": variable.to_dict()}

    async def delete_variable(self, operation: PendingOperation) -> None:
        row = operation.payload["row"]
        await self._variables.delete_variable(row)
        if row < self._data.column_count:
            await self._data.delete_column(row)

    # ============= Context menu =============

    async def insert_rows(self, operation: PendingOperation) -> None:
        index = operation.payload["index"]
        for offset in range(operation.payload.get("amount", 1)):
            await self._data.add_row(index + offset)

    async def delete_rows(self, operation: PendingOperation) -> None:
        indices = [i for i in operation.payload["indices"] if i < self._data.row_count]
        await self._data.delete_rows(indices)

    async def insert_columns(self, operation: PendingOperation) -> None:
        index = operation.payload["index"]
        for offset in range(operation.payload.get("amount", 1)):
            # The variable must exist before its data column
            await self._variables.add_variable({"column_index": index + offset})
            await self._data.add_column(index + offset)

    async def delete_columns(self, operation: PendingOperation) -> None:
        indices = sorted(set(operation.payload["indices"]), reverse=True)
        for index in indices:
            await self._variables.delete_variable(index)
        await self._data.delete_columns([i for i in indices if i < self._data.column_count])

    async def set_alignment(self, operation: PendingOperation) -> None:
        align = operation.payload["align"]
        for col in operation.payload["columns"]:
            if self._variables.get_variable_by_column_index(col) is not None:
                await self._variables.update_variable(col, "align", align)

    async def resize_column(self, operation: PendingOperation) -> None:
        col = operation.payload["column"]
        if self._variables.get_variable_by_column_index(col) is not None:
            await self._variables.update_variable(col, "columns", operation.payload["width"])
