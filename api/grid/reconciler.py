"""
Change reconciler for the data view.

The grid widget never applies an edit itself. Its ``beforeChange`` batch is
validated, classified (plain update, implicit row growth, implicit column
growth, or both), turned into queued store operations, and vetoed; the grid
re-renders once the operations have been applied to the stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..operations import OperationKind, OperationQueue, PendingOperation
from ..shared.cells import is_empty_like, parse_numeric
from ..shared.dates import validate_spss_date
from ..shared.logger import get_logger
from ..shared.variables import VariableType
from ..stores import DataStore, VariableStore, actual_column_count
from .edits import CellEdit, filter_effective_edits, parse_edits
from .schema_inference import infer_column_schema

logger = get_logger(__name__)

# Change source used by the widget when (re)loading its own data
LOAD_DATA_SOURCE = "loadData"


@dataclass
class InvalidCell:
    """A cell whose proposed value failed validation."""

    row: int
    col: int
    value: Any
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "col": self.col, "value": self.value, "reason": self.reason}


@dataclass
class ReconcileResult:
    """Outcome of one ``beforeChange`` batch.

    ``allow_direct_edit`` is the value handed back to the widget; it is False
    for every user-originated batch so state only changes through the stores.
    """

    allow_direct_edit: bool = False
    rejected: bool = False
    operations: List[PendingOperation] = field(default_factory=list)
    invalid_cells: List[InvalidCell] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allow_direct_edit": self.allow_direct_edit,
            "rejected": self.rejected,
            "operations": [op.to_dict() for op in self.operations],
            "invalid_cells": [c.to_dict() for c in self.invalid_cells],
        }


class DataChangeReconciler:
    """Turns data-view edit batches into queued store operations."""

    def __init__(
        self,
        variable_store: VariableStore,
        data_store: DataStore,
        queue: OperationQueue,
    ):
        self._variables = variable_store
        self._data = data_store
        self._queue = queue

    def before_change(
        self,
        changes: Optional[Iterable[Optional[Sequence[Any]]]],
        source: str = "edit",
    ) -> ReconcileResult:
        """Handle a ``beforeChange`` callback.

        Args:
            changes: Raw ``[row, col, old_value, new_value]`` tuples
            source: Widget change source

        Returns:
            The veto plus the operations that were queued, or the invalid
            cells when the batch was rejected.
        """
        if source == LOAD_DATA_SOURCE:
            return ReconcileResult(allow_direct_edit=True)

        edits = filter_effective_edits(parse_edits(changes))
        if not edits:
            return ReconcileResult()

        invalid = self.validate(edits)
        if invalid:
            logger.info(
                "Rejected batch of %d edits: %d invalid cells (first at %d,%d: %s)",
                len(edits), len(invalid), invalid[0].row, invalid[0].col, invalid[0].reason,
            )
            return ReconcileResult(rejected=True, invalid_cells=invalid)

        operations = self.plan(edits)
        for operation in operations:
            self._queue.enqueue(operation)
        return ReconcileResult(operations=operations)

    def validate(self, edits: Sequence[CellEdit]) -> List[InvalidCell]:
        """Check edits against the type of existing variables.

        Date columns are checked first; any violation rejects the batch.
        """
        date_edits: List[CellEdit] = []
        numeric_edits: List[CellEdit] = []
        for edit in edits:
            if is_empty_like(edit.new_value):
                continue
            variable = self._variables.get_variable_by_column_index(edit.col)
            if variable is None:
                continue
            if variable.type == VariableType.DATE:
                date_edits.append(edit)
            elif variable.is_numeric:
                numeric_edits.append(edit)

        invalid = []
        for edit in date_edits:
            reason = validate_spss_date(edit.new_value)
            if reason:
                invalid.append(InvalidCell(edit.row, edit.col, edit.new_value, reason))
        if invalid:
            return invalid

        for edit in numeric_edits:
            if parse_numeric(edit.new_value) is None:
                invalid.append(InvalidCell(edit.row, edit.col, edit.new_value, "Value must be numeric"))
        return invalid

    def plan(self, edits: Sequence[CellEdit]) -> List[PendingOperation]:
        """Classify a validated batch into operations, in dependency order."""
        variables = self._variables.get_variables()
        data = self._data.get_data()
        actual_rows = len(data)
        actual_cols = actual_column_count(variables, data)
        existing = {v.column_index for v in variables}

        max_row = max(e.row for e in edits)
        max_col = max(e.col for e in edits)
        is_adding_row = any(e.row == actual_rows for e in edits)
        is_adding_col = any(e.col == actual_cols for e in edits)

        target_rows = max(actual_rows, max_row + 1)
        updates = [{"row": e.row, "col": e.col, "value": e.new_value} for e in edits]

        if is_adding_col:
            target_cols = max(actual_cols + 1, max_col + 1)
            kind = OperationKind.ADD_ROW_COL_AND_UPDATE if is_adding_row else OperationKind.ADD_COL_AND_UPDATE
            return [
                PendingOperation(kind, {
                    "target_rows": target_rows,
                    "target_cols": target_cols,
                    "new_variables": infer_column_schema(existing, edits, target_cols),
                    "updates": updates,
                })
            ]

        operations = []
        target_cols = max(actual_cols, max_col + 1)
        edited_without_variable = any(e.col not in existing for e in edits)
        if max_col > actual_cols or edited_without_variable:
            operations.append(
                PendingOperation(OperationKind.ADD_COLS_IMPLICIT, {
                    "target_rows": actual_rows,
                    "target_cols": target_cols,
                    "new_variables": infer_column_schema(existing, edits, target_cols),
                })
            )

        kind = OperationKind.ADD_ROW_AND_UPDATE if is_adding_row else OperationKind.UPDATE_CELLS
        operations.append(
            PendingOperation(kind, {
                "target_rows": target_rows,
                "target_cols": target_cols,
                "updates": updates,
            })
        )
        return operations
