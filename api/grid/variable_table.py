"""
Variable view: one grid row per variable, one grid column per field.

Type, value labels and missing values are edited through dialogs only; the
other fields are typed directly into the grid. Every change is queued as a
CREATE_VARIABLE (row without a variable yet) or UPDATE_VARIABLE operation.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from ..operations import OperationKind, OperationQueue, PendingOperation
from ..shared.logger import get_logger
from ..shared.variables import (
    DEFAULT_VARIABLE_TYPE,
    MissingValuesSpec,
    ValueLabel,
    Variable,
    VariableAlign,
    VariableMeasure,
    VariableRole,
    coerce_variable_type,
)
from ..stores import VariableStore
from .context_menu import SelectionRange
from .edits import filter_effective_edits, parse_edits
from .reconciler import LOAD_DATA_SOURCE, InvalidCell, ReconcileResult
from .structure import DEFAULT_ROWS

logger = get_logger(__name__)

COLUMN_FIELDS = [
    "name",
    "type",
    "width",
    "decimals",
    "label",
    "values",
    "missing",
    "columns",
    "align",
    "measure",
    "role",
]
COLUMN_HEADERS = [
    "Name",
    "Type",
    "Width",
    "Decimals",
    "Label",
    "Values",
    "Missing",
    "Columns",
    "Align",
    "Measure",
    "Role",
]
FIELD_TO_COLUMN = {name: index for index, name in enumerate(COLUMN_FIELDS)}

TYPE_COLUMN = FIELD_TO_COLUMN["type"]
VALUES_COLUMN = FIELD_TO_COLUMN["values"]
MISSING_COLUMN = FIELD_TO_COLUMN["missing"]
DIALOG_TRIGGER_COLUMNS = {TYPE_COLUMN: "type", VALUES_COLUMN: "values", MISSING_COLUMN: "missing"}

# Sources that mean the user typed or dragged into a cell
_USER_EDIT_SOURCES = ("edit", "Autofill.fill")

_DROPDOWNS = {
    "align": [a.value for a in VariableAlign],
    "measure": [m.value for m in VariableMeasure],
    "role": [r.value for r in VariableRole],
}


def describe_value_labels(values: Sequence[ValueLabel]) -> str:
    if not values:
        return "None"
    first = values[0]
    text = f"{{{first.value}, {first.label}}}"
    return text + "..." if len(values) > 1 else text


def variable_row(variable: Variable) -> List[Any]:
    """Display values of one variable, in column order."""
    return [
        variable.name,
        variable.type.value,
        variable.width,
        variable.decimals,
        variable.label,
        describe_value_labels(variable.values),
        variable.missing.describe(),
        variable.columns,
        variable.align.value,
        variable.measure.value,
        variable.role.value,
    ]


@dataclass
class VariableTableStructure:
    col_headers: List[str]
    columns: List[Dict[str, Any]]
    data: List[List[Any]]
    actual_rows: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "colHeaders": self.col_headers,
            "columns": self.columns,
            "data": self.data,
            "actualRows": self.actual_rows,
            "displayRows": len(self.data),
        }


def build_variable_table(variables: Sequence[Variable], min_rows: int = DEFAULT_ROWS) -> VariableTableStructure:
    """Rows for every column index up to the display size; rows without a variable are null."""
    by_index = {v.column_index: v for v in variables}
    actual_rows = max(by_index, default=-1) + 1
    display_rows = max(actual_rows, min_rows) + 1

    data = []
    for index in range(display_rows):
        variable = by_index.get(index)
        data.append(variable_row(variable) if variable else [None] * len(COLUMN_FIELDS))

    columns = []
    for index, field_name in enumerate(COLUMN_FIELDS):
        config: Dict[str, Any] = {
            "data": index,
            "field": field_name,
            "readOnly": index in DIALOG_TRIGGER_COLUMNS,
            "type": "numeric" if field_name in ("width", "decimals", "columns") else "text",
        }
        if field_name in _DROPDOWNS:
            config["type"] = "dropdown"
            config["source"] = _DROPDOWNS[field_name]
        if index in DIALOG_TRIGGER_COLUMNS:
            config["className"] = f"{field_name}-column htDimmed htReadOnly"
        columns.append(config)

    return VariableTableStructure(
        col_headers=list(COLUMN_HEADERS),
        columns=columns,
        data=data,
        actual_rows=actual_rows,
    )


def _prop_to_col(prop: Any) -> Optional[int]:
    return FIELD_TO_COLUMN.get(prop)


class VariableChangeReconciler:
    """Turns variable-view edits and dialog results into queued operations."""

    def __init__(self, variable_store: VariableStore, queue: OperationQueue):
        self._variables = variable_store
        self._queue = queue

    # ============= Grid edits =============

    def before_change(
        self,
        changes: Optional[Iterable[Optional[Sequence[Any]]]],
        source: str = "edit",
    ) -> ReconcileResult:
        """Handle a ``beforeChange`` batch from the variable view."""
        if source == LOAD_DATA_SOURCE:
            return ReconcileResult(allow_direct_edit=True)

        edits = filter_effective_edits(parse_edits(changes, prop_to_col=_prop_to_col))
        changes_by_row: Dict[int, Dict[str, Any]] = {}
        for edit in edits:
            if edit.col in DIALOG_TRIGGER_COLUMNS:
                if source in _USER_EDIT_SOURCES:
                    field_name = DIALOG_TRIGGER_COLUMNS[edit.col]
                    return ReconcileResult(
                        rejected=True,
                        invalid_cells=[
                            InvalidCell(edit.row, edit.col, edit.new_value, f"Use the {field_name} dialog")
                        ],
                    )
                continue
            if edit.col >= len(COLUMN_FIELDS):
                continue
            changes_by_row.setdefault(edit.row, {})[COLUMN_FIELDS[edit.col]] = edit.new_value

        invalid = []
        for row, row_changes in changes_by_row.items():
            probe = self._probe(row)
            for field_name, value in row_changes.items():
                try:
                    probe.update_field(field_name, value)
                except ValueError as e:
                    invalid.append(InvalidCell(row, FIELD_TO_COLUMN[field_name], value, str(e)))
        if invalid:
            logger.info("Rejected variable edits: %s", invalid[0].reason)
            return ReconcileResult(rejected=True, invalid_cells=invalid)

        operations = [self._enqueue_changes(row, row_changes) for row, row_changes in sorted(changes_by_row.items())]
        return ReconcileResult(operations=operations)

    # ============= Dialog callbacks =============

    def apply_type(self, row: int, var_type: str, width: int, decimals: int) -> PendingOperation:
        """Save the variable type dialog. Unknown types fall back to NUMERIC."""
        changes = {
            "type": coerce_variable_type(var_type, fallback=DEFAULT_VARIABLE_TYPE).value,
            "width": width,
            "decimals": decimals,
        }
        probe = self._probe(row)
        for field_name in ("type", "width", "decimals"):
            probe.update_field(field_name, changes[field_name])
        return self._enqueue_changes(row, changes)

    def apply_value_labels(self, row: int, values: Sequence[Union[ValueLabel, Dict[str, Any]]]) -> PendingOperation:
        """Save the value labels dialog.

        Raises:
            ValueError: If a value or label is invalid for the variable type.
        """
        probe = self._probe(row)
        probe.update_field("values", list(values))
        return self._enqueue_changes(row, {"values": [v.to_dict() for v in probe.values]})

    def apply_missing(
        self,
        row: int,
        missing: Union[MissingValuesSpec, Dict[str, Any], List[Any]],
    ) -> PendingOperation:
        """Save the missing values dialog.

        Raises:
            ValueError: If the spec is invalid for the variable type.
        """
        probe = self._probe(row)
        probe.update_field("missing", missing)
        return self._enqueue_changes(row, {"missing": probe.missing.to_dict()})

    # ============= Selection and menu =============

    def after_selection_end(self, selection: Optional[SelectionRange]) -> Dict[str, Any]:
        """Dialog opened by selecting a single cell of a dialog column, with its variable."""
        dialog = None
        if selection is not None and selection.is_single_cell:
            dialog = DIALOG_TRIGGER_COLUMNS.get(selection.from_col)
        return {
            "dialog": dialog,
            "variable": self.selected_variable(selection.from_row) if dialog else None,
        }

    def selected_variable(self, row: int) -> Dict[str, Any]:
        """The variable at ``row``, or the defaults a new one would get."""
        return self._probe(row).to_dict()

    def menu_items(self, selection: Optional[SelectionRange]) -> List[Dict[str, Any]]:
        return [
            {"key": "insert_variable", "name": "Insert Variable", "disabled": selection is None},
            {"key": "delete_variable", "name": "Delete Variable", "disabled": self._delete_disabled(selection)},
        ]

    def execute(self, key: str, selection: Optional[SelectionRange]) -> PendingOperation:
        """Queue a variable-view context menu command.

        Raises:
            KeyError: For an unknown menu key.
            ValueError: If the item is disabled.
        """
        if key == "insert_variable":
            if selection is None:
                raise ValueError("Select a row to insert a variable")
            kind = OperationKind.INSERT_VARIABLE
        elif key == "delete_variable":
            if self._delete_disabled(selection):
                raise ValueError("Delete Variable is disabled for the current selection")
            kind = OperationKind.DELETE_VARIABLE
        else:
            raise KeyError(f"Unknown context menu item: {key}")
        return self._queue.enqueue(PendingOperation(kind, {"row": selection.from_row}))

    # ============= Helpers =============

    def _delete_disabled(self, selection: Optional[SelectionRange]) -> bool:
        if selection is None:
            return True
        variables = self._variables.get_variables()
        return len(variables) <= 1 or all(v.column_index != selection.from_row for v in variables)

    def _probe(self, row: int) -> Variable:
        variable = self._variables.get_variable_by_column_index(row)
        if variable is not None:
            return copy.deepcopy(variable)
        return Variable.from_partial({}, column_index=row)

    def _enqueue_changes(self, row: int, changes: Dict[str, Any]) -> PendingOperation:
        if self._variables.get_variable_by_column_index(row) is not None:
            operation = PendingOperation(OperationKind.UPDATE_VARIABLE, {"row": row, "changes": changes})
        else:
            operation = PendingOperation(OperationKind.CREATE_VARIABLE, {"row": row, "variable_data": changes})
        return self._queue.enqueue(operation)
