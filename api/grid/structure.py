"""
Table structure for the data view.

Pure derivation of what the grid widget renders: column headers, per-column
configuration and a display matrix padded with one spare row and column
beyond the larger of the actual extent and the minimum display size.
Identical inputs always give equal output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..shared.cells import Cell, CellValue
from ..shared.variables import (
    DEFAULT_COLUMN_WIDTH,
    Variable,
    VariableAlign,
    VariableType,
)
from ..stores import actual_column_count

DEFAULT_ROWS = 100
DEFAULT_MIN_COLUMNS = 45
PLACEHOLDER_HEADER = "var"

_ALIGN_CLASSES = {
    VariableAlign.LEFT: "htLeft",
    VariableAlign.CENTER: "htCenter",
    VariableAlign.RIGHT: "htRight",
}


@dataclass(frozen=True)
class ColumnConfig:
    """How the widget edits and displays one column."""

    index: int
    type: str = "text"
    width: int = DEFAULT_COLUMN_WIDTH
    class_name: str = "htLeft"
    read_only: bool = False
    committed: bool = False
    validator: Optional[str] = None
    numeric_pattern: Optional[str] = None
    max_length: Optional[int] = None
    date_format: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "type": self.type,
            "width": self.width,
            "className": self.class_name,
            "readOnly": self.read_only,
            "committed": self.committed,
            "validator": self.validator,
            "numericFormat": {"pattern": self.numeric_pattern} if self.numeric_pattern else None,
            "maxLength": self.max_length,
            "dateFormat": self.date_format,
        }


@dataclass
class TableStructure:
    """Everything the data view needs to render."""

    col_headers: List[str]
    columns: List[ColumnConfig]
    display_matrix: List[List[Cell]]
    actual_rows: int
    actual_cols: int
    display_rows: int = field(init=False)
    display_cols: int = field(init=False)

    def __post_init__(self):
        self.display_rows = len(self.display_matrix)
        self.display_cols = len(self.col_headers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "colHeaders": self.col_headers,
            "columns": [c.to_dict() for c in self.columns],
            "data": [[cell.to_wire() for cell in row] for row in self.display_matrix],
            "actualRows": self.actual_rows,
            "actualCols": self.actual_cols,
            "displayRows": self.display_rows,
            "displayCols": self.display_cols,
        }


def column_config(index: int, variable: Optional[Variable], default_width: int = DEFAULT_COLUMN_WIDTH) -> ColumnConfig:
    """Column configuration for a committed variable, or a spare column."""
    if variable is None:
        return ColumnConfig(index=index, width=default_width, class_name=_ALIGN_CLASSES[VariableAlign.RIGHT])

    base = {
        "index": index,
        "width": variable.columns or default_width,
        "class_name": _ALIGN_CLASSES.get(variable.align, "htCenter"),
        "committed": True,
    }
    if variable.is_numeric:
        return ColumnConfig(
            type="numeric",
            validator="numeric",
            numeric_pattern=f"0,0.{'0' * variable.decimals}" if variable.decimals else "0,0",
            **base,
        )
    if variable.type == VariableType.DATE:
        return ColumnConfig(type="date", validator="spss-date", date_format="DD-MM-YYYY", **base)
    if variable.is_string:
        return ColumnConfig(type="text", max_length=variable.width or None, **base)
    return ColumnConfig(type="text", **base)


def build_table_structure(
    variables: Sequence[Variable],
    data: Sequence[Sequence[CellValue]],
    min_rows: int = DEFAULT_ROWS,
    min_columns: int = DEFAULT_MIN_COLUMNS,
    default_column_width: int = DEFAULT_COLUMN_WIDTH,
) -> TableStructure:
    """Derive headers, column configs and the display matrix.

    Args:
        variables: Variable snapshot
        data: Data matrix snapshot
        min_rows: Minimum number of rows shown before the spare row
        min_columns: Minimum number of columns shown before the spare column
        default_column_width: Width of columns without a variable
    """
    by_index = {v.column_index: v for v in variables}
    actual_rows = len(data)
    actual_cols = actual_column_count(variables, data)

    display_rows = max(actual_rows, min_rows) + 1
    display_cols = max(actual_cols, min_columns) + 1

    headers = []
    columns = []
    for index in range(display_cols):
        variable = by_index.get(index)
        headers.append(variable.name if variable and variable.name.strip() else PLACEHOLDER_HEADER)
        columns.append(column_config(index, variable, default_column_width))

    matrix: List[List[Cell]] = []
    for r in range(display_rows):
        source = data[r] if r < actual_rows else ()
        row = []
        for c in range(display_cols):
            if r < actual_rows and c < actual_cols:
                row.append(Cell.of(source[c] if c < len(source) else ""))
            else:
                row.append(Cell.spare())
        matrix.append(row)

    return TableStructure(
        col_headers=headers,
        columns=columns,
        display_matrix=matrix,
        actual_rows=actual_rows,
        actual_cols=actual_cols,
    )
