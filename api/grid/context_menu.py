"""
Context menu for the data view.

Translates the current grid selection into queued row/column insert and
delete commands and alignment changes. Without a selection every item is
disabled; executing a disabled item is a caller error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..operations import OperationKind, OperationQueue, PendingOperation
from ..shared.variables import VariableAlign
from ..stores import DataStore, VariableStore, actual_column_count


@dataclass(frozen=True)
class SelectionRange:
    """A rectangular selection, normalised so ``from`` <= ``to``."""

    from_row: int
    from_col: int
    to_row: int
    to_col: int

    @classmethod
    def from_corners(cls, row: int, column: int, row2: int, column2: int) -> "SelectionRange":
        if min(row, column, row2, column2) < 0:
            raise ValueError("Selection coordinates must be non-negative")
        return cls(
            from_row=min(row, row2),
            from_col=min(column, column2),
            to_row=max(row, row2),
            to_col=max(column, column2),
        )

    @property
    def rows(self) -> List[int]:
        return list(range(self.from_row, self.to_row + 1))

    @property
    def cols(self) -> List[int]:
        return list(range(self.from_col, self.to_col + 1))

    @property
    def is_single_cell(self) -> bool:
        return self.from_row == self.to_row and self.from_col == self.to_col

    def to_dict(self) -> Dict[str, int]:
        return {
            "from_row": self.from_row,
            "from_col": self.from_col,
            "to_row": self.to_row,
            "to_col": self.to_col,
        }


MENU_LABELS = {
    "row_above": "Insert row above",
    "row_below": "Insert row below",
    "col_left": "Insert column left",
    "col_right": "Insert column right",
    "remove_row": "Remove row",
    "remove_col": "Remove column",
    "alignment:left": "Left",
    "alignment:center": "Center",
    "alignment:right": "Right",
}


class ContextMenuController:
    """Builds and executes data-view context menu commands."""

    def __init__(
        self,
        variable_store: VariableStore,
        data_store: DataStore,
        queue: OperationQueue,
    ):
        self._variables = variable_store
        self._data = data_store
        self._queue = queue
        self._commands: Dict[str, Callable[[SelectionRange], PendingOperation]] = {
            "row_above": lambda s: self._insert_rows(s.from_row, s),
            "row_below": lambda s: self._insert_rows(s.to_row + 1, s),
            "col_left": lambda s: self._insert_columns(s.from_col, s),
            "col_right": lambda s: self._insert_columns(s.to_col + 1, s),
            "remove_row": self._remove_rows,
            "remove_col": self._remove_columns,
            "alignment:left": lambda s: self._align(s, VariableAlign.LEFT),
            "alignment:center": lambda s: self._align(s, VariableAlign.CENTER),
            "alignment:right": lambda s: self._align(s, VariableAlign.RIGHT),
        }

    def _extent(self) -> Tuple[int, int]:
        data = self._data.get_data()
        return len(data), actual_column_count(self._variables.get_variables(), data)

    def is_disabled(self, key: str, selection: Optional[SelectionRange]) -> bool:
        if selection is None:
            return True
        rows, cols = self._extent()
        if key == "remove_row":
            return selection.from_row >= rows
        if key == "remove_col":
            return selection.from_col >= cols
        return False

    def menu_items(self, selection: Optional[SelectionRange]) -> List[Dict[str, Any]]:
        """Menu definition with the ``disabled`` state for the selection."""
        return [
            {"key": key, "name": name, "disabled": self.is_disabled(key, selection)}
            for key, name in MENU_LABELS.items()
        ]

    def execute(self, key: str, selection: Optional[SelectionRange]) -> PendingOperation:
        """Queue the command behind a menu item.

        Raises:
            KeyError: For an unknown menu key.
            ValueError: If the item is disabled for this selection.
        """
        if key not in self._commands:
            raise KeyError(f"Unknown context menu item: {key}")
        if self.is_disabled(key, selection):
            raise ValueError(f"Context menu item '{key}' is disabled for the current selection")
        return self._queue.enqueue(self._commands[key](selection))

    def resize_column(self, column: int, width: int) -> Optional[PendingOperation]:
        """Queue an ``afterColumnResize`` width change for a committed column."""
        if self._variables.get_variable_by_column_index(column) is None:
            return None
        return self._queue.enqueue(
            PendingOperation(OperationKind.RESIZE_COLUMN, {"column": column, "width": int(width)})
        )

    # ============= Commands =============

    def _insert_rows(self, index: int, selection: SelectionRange) -> PendingOperation:
        rows, _ = self._extent()
        return PendingOperation(OperationKind.INSERT_ROWS, {
            "index": min(index, rows),
            "amount": len(selection.rows),
        })

    def _insert_columns(self, index: int, selection: SelectionRange) -> PendingOperation:
        _, cols = self._extent()
        return PendingOperation(OperationKind.INSERT_COLUMNS, {
            "index": min(index, cols),
            "amount": len(selection.cols),
        })

    def _remove_rows(self, selection: SelectionRange) -> PendingOperation:
        rows, _ = self._extent()
        return PendingOperation(OperationKind.DELETE_ROWS, {
            "indices": [r for r in selection.rows if r < rows],
        })

    def _remove_columns(self, selection: SelectionRange) -> PendingOperation:
        _, cols = self._extent()
        return PendingOperation(OperationKind.DELETE_COLUMNS, {
            "indices": [c for c in selection.cols if c < cols],
        })

    def _align(self, selection: SelectionRange, align: VariableAlign) -> PendingOperation:
        return PendingOperation(OperationKind.SET_ALIGNMENT, {
            "columns": selection.cols,
            "align": align.value,
        })
