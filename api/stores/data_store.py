"""
In-memory data store.

Holds the raw data matrix as a list of rows. Every stored cell is committed:
either ``""`` (blank) or a value. Rows are kept rectangular; growing the
matrix pads with blanks.
"""

from __future__ import annotations

import copy
from typing import List, Optional, Sequence

from ..shared.cells import CellValue, is_empty_like, parse_numeric
from ..shared.dates import validate_spss_date
from ..shared.logger import get_logger
from ..shared.variables import NUMERIC_TYPES, VariableType
from .base import CellUpdate

logger = get_logger(__name__)


class InMemoryDataStore:
    """Data matrix held in process memory."""

    def __init__(self, rows: Optional[Sequence[Sequence[CellValue]]] = None):
        self._data: List[List[CellValue]] = []
        if rows:
            self.load(rows)

    # ============= Reads =============

    def get_data(self) -> List[List[CellValue]]:
        return copy.deepcopy(self._data)

    @property
    def row_count(self) -> int:
        return len(self._data)

    @property
    def column_count(self) -> int:
        return len(self._data[0]) if self._data else 0

    # ============= Rows =============

    async def add_row(self, index: Optional[int] = None) -> None:
        """Insert a blank row at ``index`` (append when None or past the end)."""
        row: List[CellValue] = [""] * self.column_count
        if index is None or index >= len(self._data):
            self._data.append(row)
        else:
            self._data.insert(self._check_index(index, len(self._data) + 1, "row"), row)

    async def delete_row(self, index: int) -> None:
        del self._data[self._check_index(index, len(self._data), "row")]

    async def delete_rows(self, indices: Sequence[int]) -> None:
        for index in sorted(set(indices), reverse=True):
            await self.delete_row(index)

    # ============= Columns =============

    async def add_column(self, index: int) -> None:
        """Insert a blank column at ``index``, padding first if it lies past the edge."""
        index = self._check_index(index, None, "column")
        if index > self.column_count:
            await self.ensure_matrix_dimensions(self.row_count, index)
        for row in self._data:
            row.insert(index, "")

    async def add_columns(self, indices: Sequence[int]) -> None:
        for index in sorted(indices):
            await self.add_column(index)

    async def delete_column(self, index: int) -> None:
        index = self._check_index(index, self.column_count, "column")
        for row in self._data:
            del row[index]

    async def delete_columns(self, indices: Sequence[int]) -> None:
        for index in sorted(set(indices), reverse=True):
            await self.delete_column(index)

    # ============= Cells =============

    async def update_bulk_cells(self, updates: Sequence[CellUpdate]) -> None:
        """Write several cells, growing the matrix to fit them."""
        if not updates:
            return

        max_row = max(u.row for u in updates)
        max_col = max(u.col for u in updates)
        if min(min(u.row for u in updates), min(u.col for u in updates)) < 0:
            raise IndexError("Cell coordinates must be non-negative")
        await self.ensure_matrix_dimensions(max_row + 1, max_col + 1)

        for update in updates:
            self._data[update.row][update.col] = "" if update.value is None else update.value

    async def ensure_matrix_dimensions(self, rows: int, cols: int) -> None:
        """Pad the matrix to at least ``rows`` x ``cols``. Never shrinks."""
        target_cols = max(cols, self.column_count)
        for row in self._data:
            if len(row) < target_cols:
                row.extend([""] * (target_cols - len(row)))
        while len(self._data) < rows:
            self._data.append([""] * target_cols)

    async def validate_variable_data(self, column_index: int, var_type: VariableType, width: int) -> int:
        """Bring a column's cells in line with a new type or width.

        Returns:
            Number of cells that changed.
        """
        if column_index >= self.column_count:
            return 0

        changed = 0
        for row in self._data:
            value = row[column_index]
            if is_empty_like(value):
                continue

            new_value = value
            if var_type == VariableType.STRING:
                text = str(value)
                new_value = text[:width] if width and len(text) > width else text
            elif var_type in NUMERIC_TYPES:
                number = parse_numeric(value)
                new_value = "" if number is None else number
            elif var_type == VariableType.DATE:
                new_value = "" if validate_spss_date(value) else str(value).strip()

            if new_value != value or type(new_value) is not type(value):
                row[column_index] = new_value
                changed += 1

        if changed:
            logger.info("Normalised %d cells in column %d for type %s", changed, column_index, var_type.value)
        return changed

    # ============= Bulk =============

    def load(self, rows: Sequence[Sequence[CellValue]]) -> None:
        """Replace the matrix, padding ragged rows with blanks."""
        width = max((len(r) for r in rows), default=0)
        self._data = [
            ["" if v is None else v for v in row] + [""] * (width - len(row))
            for row in rows
        ]

    def reset(self) -> None:
        self._data = []

    @staticmethod
    def _check_index(index: int, upper: Optional[int], what: str) -> int:
        if index < 0 or (upper is not None and index >= upper):
            raise IndexError(f"{what} index {index} out of range")
        return index
