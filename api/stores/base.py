"""
Store interfaces consumed by the grid layer.

The reconcilers, the context menu and the operation handlers depend on these
protocols only, so the in-memory stores can be swapped for any other backing
implementation (or a recording fake in tests). Reads are synchronous
snapshots; every mutation is a coroutine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..shared.cells import CellValue
from ..shared.variables import Variable, VariableType


@dataclass(frozen=True)
class CellUpdate:
    """A single committed-cell write."""

    row: int
    col: int
    value: CellValue

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "col": self.col, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CellUpdate":
        return cls(row=int(data["row"]), col=int(data["col"]), value=data.get("value", ""))


class VariableStore(Protocol):
    """Ordered variable metadata keyed by column index."""

    def get_variables(self) -> List[Variable]: ...

    def get_variable_by_column_index(self, column_index: int) -> Optional[Variable]: ...

    async def add_variable(self, partial: Dict[str, Any]) -> Variable: ...

    async def add_multiple_variables(self, partials: Sequence[Dict[str, Any]]) -> List[Variable]: ...

    async def delete_variable(self, column_index: int) -> None: ...

    async def update_variable(self, column_index: int, field: str, value: Any) -> Variable: ...

    async def update_multiple_fields(self, column_index: int, changes: Dict[str, Any]) -> Variable: ...

    async def ensure_complete_variables(self, max_index: int) -> List[Variable]: ...


class DataStore(Protocol):
    """Raw data matrix; row position is the row identifier."""

    def get_data(self) -> List[List[CellValue]]: ...

    @property
    def row_count(self) -> int: ...

    @property
    def column_count(self) -> int: ...

    async def add_row(self, index: Optional[int] = None) -> None: ...

    async def add_column(self, index: int) -> None: ...

    async def add_columns(self, indices: Sequence[int]) -> None: ...

    async def delete_row(self, index: int) -> None: ...

    async def delete_rows(self, indices: Sequence[int]) -> None: ...

    async def delete_column(self, index: int) -> None: ...

    async def delete_columns(self, indices: Sequence[int]) -> None: ...

    async def update_bulk_cells(self, updates: Sequence[CellUpdate]) -> None: ...

    async def ensure_matrix_dimensions(self, rows: int, cols: int) -> None: ...

    async def validate_variable_data(self, column_index: int, var_type: VariableType, width: int) -> int: ...


def actual_column_count(variables: Sequence[Variable], data: Sequence[Sequence[Any]]) -> int:
    """Committed column count: widest data row or highest variable index + 1."""
    data_cols = max((len(row) for row in data), default=0)
    var_cols = max((v.column_index for v in variables), default=-1) + 1
    return max(data_cols, var_cols)
