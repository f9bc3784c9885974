"""
Cell edits proposed by the grid widget.

The widget reports changes as ``[row, prop, old_value, new_value]`` tuples.
``prop`` is normally the column index; views that bind columns by name pass a
``prop_to_col`` lookup.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..shared.cells import values_equal


@dataclass(frozen=True)
class CellEdit:
    """One proposed cell change."""

    row: int
    col: int
    old_value: Any
    new_value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "col": self.col,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


def _as_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    return None


def parse_edits(
    changes: Optional[Iterable[Optional[Sequence[Any]]]],
    prop_to_col: Optional[Callable[[Any], Optional[int]]] = None,
) -> List[CellEdit]:
    """Convert raw change tuples into CellEdits.

    Entries that are missing, too short, or whose row or column does not
    resolve to a non-negative integer are ignored.
    """
    edits: List[CellEdit] = []
    for change in changes or []:
        if not change or len(change) < 4:
            continue
        row_raw, prop, old_value, new_value = change[:4]

        row = _as_index(row_raw)
        col = _as_index(prop)
        if col is None and isinstance(prop, str) and prop_to_col is not None:
            col = _as_index(prop_to_col(prop))
        if row is None or col is None:
            continue

        edits.append(CellEdit(row=row, col=col, old_value=old_value, new_value=new_value))
    return edits


def filter_effective_edits(edits: Iterable[CellEdit]) -> List[CellEdit]:
    """Drop edits that change nothing (equal values, or both empty-like)."""
    return [e for e in edits if not values_equal(e.old_value, e.new_value)]
