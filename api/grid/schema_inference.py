"""
Schema inference for columns created by typing or pasting into the grid.

A column becomes STRING as soon as one of its non-empty values does not
parse as a number; otherwise it is NUMERIC. Every code path that creates
variables from cell edits goes through ``infer_column_schema``.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Sequence

from ..shared.cells import is_empty_like, parse_numeric
from ..shared.variables import (
    DEFAULT_VARIABLE_DECIMALS,
    DEFAULT_VARIABLE_WIDTH,
    VariableAlign,
    VariableMeasure,
    VariableType,
    default_variable_name,
)
from .edits import CellEdit


def infer_variable_descriptor(column_index: int, values: Iterable[Any]) -> Dict[str, Any]:
    """Describe a new variable from the values entered into its column."""
    non_empty = [v for v in values if not is_empty_like(v)]

    if any(parse_numeric(v) is None for v in non_empty):
        width = max([DEFAULT_VARIABLE_WIDTH] + [len(str(v)) for v in non_empty])
        return {
            "column_index": column_index,
            "name": default_variable_name(column_index),
            "type": VariableType.STRING.value,
            "width": width,
            "decimals": 0,
            "align": VariableAlign.LEFT.value,
            "measure": VariableMeasure.NOMINAL.value,
        }

    return {
        "column_index": column_index,
        "name": default_variable_name(column_index),
        "type": VariableType.NUMERIC.value,
        "width": DEFAULT_VARIABLE_WIDTH,
        "decimals": DEFAULT_VARIABLE_DECIMALS,
        "align": VariableAlign.RIGHT.value,
        "measure": VariableMeasure.NOMINAL.value,
    }


def infer_column_schema(
    existing_indices: Iterable[int],
    edits: Sequence[CellEdit],
    target_column_count: int,
) -> List[Dict[str, Any]]:
    """Descriptors for every column below ``target_column_count`` without a variable.

    Args:
        existing_indices: Column indices that already have a variable
        edits: The edit batch; values of each column drive its type
        target_column_count: Column count the matrix grows to

    Returns:
        One descriptor per missing column, in column order
    """
    existing = set(existing_indices)
    values_by_col: Dict[int, List[Any]] = defaultdict(list)
    for edit in edits:
        values_by_col[edit.col].append(edit.new_value)

    return [
        infer_variable_descriptor(col, values_by_col.get(col, []))
        for col in range(target_column_count)
        if col not in existing
    ]
