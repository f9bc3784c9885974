"""
Grid layer: turns grid widget hooks into queued store operations and derives
what the widget renders from the stores.
"""

from .context_menu import ContextMenuController, SelectionRange
from .dispatch import StoreOperationHandlers, coerce_cell_value
from .edits import CellEdit, filter_effective_edits, parse_edits
from .reconciler import DataChangeReconciler, InvalidCell, ReconcileResult
from .schema_inference import infer_column_schema
from .structure import ColumnConfig, TableStructure, build_table_structure
from .variable_table import VariableChangeReconciler, build_variable_table

__all__ = [
    "CellEdit",
    "ColumnConfig",
    "ContextMenuController",
    "DataChangeReconciler",
    "InvalidCell",
    "ReconcileResult",
    "SelectionRange",
    "StoreOperationHandlers",
    "TableStructure",
    "VariableChangeReconciler",
    "build_table_structure",
    "build_variable_table",
    "coerce_cell_value",
    "filter_effective_edits",
    "infer_column_schema",
    "parse_edits",
]
