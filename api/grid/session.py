"""
Grid session: one variable store, one data store and the queue between them.

The session wires the operation handlers, both change reconcilers and the
data-view context menu to the same stores, and keeps the current selection
of each view.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..app_config import GridSettings, app_config
from ..operations import OperationQueue
from ..shared.logger import get_logger
from ..stores import (
    DataStore,
    InMemoryDataStore,
    InMemoryVariableStore,
    VariableStore,
    actual_column_count,
)
from .context_menu import ContextMenuController, SelectionRange
from .dispatch import StoreOperationHandlers
from .reconciler import DataChangeReconciler
from .structure import TableStructure, build_table_structure
from .variable_table import (
    VariableChangeReconciler,
    VariableTableStructure,
    build_variable_table,
)

logger = get_logger(__name__)

DATA_VIEW = "data"
VARIABLE_VIEW = "variables"


class GridSession:
    """Everything the data view and the variable view share."""

    def __init__(
        self,
        variable_store: Optional[VariableStore] = None,
        data_store: Optional[DataStore] = None,
        settings: Optional[GridSettings] = None,
    ):
        self.settings = settings or GridSettings()
        self.variable_store = variable_store if variable_store is not None else InMemoryVariableStore()
        self.data_store = data_store if data_store is not None else InMemoryDataStore()
        self.queue = OperationQueue(history_limit=self.settings.history_limit)

        StoreOperationHandlers(self.variable_store, self.data_store).register(self.queue)

        self.data_reconciler = DataChangeReconciler(self.variable_store, self.data_store, self.queue)
        self.variable_reconciler = VariableChangeReconciler(self.variable_store, self.queue)
        self.context_menu = ContextMenuController(self.variable_store, self.data_store, self.queue)

        self._selections: Dict[str, Optional[SelectionRange]] = {DATA_VIEW: None, VARIABLE_VIEW: None}

    # ============= Selection =============

    def get_selection(self, view: str) -> Optional[SelectionRange]:
        return self._selections[view]

    def set_selection(self, view: str, selection: Optional[SelectionRange]) -> None:
        if view not in self._selections:
            raise KeyError(f"Unknown view: {view}")
        self._selections[view] = selection

    # ============= Derived views =============

    def structure(self) -> TableStructure:
        return build_table_structure(
            self.variable_store.get_variables(),
            self.data_store.get_data(),
            min_rows=self.settings.min_rows,
            min_columns=self.settings.min_columns,
            default_column_width=self.settings.default_column_width,
        )

    def variable_table(self) -> VariableTableStructure:
        return build_variable_table(self.variable_store.get_variables(), min_rows=self.settings.min_rows)

    def snapshot(self) -> Dict[str, Any]:
        """Committed store contents, without display padding."""
        variables = self.variable_store.get_variables()
        data = self.data_store.get_data()
        return {
            "variables": [v.to_dict() for v in variables],
            "data": [list(row) for row in data],
            "rows": len(data),
            "columns": actual_column_count(variables, data),
            "pending_operations": self.queue.pending_count,
        }


# Global instance
grid_session = GridSession(settings=app_config.get_grid_settings())


def get_grid_session() -> GridSession:
    return grid_session


def reset_grid_session(settings: Optional[GridSettings] = None) -> GridSession:
    """Replace the global session with an empty one."""
    global grid_session
    grid_session = GridSession(settings=settings)
    logger.info("Grid session reset")
    return grid_session
