"""
API package for the statgrid webapp FastAPI backend.

This package provides the REST API endpoints for:
- The data view: edits, selection, context menu (data_table.py)
- The variable view: edits, dialogs, context menu (variable_table.py)
- Store snapshot, load, reset and operation history (grid_state.py)
- System health, error log and settings (system.py)

and the layers behind them:
- Variable and data stores (stores/)
- The operation queue that serializes store mutations (operations/)
- Change reconcilers, structure builders and context menus (grid/)
"""

from .app_config import GridSettings, app_config
from .grid.session import GridSession, get_grid_session, reset_grid_session

__all__ = [
    "app_config",
    "GridSettings",
    "GridSession",
    "get_grid_session",
    "reset_grid_session",
]
