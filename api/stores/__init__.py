"""
Stores for variable metadata and the raw data matrix.

The grid layer depends on the ``VariableStore`` and ``DataStore`` protocols;
the in-memory implementations back the running webapp and the tests.
"""

from .base import CellUpdate, DataStore, VariableStore, actual_column_count
from .data_store import InMemoryDataStore
from .variable_store import InMemoryVariableStore

__all__ = [
    "CellUpdate",
    "DataStore",
    "VariableStore",
    "actual_column_count",
    "InMemoryDataStore",
    "InMemoryVariableStore",
]
