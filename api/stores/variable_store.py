"""
In-memory variable store.

Keeps Variable records sorted by column index. Inserting at an occupied index
shifts every following record up by one; deleting shifts them down, which is
what keeps variables aligned with data columns when columns are inserted or
removed.

Mutations are coroutines without internal await points, so each one is
applied in full before any other task observes the store.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Dict, List, Optional, Sequence

from ..shared.logger import get_logger
from ..shared.variables import Variable, default_variable_name

logger = get_logger(__name__)

_DEFAULT_NAME = re.compile(r"^var\d+$", re.IGNORECASE)


class InMemoryVariableStore:
    """Variable metadata held in process memory."""

    def __init__(self, variables: Optional[Sequence[Variable]] = None):
        self._variables: List[Variable] = []
        if variables:
            self.load(variables)

    # ============= Reads =============

    def get_variables(self) -> List[Variable]:
        return copy.deepcopy(self._variables)

    def get_variable_by_column_index(self, column_index: int) -> Optional[Variable]:
        variable = self._find(column_index)
        return copy.deepcopy(variable) if variable else None

    def __len__(self) -> int:
        return len(self._variables)

    # ============= Mutations =============

    async def add_variable(self, partial: Dict[str, Any]) -> Variable:
        """Create one variable.

        Without ``column_index`` the variable is appended after the highest
        index. Every variable at or after the index shifts up by one, so the
        store stays aligned with a data column inserted at the same index.
        """
        index = partial.get("column_index")
        if index is None:
            index = self._next_index()
        index = int(index)
        if index < 0:
            raise ValueError(f"Invalid column index: {index}")

        variable = self._build(partial, index)
        for existing in self._variables:
            if existing.column_index >= index:
                existing.column_index += 1

        self._variables.append(variable)
        self._sort()
        logger.debug("Added variable %s at column %d", variable.name, index)
        return copy.deepcopy(variable)

    async def add_multiple_variables(self, partials: Sequence[Dict[str, Any]]) -> List[Variable]:
        """Create several variables at free indices (no shifting).

        Raises:
            ValueError: If an index is already occupied or repeated. Nothing
                is created in that case.
        """
        next_index = self._next_index()
        indices = []
        for partial in partials:
            index = partial.get("column_index")
            if index is None:
                index = next_index
            next_index = max(next_index, int(index) + 1)
            indices.append(int(index))

        if len(set(indices)) != len(indices):
            raise ValueError(f"Duplicate column indices: {indices}")
        occupied = [i for i in indices if self._find(i) is not None]
        if occupied:
            raise ValueError(f"Columns already have variables: {occupied}")

        created = []
        for partial, index in zip(partials, indices):
            variable = self._build(partial, index)
            self._variables.append(variable)
            created.append(variable)
        self._sort()
        logger.debug("Added %d variables at columns %s", len(created), indices)
        return copy.deepcopy(created)

    async def delete_variable(self, column_index: int) -> None:
        """Remove the variable at ``column_index`` (if any) and close the gap."""
        self._variables = [v for v in self._variables if v.column_index != column_index]
        for variable in self._variables:
            if variable.column_index > column_index:
                variable.column_index -= 1

    async def update_variable(self, column_index: int, field: str, value: Any) -> Variable:
        return await self.update_multiple_fields(column_index, {field: value})

    async def update_multiple_fields(self, column_index: int, changes: Dict[str, Any]) -> Variable:
        """Apply several field changes at once.

        Raises:
            KeyError: If no variable exists at ``column_index``.
            ValueError: If a change is invalid; the record is left untouched.
        """
        variable = self._find(column_index)
        if variable is None:
            raise KeyError(f"No variable at column {column_index}")

        updated = copy.deepcopy(variable)
        # Type first so values and missing validate against the new type
        for field in sorted(changes, key=lambda f: f != "type"):
            if field == "column_index":
                continue
            updated.update_field(field, changes[field])

        self._variables[self._variables.index(variable)] = updated
        return copy.deepcopy(updated)

    async def ensure_complete_variables(self, max_index: int) -> List[Variable]:
        """Create default variables for every free index up to ``max_index``."""
        created = []
        for index in range(max_index + 1):
            if self._find(index) is None:
                variable = self._build({}, index)
                self._variables.append(variable)
                created.append(variable)
        self._sort()
        return copy.deepcopy(created)

    def load(self, variables: Sequence[Variable]) -> None:
        """Replace the whole collection."""
        indices = [v.column_index for v in variables]
        if len(set(indices)) != len(indices):
            raise ValueError("Variable column indices must be unique")
        self._variables = copy.deepcopy(list(variables))
        self._sort()

    def reset(self) -> None:
        self._variables = []

    # ============= Helpers =============

    def _find(self, column_index: int) -> Optional[Variable]:
        for variable in self._variables:
            if variable.column_index == column_index:
                return variable
        return None

    def _next_index(self) -> int:
        return max((v.column_index for v in self._variables), default=-1) + 1

    def _sort(self) -> None:
        self._variables.sort(key=lambda v: v.column_index)

    def _build(self, partial: Dict[str, Any], index: int) -> Variable:
        variable = Variable.from_partial(partial, column_index=index)
        variable.name = self._unique_name(variable.name or default_variable_name(index), index)
        return variable

    def _unique_name(self, name: str, index: int) -> str:
        """Names are unique case-insensitively at creation time."""
        taken = {v.name.lower() for v in self._variables}
        if name.lower() not in taken:
            return name

        if _DEFAULT_NAME.match(name):
            counter = index + 1
            while f"var{counter}" in taken:
                counter += 1
            return f"var{counter}"

        suffix = 2
        while f"{name}_{suffix}".lower() in taken:
            suffix += 1
        return f"{name}_{suffix}"
