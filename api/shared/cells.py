"""
Cell values for the data grid.

The data matrix only ever holds committed cells: an empty string for a
committed-but-blank cell, or a real value. Cells outside the actual extent
exist only in derived display matrices and are tagged SPARE, so the three
states stay distinguishable without relying on ``None`` vs ``""`` alone.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

CellValue = Union[str, int, float]


class CellKind(str, Enum):
    """State of a displayed cell."""

    SPARE = "spare"
    BLANK = "blank"
    VALUE = "value"


@dataclass(frozen=True)
class Cell:
    """A displayed grid cell."""

    kind: CellKind
    value: Optional[CellValue] = None

    @classmethod
    def spare(cls) -> "Cell":
        return cls(CellKind.SPARE)

    @classmethod
    def blank(cls) -> "Cell":
        return cls(CellKind.BLANK, "")

    @classmethod
    def of(cls, value: Any) -> "Cell":
        """Wrap a committed matrix value."""
        if is_empty_like(value):
            return cls.blank()
        return cls(CellKind.VALUE, value)

    @property
    def is_spare(self) -> bool:
        return self.kind == CellKind.SPARE

    def to_wire(self) -> Optional[CellValue]:
        """Value as sent to the grid widget: spare -> null, blank -> ""."""
        if self.kind == CellKind.SPARE:
            return None
        if self.kind == CellKind.BLANK:
            return ""
        return self.value


def is_empty_like(value: Any) -> bool:
    """True for ``None`` and the empty string."""
    return value is None or value == ""


def values_equal(old: Any, new: Any) -> bool:
    """Whether an edit from ``old`` to ``new`` changes nothing."""
    if is_empty_like(old) and is_empty_like(new):
        return True
    if type(old) is bool or type(new) is bool:
        return old is new
    return old == new


def parse_numeric(value: Any) -> Optional[Union[int, float]]:
    """Parse a cell value as a number.

    Whitespace and every comma are stripped first, so ``1,234.5`` and
    ``12,34`` both parse.
    Returns ``None`` for empty, non-numeric, boolean, NaN and infinite input.
    Integral results are returned as ``int``.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None

    if math.isnan(number) or math.isinf(number):
        return None
    if number.is_integer() and abs(number) < 2**53:
        return int(number)
    return number


def is_numeric_like(value: Any) -> bool:
    """True when ``value`` is empty or parses as a number."""
    return is_empty_like(value) or parse_numeric(value) is not None
