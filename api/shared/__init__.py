"""
Shared utilities for the statgrid webapp API.

Cell values, date validation and variable metadata used by the stores, the
grid layer and the API routes.
"""
from .cells import Cell, CellKind, is_empty_like, parse_numeric, values_equal
from .dates import SPSS_EPOCH, parse_spss_date, validate_spss_date
from .variables import (
    MissingKind,
    MissingValuesSpec,
    ValueLabel,
    Variable,
    VariableAlign,
    VariableType,
)

__all__ = [
    "Cell",
    "CellKind",
    "is_empty_like",
    "parse_numeric",
    "values_equal",
    "SPSS_EPOCH",
    "parse_spss_date",
    "validate_spss_date",
    "MissingKind",
    "MissingValuesSpec",
    "ValueLabel",
    "Variable",
    "VariableAlign",
    "VariableType",
]
