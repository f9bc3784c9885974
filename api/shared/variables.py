"""
Variable metadata records.

A Variable describes one data column. ``column_index`` is the only stable join
key between a Variable and the data matrix; names may be blank or duplicated
while the user is editing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .cells import is_empty_like, parse_numeric


class VariableType(str, Enum):
    """Storage and display type of a variable."""

    NUMERIC = "NUMERIC"
    COMMA = "COMMA"
    DOT = "DOT"
    SCIENTIFIC = "SCIENTIFIC"
    DATE = "DATE"
    ADATE = "ADATE"
    EDATE = "EDATE"
    SDATE = "SDATE"
    JDATE = "JDATE"
    QYR = "QYR"
    MOYR = "MOYR"
    WKYR = "WKYR"
    DATETIME = "DATETIME"
    TIME = "TIME"
    DTIME = "DTIME"
    WKDAY = "WKDAY"
    MONTH = "MONTH"
    DOLLAR = "DOLLAR"
    CCA = "CCA"
    CCB = "CCB"
    CCC = "CCC"
    CCD = "CCD"
    CCE = "CCE"
    STRING = "STRING"
    RESTRICTED_NUMERIC = "RESTRICTED_NUMERIC"


class VariableAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VariableMeasure(str, Enum):
    SCALE = "scale"
    ORDINAL = "ordinal"
    NOMINAL = "nominal"
    UNKNOWN = "unknown"


class VariableRole(str, Enum):
    INPUT = "input"
    TARGET = "target"
    BOTH = "both"
    NONE = "none"
    PARTITION = "partition"
    SPLIT = "split"


NUMERIC_TYPES = frozenset({
    VariableType.NUMERIC,
    VariableType.COMMA,
    VariableType.DOT,
    VariableType.SCIENTIFIC,
    VariableType.DOLLAR,
    VariableType.CCA,
    VariableType.CCB,
    VariableType.CCC,
    VariableType.CCD,
    VariableType.CCE,
    VariableType.RESTRICTED_NUMERIC,
})

DEFAULT_VARIABLE_TYPE = VariableType.NUMERIC
DEFAULT_VARIABLE_WIDTH = 8
DEFAULT_VARIABLE_DECIMALS = 2
DEFAULT_COLUMN_WIDTH = 64
DATE_VARIABLE_WIDTH = 10

MAX_LABEL_BYTES = 120
MAX_STRING_MISSING_BYTES = 8
MAX_DISCRETE_MISSING = 3

ValueType = Union[int, float, str]


def default_variable_name(column_index: int) -> str:
    return f"var{column_index + 1}"


def default_alignment(var_type: VariableType) -> VariableAlign:
    """Strings align left, everything else right."""
    return VariableAlign.LEFT if var_type == VariableType.STRING else VariableAlign.RIGHT


def coerce_variable_type(value: Any, fallback: Optional[VariableType] = None) -> VariableType:
    """Return ``value`` as a VariableType.

    Raises:
        ValueError: If the value names no known type and no fallback is given.
    """
    if isinstance(value, VariableType):
        return value
    try:
        return VariableType(str(value).upper())
    except ValueError:
        if fallback is not None:
            return fallback
        raise ValueError(f"Unknown variable type: {value}") from None


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


# ============= Value labels =============


@dataclass
class ValueLabel:
    """One value -> label pair of a variable's value labels."""

    value: ValueType
    label: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "label": self.label}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValueLabel":
        return cls(value=data.get("value", ""), label=data.get("label", "") or "")


def validate_value_labels(
    labels: List[ValueLabel],
    var_type: VariableType,
) -> List[ValueLabel]:
    """Validate and normalise value labels for a variable type.

    Numeric values are converted to numbers for non-string types; a single
    space is kept as-is. Empty labels default to the value text.

    Raises:
        ValueError: On empty, non-numeric or duplicate values, or labels
            longer than the byte limit.
    """
    is_string = var_type == VariableType.STRING
    result: List[ValueLabel] = []
    seen = set()

    for item in labels:
        raw = item.value
        if is_empty_like(raw):
            raise ValueError("Value cannot be empty")

        if is_string or raw == " ":
            value: ValueType = str(raw)
        else:
            number = parse_numeric(raw)
            if number is None:
                raise ValueError(f"Value must be numeric for this variable type: {raw!r}")
            value = number

        if value in seen:
            raise ValueError(f"This value already exists: {value!r}")
        seen.add(value)

        label = item.label if item.label != "" else str(value)
        if _byte_length(label) > MAX_LABEL_BYTES:
            raise ValueError(f"Label cannot exceed {MAX_LABEL_BYTES} bytes")

        result.append(ValueLabel(value=value, label=label))

    return result


# ============= Missing values =============


class MissingKind(str, Enum):
    NONE = "none"
    DISCRETE = "discrete"
    RANGE = "range"


@dataclass
class MissingValuesSpec:
    """User-missing value definition.

    Either nothing, up to three discrete values, or a numeric range with at
    most one extra discrete value outside it.
    """

    kind: MissingKind = MissingKind.NONE
    discrete: List[ValueType] = field(default_factory=list)
    low: Optional[float] = None
    high: Optional[float] = None

    @classmethod
    def none(cls) -> "MissingValuesSpec":
        return cls()

    @classmethod
    def discrete_values(cls, values: List[ValueType]) -> "MissingValuesSpec":
        return cls(kind=MissingKind.DISCRETE, discrete=list(values))

    @classmethod
    def value_range(
        cls,
        low: float,
        high: float,
        discrete: Optional[ValueType] = None,
    ) -> "MissingValuesSpec":
        return cls(
            kind=MissingKind.RANGE,
            low=low,
            high=high,
            discrete=[] if discrete is None else [discrete],
        )

    def validate(self, var_type: VariableType) -> "MissingValuesSpec":
        """Return a normalised copy valid for ``var_type``.

        Raises:
            ValueError: If the spec breaks a rule for the variable type.
        """
        is_string = var_type == VariableType.STRING

        if self.kind == MissingKind.NONE:
            return MissingValuesSpec.none()

        if self.kind == MissingKind.DISCRETE:
            values = [v for v in self.discrete if v != "" and v is not None]
            if not values:
                raise ValueError("At least one discrete missing value is required")
            if len(values) > MAX_DISCRETE_MISSING:
                raise ValueError(f"At most {MAX_DISCRETE_MISSING} discrete missing values are allowed")

            normalised: List[ValueType] = []
            for v in values:
                if is_string:
                    text = str(v)
                    if _byte_length(text) > MAX_STRING_MISSING_BYTES:
                        raise ValueError(
                            f"String missing values cannot exceed {MAX_STRING_MISSING_BYTES} bytes"
                        )
                    normalised.append(text)
                elif v == " ":
                    normalised.append(v)
                else:
                    number = parse_numeric(v)
                    if number is None:
                        raise ValueError(f"Missing value must be numeric: {v!r}")
                    normalised.append(number)
            return MissingValuesSpec.discrete_values(normalised)

        if is_string:
            raise ValueError("Missing value ranges are not allowed for string variables")

        low = parse_numeric(self.low)
        high = parse_numeric(self.high)
        if low is None or high is None:
            raise ValueError("Range values must be numeric")
        if low > high:
            raise ValueError("Low value must be less than or equal to high value")

        if len(self.discrete) > 1:
            raise ValueError("A missing value range allows only one discrete value")
        extra = None
        if self.discrete and not is_empty_like(self.discrete[0]):
            extra = parse_numeric(self.discrete[0])
            if extra is None:
                raise ValueError("Discrete value must be numeric")
            if low <= extra <= high:
                raise ValueError("Discrete value should be outside the range")

        return MissingValuesSpec.value_range(low, high, extra)

    def contains(self, value: Any) -> bool:
        """Whether ``value`` counts as user-missing under this spec."""
        if self.kind == MissingKind.NONE or value is None:
            return False
        if value in self.discrete:
            return True
        number = parse_numeric(value)
        if number is None:
            return False
        if any(parse_numeric(d) == number for d in self.discrete):
            return True
        if self.kind == MissingKind.RANGE:
            return self.low <= number <= self.high
        return False

    @classmethod
    def from_list(cls, values: List[ValueType]) -> "MissingValuesSpec":
        """Read a flat list of discrete values; ranges need the dict form."""
        values = [v for v in values if not is_empty_like(v)]
        return cls.discrete_values(values) if values else cls.none()

    def describe(self) -> str:
        """Display text used by the variable view."""
        if self.kind == MissingKind.NONE:
            return "None"
        if self.kind == MissingKind.RANGE:
            text = f"{_fmt(self.low)} - {_fmt(self.high)}"
            if self.discrete:
                text += f", {_fmt(self.discrete[0])}"
            return text
        return ", ".join(_fmt(v) for v in self.discrete)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "discrete": list(self.discrete),
            "low": self.low,
            "high": self.high,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MissingValuesSpec":
        if not data:
            return cls.none()
        return cls(
            kind=MissingKind(data.get("kind", "none")),
            discrete=list(data.get("discrete") or []),
            low=data.get("low"),
            high=data.get("high"),
        )


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ============= Variable =============


@dataclass
class Variable:
    """Metadata for one column of the data matrix."""

    name: str
    column_index: int
    type: VariableType = DEFAULT_VARIABLE_TYPE
    width: int = DEFAULT_VARIABLE_WIDTH
    decimals: int = DEFAULT_VARIABLE_DECIMALS
    label: str = ""
    values: List[ValueLabel] = field(default_factory=list)
    missing: MissingValuesSpec = field(default_factory=MissingValuesSpec)
    columns: int = DEFAULT_COLUMN_WIDTH
    align: VariableAlign = VariableAlign.RIGHT
    measure: VariableMeasure = VariableMeasure.UNKNOWN
    role: VariableRole = VariableRole.INPUT

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_TYPES

    @property
    def is_string(self) -> bool:
        return self.type == VariableType.STRING

    @classmethod
    def from_partial(cls, data: Dict[str, Any], column_index: Optional[int] = None) -> "Variable":
        """Build a Variable from a partial description, filling defaults.

        Type-dependent defaults (decimals, alignment, width for dates) apply
        only to fields the partial does not set.
        """
        index = column_index if column_index is not None else data.get("column_index")
        if index is None:
            raise ValueError("A variable needs a column index")

        var_type = coerce_variable_type(data.get("type", DEFAULT_VARIABLE_TYPE))
        variable = cls(name=default_variable_name(int(index)), column_index=int(index), type=var_type)

        if var_type == VariableType.STRING:
            variable.decimals = 0
        elif var_type == VariableType.DATE:
            variable.width = DATE_VARIABLE_WIDTH
            variable.decimals = 0
        variable.align = default_alignment(var_type)

        for key, value in data.items():
            if key in ("column_index", "type"):
                continue
            if key == "name" and is_empty_like(value):
                continue
            variable.update_field(key, value)
        return variable

    def update_field(self, field_name: str, value: Any) -> None:
        """Set one field, coercing the value to the field's type.

        Raises:
            ValueError: For unknown fields or values that do not fit.
        """
        if field_name == "name":
            self.name = "" if value is None else str(value).strip()
        elif field_name == "type":
            self.type = coerce_variable_type(value)
            if self.is_string and self.missing.kind == MissingKind.RANGE:
                self.missing = MissingValuesSpec.none()
        elif field_name in ("width", "decimals", "columns"):
            number = parse_numeric(value)
            if not isinstance(number, int) or number < 0:
                raise ValueError(f"{field_name} must be a non-negative integer")
            if field_name == "width" and number < 1:
                raise ValueError("width must be at least 1")
            setattr(self, field_name, number)
        elif field_name == "label":
            self.label = "" if value is None else str(value)
        elif field_name == "values":
            labels = [v if isinstance(v, ValueLabel) else ValueLabel.from_dict(v) for v in value or []]
            self.values = validate_value_labels(labels, self.type)
        elif field_name == "missing":
            if isinstance(value, MissingValuesSpec):
                spec = value
            elif isinstance(value, dict):
                spec = MissingValuesSpec.from_dict(value)
            else:
                spec = MissingValuesSpec.from_list(list(value or []))
            self.missing = spec.validate(self.type)
        elif field_name == "align":
            self.align = VariableAlign(str(value).lower())
        elif field_name == "measure":
            self.measure = VariableMeasure(str(value).lower())
        elif field_name == "role":
            self.role = VariableRole(str(value).lower())
        else:
            raise ValueError(f"Unknown variable field: {field_name}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "column_index": self.column_index,
            "type": self.type.value,
            "width": self.width,
            "decimals": self.decimals,
            "label": self.label,
            "values": [v.to_dict() for v in self.values],
            "missing": self.missing.to_dict(),
            "columns": self.columns,
            "align": self.align.value,
            "measure": self.measure.value,
            "role": self.role.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Variable":
        return cls.from_partial(data)
