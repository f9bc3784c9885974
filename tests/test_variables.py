"""
Tests for variable metadata: defaults, field updates, value labels and
missing value specs.

Run with: pytest tests/test_variables.py -v
"""

import sys
from pathlib import Path

import pytest

# Add webapp to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.shared.variables import (
    MissingKind,
    MissingValuesSpec,
    ValueLabel,
    Variable,
    VariableAlign,
    VariableType,
    coerce_variable_type,
    validate_value_labels,
)


class TestVariableDefaults:
    def test_numeric_defaults(self):
        variable = Variable.from_partial({}, column_index=2)
        assert variable.name == "var3"
        assert variable.type == VariableType.NUMERIC
        assert variable.width == 8
        assert variable.decimals == 2
        assert variable.align == VariableAlign.RIGHT

    def test_string_defaults(self):
        variable = Variable.from_partial({"type": "string"}, column_index=0)
        assert variable.type == VariableType.STRING
        assert variable.decimals == 0
        assert variable.align == VariableAlign.LEFT

    def test_date_defaults(self):
        variable = Variable.from_partial({"type": "DATE"}, column_index=0)
        assert variable.width == 10
        assert variable.decimals == 0

    def test_explicit_fields_win_over_type_defaults(self):
        variable = Variable.from_partial({"type": "STRING", "width": 20, "align": "center"}, column_index=0)
        assert variable.width == 20
        assert variable.align == VariableAlign.CENTER

    def test_blank_name_gets_default(self):
        assert Variable.from_partial({"name": ""}, column_index=4).name == "var5"

    def test_column_index_required(self):
        with pytest.raises(ValueError):
            Variable.from_partial({})

    def test_dict_round_trip_keeps_fields(self):
        variable = Variable.from_partial(
            {
                "name": "gender",
                "values": [{"value": 1, "label": "Male"}],
                "missing": {"kind": "discrete", "discrete": [9]},
                "measure": "nominal",
            },
            column_index=3,
        )
        restored = Variable.from_dict(variable.to_dict())
        assert restored == variable


class TestUpdateField:
    def test_width_must_be_positive_integer(self):
        variable = Variable(name="a", column_index=0)
        with pytest.raises(ValueError):
            variable.update_field("width", 0)
        with pytest.raises(ValueError):
            variable.update_field("width", "abc")
        with pytest.raises(ValueError):
            variable.update_field("decimals", 1.5)

    def test_numeric_text_is_accepted(self):
        variable = Variable(name="a", column_index=0)
        variable.update_field("width", "12")
        assert variable.width == 12

    def test_unknown_field(self):
        with pytest.raises(ValueError, match="Unknown variable field"):
            Variable(name="a", column_index=0).update_field("colour", "red")

    def test_invalid_enum_value(self):
        with pytest.raises(ValueError):
            Variable(name="a", column_index=0).update_field("measure", "loud")

    def test_switch_to_string_drops_range_missing(self):
        variable = Variable(name="a", column_index=0, missing=MissingValuesSpec.value_range(1, 5))
        variable.update_field("type", "STRING")
        assert variable.missing.kind == MissingKind.NONE


class TestVariableTypes:
    def test_case_insensitive(self):
        assert coerce_variable_type("comma") == VariableType.COMMA

    def test_unknown_without_fallback(self):
        with pytest.raises(ValueError):
            coerce_variable_type("BOGUS")

    def test_unknown_with_fallback(self):
        assert coerce_variable_type("BOGUS", fallback=VariableType.NUMERIC) == VariableType.NUMERIC

    def test_numeric_family(self):
        assert Variable(name="a", column_index=0, type=VariableType.DOLLAR).is_numeric
        assert not Variable(name="a", column_index=0, type=VariableType.DATE).is_numeric


# ============================================================================
# Value labels
# ============================================================================


class TestValueLabels:
    def test_numeric_values_are_converted(self):
        labels = validate_value_labels([ValueLabel("1", "Male")], VariableType.NUMERIC)
        assert labels == [ValueLabel(1, "Male")]

    def test_single_space_allowed_for_numeric(self):
        labels = validate_value_labels([ValueLabel(" ", "Blank")], VariableType.NUMERIC)
        assert labels[0].value == " "

    def test_non_numeric_rejected_for_numeric(self):
        with pytest.raises(ValueError, match="numeric"):
            validate_value_labels([ValueLabel("x", "X")], VariableType.NUMERIC)

    def test_string_values_kept_as_text(self):
        labels = validate_value_labels([ValueLabel("m", "Male")], VariableType.STRING)
        assert labels[0].value == "m"

    def test_empty_value_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            validate_value_labels([ValueLabel("", "None")], VariableType.STRING)

    def test_duplicates_rejected(self):
        with pytest.raises(ValueError, match="already exists"):
            validate_value_labels([ValueLabel(1, "a"), ValueLabel("1", "b")], VariableType.NUMERIC)

    def test_label_byte_limit(self):
        validate_value_labels([ValueLabel(1, "x" * 120)], VariableType.NUMERIC)
        with pytest.raises(ValueError, match="120 bytes"):
            # Two bytes per character in UTF-8
            validate_value_labels([ValueLabel(1, "é" * 61)], VariableType.NUMERIC)

    def test_empty_label_defaults_to_value(self):
        labels = validate_value_labels([ValueLabel(2, "")], VariableType.NUMERIC)
        assert labels[0].label == "2"


# ============================================================================
# Missing values
# ============================================================================


class TestMissingValuesSpec:
    def test_none(self):
        spec = MissingValuesSpec.none().validate(VariableType.NUMERIC)
        assert spec.kind == MissingKind.NONE
        assert not spec.contains(1)
        assert spec.describe() == "None"

    def test_discrete_numeric(self):
        spec = MissingValuesSpec.discrete_values(["1", 2, "3"]).validate(VariableType.NUMERIC)
        assert spec.discrete == [1, 2, 3]
        assert spec.contains(2)
        assert spec.contains("3")
        assert not spec.contains(4)
        assert spec.describe() == "1, 2, 3"

    def test_at_most_three_discrete(self):
        with pytest.raises(ValueError, match="At most 3"):
            MissingValuesSpec.discrete_values([1, 2, 3, 4]).validate(VariableType.NUMERIC)

    def test_discrete_must_be_numeric_for_numeric_type(self):
        with pytest.raises(ValueError, match="numeric"):
            MissingValuesSpec.discrete_values(["x"]).validate(VariableType.NUMERIC)

    def test_string_discrete_byte_limit(self):
        MissingValuesSpec.discrete_values(["abcdefgh"]).validate(VariableType.STRING)
        with pytest.raises(ValueError, match="8 bytes"):
            MissingValuesSpec.discrete_values(["abcdefghi"]).validate(VariableType.STRING)

    def test_range_with_outside_discrete(self):
        spec = MissingValuesSpec.value_range(1, 5, 9).validate(VariableType.NUMERIC)
        assert spec.contains(3)
        assert spec.contains(9)
        assert not spec.contains(6)
        assert spec.describe() == "1 - 5, 9"

    def test_range_discrete_inside_is_rejected(self):
        with pytest.raises(ValueError, match="outside the range"):
            MissingValuesSpec.value_range(1, 5, 3).validate(VariableType.NUMERIC)

    def test_range_low_above_high(self):
        with pytest.raises(ValueError, match="less than or equal"):
            MissingValuesSpec.value_range(5, 1).validate(VariableType.NUMERIC)

    def test_range_not_allowed_for_strings(self):
        with pytest.raises(ValueError, match="string"):
            MissingValuesSpec.value_range(1, 5).validate(VariableType.STRING)

    def test_flat_list_is_discrete(self):
        spec = MissingValuesSpec.from_list([1, 2, ""])
        assert spec.kind == MissingKind.DISCRETE
        assert spec.discrete == [1, 2]
        assert MissingValuesSpec.from_list([]).kind == MissingKind.NONE

    def test_dict_round_trip(self):
        spec = MissingValuesSpec.value_range(0, 10, -1)
        assert MissingValuesSpec.from_dict(spec.to_dict()) == spec

    def test_contains_ignores_none(self):
        spec = MissingValuesSpec.discrete_values([" "]).validate(VariableType.NUMERIC)
        assert not spec.contains(None)
        assert spec.contains(" ")
