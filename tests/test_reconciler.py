"""
Tests for the data-view change reconciler and column schema inference.

Tests:
- The widget is never allowed to apply a user edit itself
- Invalid dates or numbers reject the whole batch
- Edits are classified into the right operations, in dependency order
- New columns get a NUMERIC or STRING variable from their values
- Applying the planned operations leaves the stores in the expected state

Run with: pytest tests/test_reconciler.py -v
"""

import sys
from pathlib import Path

import pytest

# Add webapp to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.grid.edits import CellEdit, filter_effective_edits, parse_edits
from api.grid.reconciler import LOAD_DATA_SOURCE
from api.grid.schema_inference import infer_column_schema, infer_variable_descriptor
from api.grid.session import GridSession
from api.operations import OperationKind, OperationStatus
from api.shared.variables import VariableType
from api.stores import InMemoryDataStore, InMemoryVariableStore


@pytest.fixture
def session(variable_store, data_store):
    return GridSession(variable_store, data_store)


@pytest.fixture
def empty_session():
    return GridSession(InMemoryVariableStore(), InMemoryDataStore())


def _kinds(result):
    return [op.kind for op in result.operations]


# ============================================================================
# Edit parsing
# ============================================================================


class TestParseEdits:
    def test_ignores_malformed_entries(self):
        edits = parse_edits([None, [], [0, 1], [0, 0, None, 5], [-1, 0, None, 1], ["a", 0, None, 1]])
        assert edits == [CellEdit(0, 0, None, 5)]

    def test_prop_lookup(self):
        edits = parse_edits([[2, "name", "", "x"]], prop_to_col={"name": 0}.get)
        assert edits == [CellEdit(2, 0, "", "x")]

    def test_unresolved_prop_is_ignored(self):
        assert parse_edits([[2, "colour", "", "x"]], prop_to_col={"name": 0}.get) == []

    def test_noop_edits_are_filtered(self):
        edits = parse_edits([[0, 0, None, ""], [0, 1, 3, 3], [0, 2, "", "x"]])
        assert filter_effective_edits(edits) == [CellEdit(0, 2, "", "x")]


# ============================================================================
# Veto
# ============================================================================


class TestVeto:
    def test_user_edits_are_always_vetoed(self, session):
        result = session.data_reconciler.before_change([[0, 0, 31, 32]], "edit")
        assert result.allow_direct_edit is False
        assert not result.rejected

    def test_paste_is_vetoed(self, session):
        result = session.data_reconciler.before_change([[0, 0, 31, 32]], "CopyPaste.paste")
        assert result.allow_direct_edit is False

    def test_load_data_passes_through_without_operations(self, session):
        result = session.data_reconciler.before_change([[0, 0, 31, 32]], LOAD_DATA_SOURCE)
        assert result.allow_direct_edit is True
        assert result.operations == []
        assert session.queue.pending_count == 0

    def test_empty_batch(self, session):
        result = session.data_reconciler.before_change(None)
        assert result.operations == []
        assert not result.rejected


# ============================================================================
# Validation
# ============================================================================


class TestValidation:
    def test_invalid_date_rejects_whole_batch(self, session):
        result = session.data_reconciler.before_change([
            [0, 0, 31, 40],
            [1, 1, "", "31-02-2020"],
        ])
        assert result.rejected
        assert result.operations == []
        assert session.queue.pending_count == 0
        assert [(c.row, c.col) for c in result.invalid_cells] == [(1, 1)]

    def test_date_before_epoch_rejected(self, session):
        result = session.data_reconciler.before_change([[0, 1, "", "14-10-1582"]])
        assert result.rejected

    def test_non_numeric_in_numeric_column_rejected(self, session):
        result = session.data_reconciler.before_change([[0, 0, 31, "thirty"]])
        assert result.rejected
        assert result.invalid_cells[0].reason == "Value must be numeric"

    def test_date_errors_reported_before_numeric_errors(self, session):
        result = session.data_reconciler.before_change([
            [0, 0, 31, "thirty"],
            [0, 1, "", "bad"],
        ])
        assert [(c.row, c.col) for c in result.invalid_cells] == [(0, 1)]

    def test_clearing_a_typed_cell_is_valid(self, session):
        result = session.data_reconciler.before_change([[0, 1, "01-02-2020", ""]])
        assert not result.rejected

    def test_columns_without_variables_are_not_validated(self, session):
        result = session.data_reconciler.before_change([[0, 2, "", "anything"]])
        assert not result.rejected


# ============================================================================
# Classification
# ============================================================================


class TestClassification:
    def test_plain_update(self, session):
        result = session.data_reconciler.before_change([[0, 0, 31, 32]])
        assert _kinds(result) == [OperationKind.UPDATE_CELLS]

    def test_spare_row_edit_adds_row(self, session):
        result = session.data_reconciler.before_change([[3, 0, None, 50]])
        assert _kinds(result) == [OperationKind.ADD_ROW_AND_UPDATE]
        assert result.operations[0].payload["target_rows"] == 4

    def test_spare_column_edit_adds_column(self, session):
        result = session.data_reconciler.before_change([[0, 2, None, "x"]])
        assert _kinds(result) == [OperationKind.ADD_COL_AND_UPDATE]
        payload = result.operations[0].payload
        assert payload["target_cols"] == 3
        assert [d["column_index"] for d in payload["new_variables"]] == [2]

    def test_spare_corner_edit_adds_row_and_column(self, session):
        result = session.data_reconciler.before_change([[3, 2, None, 1]])
        assert _kinds(result) == [OperationKind.ADD_ROW_COL_AND_UPDATE]

    def test_edit_beyond_spare_column_adds_columns_first(self, session):
        result = session.data_reconciler.before_change([[0, 5, None, 1]])
        assert _kinds(result) == [OperationKind.ADD_COLS_IMPLICIT, OperationKind.UPDATE_CELLS]
        implicit = result.operations[0].payload
        assert implicit["target_cols"] == 6
        assert [d["column_index"] for d in implicit["new_variables"]] == [2, 3, 4, 5]

    def test_paste_past_both_edges(self, session):
        result = session.data_reconciler.before_change([[3, 4, None, 1], [4, 5, None, 2]])
        assert _kinds(result) == [OperationKind.ADD_COLS_IMPLICIT, OperationKind.ADD_ROW_AND_UPDATE]
        assert result.operations[1].payload["target_rows"] == 5

    def test_operations_are_enqueued_in_plan_order(self, session):
        result = session.data_reconciler.before_change([[0, 5, None, 1]])
        pending = session.queue.list_operations(status=OperationStatus.PENDING)
        assert [op.id for op in reversed(pending)] == [op.id for op in result.operations]


# ============================================================================
# Schema inference
# ============================================================================


class TestSchemaInference:
    def test_numeric_values(self):
        descriptor = infer_variable_descriptor(0, ["1", 2, "3.5", ""])
        assert descriptor["type"] == "NUMERIC"
        assert descriptor["decimals"] == 2
        assert descriptor["align"] == "right"

    def test_one_text_value_makes_string(self):
        descriptor = infer_variable_descriptor(1, ["1", "two"])
        assert descriptor["type"] == "STRING"
        assert descriptor["decimals"] == 0
        assert descriptor["align"] == "left"
        assert descriptor["name"] == "var2"

    def test_string_width_fits_longest_value(self):
        descriptor = infer_variable_descriptor(0, ["a much longer value"])
        assert descriptor["width"] == len("a much longer value")

    def test_empty_column_is_numeric(self):
        assert infer_variable_descriptor(0, [])["type"] == "NUMERIC"

    def test_comma_grouped_digits_are_numeric(self):
        assert infer_variable_descriptor(0, ["12,34"])["type"] == "NUMERIC"

    @pytest.mark.parametrize("values", [["1", 2], ["one"]])
    def test_new_variables_are_nominal(self, values):
        assert infer_variable_descriptor(0, values)["measure"] == "nominal"

    def test_schema_covers_every_missing_column(self):
        edits = [CellEdit(0, 3, None, "x"), CellEdit(1, 1, None, 5)]
        descriptors = infer_column_schema({0}, edits, 4)
        assert [(d["column_index"], d["type"]) for d in descriptors] == [
            (1, "NUMERIC"),
            (2, "NUMERIC"),
            (3, "STRING"),
        ]

    def test_pure_function(self):
        edits = [CellEdit(0, 0, None, "x")]
        assert infer_column_schema(set(), edits, 2) == infer_column_schema(set(), edits, 2)


# ============================================================================
# Applied state
# ============================================================================


class TestAppliedEdits:
    @pytest.mark.asyncio
    async def test_first_edit_in_empty_grid(self, empty_session):
        empty_session.data_reconciler.before_change([[0, 0, None, "hello"]])
        await empty_session.queue.drain()

        variable = empty_session.variable_store.get_variable_by_column_index(0)
        assert variable.type == VariableType.STRING
        assert empty_session.data_store.get_data() == [["hello"]]

    @pytest.mark.asyncio
    async def test_edit_far_from_data_creates_gap_variables(self, empty_session):
        empty_session.data_reconciler.before_change([[2, 3, None, "7"]])
        await empty_session.queue.drain()

        variables = empty_session.variable_store.get_variables()
        assert [v.column_index for v in variables] == [0, 1, 2, 3]
        data = empty_session.data_store.get_data()
        assert len(data) == 3
        assert data[2][3] == 7
        assert data[0] == ["", "", "", ""]

    @pytest.mark.asyncio
    async def test_numeric_text_is_stored_as_number(self, session):
        session.data_reconciler.before_change([[1, 0, 45, "1,200"]])
        await session.queue.drain()
        assert session.data_store.get_data()[1][0] == 1200

    @pytest.mark.asyncio
    async def test_two_batches_on_same_new_column_create_one_variable(self, session):
        session.data_reconciler.before_change([[0, 2, None, "a"]])
        session.data_reconciler.before_change([[1, 2, None, "b"]])
        await session.queue.drain()

        variables = session.variable_store.get_variables()
        assert [v.column_index for v in variables] == [0, 1, 2]
        assert all(op.status == OperationStatus.COMPLETED for op in session.queue.list_operations())
        assert [row[2] for row in session.data_store.get_data()] == ["a", "b", ""]
