"""
Tests for the data-view context menu.

Tests:
- Menu items are disabled without a selection and removals in the spare area
- Commands queue the right operations with clamped indices
- Variable records are created before, and removed before, their data columns

Run with: pytest tests/test_context_menu.py -v
"""

import sys
from pathlib import Path

import pytest

# Add webapp to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.grid.context_menu import MENU_LABELS, SelectionRange
from api.grid.session import GridSession
from api.operations import OperationKind, OperationStatus
from api.shared.variables import Variable, VariableAlign
from api.stores import InMemoryDataStore, InMemoryVariableStore


class RecordingVariableStore(InMemoryVariableStore):
    def __init__(self, calls, variables=None):
        super().__init__(variables)
        self.calls = calls

    async def add_variable(self, partial):
        self.calls.append(("variables.add", partial.get("column_index")))
        return await super().add_variable(partial)

    async def delete_variable(self, column_index):
        self.calls.append(("variables.delete", column_index))
        await super().delete_variable(column_index)


class RecordingDataStore(InMemoryDataStore):
    def __init__(self, calls, rows=None):
        super().__init__(rows)
        self.calls = calls

    async def add_column(self, index):
        self.calls.append(("data.add_column", index))
        await super().add_column(index)

    async def delete_columns(self, indices):
        self.calls.append(("data.delete_columns", sorted(indices, reverse=True)))
        await super().delete_columns(indices)


@pytest.fixture
def session(variable_store, data_store):
    return GridSession(variable_store, data_store)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def recording_session(calls, sample_variables, sample_rows):
    return GridSession(
        RecordingVariableStore(calls, sample_variables),
        RecordingDataStore(calls, sample_rows),
    )


def _sel(row, col, row2=None, col2=None):
    return SelectionRange.from_corners(row, col, row if row2 is None else row2, col if col2 is None else col2)


# ============================================================================
# Selection
# ============================================================================


class TestSelectionRange:
    def test_corners_are_normalised(self):
        selection = SelectionRange.from_corners(4, 3, 1, 0)
        assert (selection.from_row, selection.from_col, selection.to_row, selection.to_col) == (1, 0, 4, 3)
        assert selection.rows == [1, 2, 3, 4]
        assert selection.cols == [0, 1, 2, 3]

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            SelectionRange.from_corners(-1, 0, 0, 0)

    def test_single_cell(self):
        assert _sel(2, 2).is_single_cell
        assert not _sel(2, 2, 2, 3).is_single_cell


# ============================================================================
# Menu state
# ============================================================================


class TestMenuItems:
    def test_all_disabled_without_selection(self, session):
        items = session.context_menu.menu_items(None)
        assert [item["key"] for item in items] == list(MENU_LABELS)
        assert all(item["disabled"] for item in items)

    def test_all_enabled_inside_data(self, session):
        items = session.context_menu.menu_items(_sel(0, 0))
        assert not any(item["disabled"] for item in items)

    def test_removals_disabled_in_spare_area(self, session):
        items = {i["key"]: i["disabled"] for i in session.context_menu.menu_items(_sel(5, 5))}
        assert items["remove_row"] is True
        assert items["remove_col"] is True
        assert items["row_above"] is False

    def test_execute_disabled_item(self, session):
        with pytest.raises(ValueError, match="disabled"):
            session.context_menu.execute("remove_row", None)

    def test_execute_unknown_item(self, session):
        with pytest.raises(KeyError):
            session.context_menu.execute("explode", _sel(0, 0))


# ============================================================================
# Commands
# ============================================================================


class TestCommands:
    def test_row_above_and_below(self, session):
        above = session.context_menu.execute("row_above", _sel(1, 0, 2, 0))
        below = session.context_menu.execute("row_below", _sel(1, 0, 2, 0))
        assert above.kind == below.kind == OperationKind.INSERT_ROWS
        assert above.payload == {"index": 1, "amount": 2}
        assert below.payload == {"index": 3, "amount": 2}

    def test_insert_index_clamped_to_extent(self, session):
        operation = session.context_menu.execute("col_right", _sel(0, 10))
        assert operation.payload == {"index": 2, "amount": 1}

    def test_remove_skips_spare_indices(self, session):
        operation = session.context_menu.execute("remove_row", _sel(1, 0, 7, 0))
        assert operation.payload == {"indices": [1, 2]}

    def test_alignment(self, session):
        operation = session.context_menu.execute("alignment:center", _sel(0, 0, 0, 1))
        assert operation.kind == OperationKind.SET_ALIGNMENT
        assert operation.payload == {"columns": [0, 1], "align": "center"}

    def test_resize_only_committed_columns(self, session):
        assert session.context_menu.resize_column(5, 100) is None
        operation = session.context_menu.resize_column(0, 100)
        assert operation.kind == OperationKind.RESIZE_COLUMN


class TestAppliedCommands:
    @pytest.mark.asyncio
    async def test_insert_rows(self, session):
        session.context_menu.execute("row_above", _sel(0, 0, 1, 0))
        await session.queue.drain()
        data = session.data_store.get_data()
        assert data[:2] == [["", ""], ["", ""]]
        assert data[2] == [31, "01-02-2020"]

    @pytest.mark.asyncio
    async def test_remove_rows(self, session):
        session.context_menu.execute("remove_row", _sel(0, 0, 1, 1))
        await session.queue.drain()
        assert session.data_store.get_data() == [["", "15-10-1582"]]

    @pytest.mark.asyncio
    async def test_insert_column_keeps_variables_aligned(self, session):
        session.context_menu.execute("col_left", _sel(0, 1))
        await session.queue.drain()

        variables = session.variable_store.get_variables()
        assert [(v.name, v.column_index) for v in variables] == [("age", 0), ("var2", 1), ("visit", 2)]
        assert session.data_store.get_data()[0] == [31, "", "01-02-2020"]

    @pytest.mark.asyncio
    async def test_insert_column_into_sparse_gap(self):
        session = GridSession(
            InMemoryVariableStore([Variable(name="a", column_index=0), Variable(name="c", column_index=2)]),
            InMemoryDataStore([["A", "B", "C"]]),
        )
        session.context_menu.execute("col_left", _sel(0, 1))
        await session.queue.drain()

        variables = session.variable_store.get_variables()
        assert [(v.name, v.column_index) for v in variables] == [("a", 0), ("var2", 1), ("c", 3)]
        row = session.data_store.get_data()[0]
        assert row == ["A", "", "B", "C"]
        assert row[variables[2].column_index] == "C"

    @pytest.mark.asyncio
    async def test_remove_columns(self, session):
        session.context_menu.execute("remove_col", _sel(0, 0, 0, 1))
        await session.queue.drain()
        assert session.variable_store.get_variables() == []
        assert session.data_store.get_data() == [[], [], []]

    @pytest.mark.asyncio
    async def test_alignment_and_resize(self, session):
        session.context_menu.execute("alignment:left", _sel(0, 0, 0, 4))
        session.context_menu.resize_column(1, 120)
        await session.queue.drain()

        assert all(op.status == OperationStatus.COMPLETED for op in session.queue.list_operations())
        age = session.variable_store.get_variable_by_column_index(0)
        visit = session.variable_store.get_variable_by_column_index(1)
        assert age.align == VariableAlign.LEFT
        assert visit.columns == 120


class TestStoreCallOrder:
    @pytest.mark.asyncio
    async def test_variable_created_before_data_column(self, recording_session, calls):
        recording_session.context_menu.execute("col_left", _sel(0, 0, 0, 1))
        await recording_session.queue.drain()
        assert calls == [
            ("variables.add", 0),
            ("data.add_column", 0),
            ("variables.add", 1),
            ("data.add_column", 1),
        ]

    @pytest.mark.asyncio
    async def test_variables_removed_before_data_columns(self, recording_session, calls):
        recording_session.context_menu.execute("remove_col", _sel(0, 0, 0, 1))
        await recording_session.queue.drain()
        assert calls == [
            ("variables.delete", 1),
            ("variables.delete", 0),
            ("data.delete_columns", [1, 0]),
        ]
