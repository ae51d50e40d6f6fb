from dataclasses import dataclass
from types import SimpleNamespace
from typing import Optional
from unittest.mock import MagicMock, patch

import pytest

from crm_dashboard.data.models import Engagement
from crm_dashboard.ui.components.data_table import (
    PLACEHOLDER_TEXT,
    ClickEvent,
    Column,
    DataTable,
    RowAction,
    render_data_table,
)


@dataclass(frozen=True)
class Item:
    id: int
    name: str
    amount: Optional[float] = None


COLUMNS = [
    Column("Name", "name"),
    Column("Amount", "amount", cell=lambda item: f"${item.amount or 0:.2f}"),
]


def test_one_display_row_per_data_row_in_input_order():
    rows = [Item(3, "C"), Item(1, "A", 2.5), Item(2, "B")]
    grid = DataTable(COLUMNS, rows).build_grid()

    assert grid.headers == ("Name", "Amount")
    assert not grid.is_placeholder
    assert [r.cells for r in grid.rows] == [("C", "$0.00"), ("A", "$2.50"), ("B", "$0.00")]
    assert [r.source_index for r in grid.rows] == [0, 1, 2]


def test_raw_field_value_used_without_cell_renderer():
    grid = DataTable([Column("Id", "id"), Column("Missing", "nope")], [{"id": 7}]).build_grid()
    assert grid.rows[0].cells == (7, None)


@pytest.mark.parametrize("column_count", [1, 3, 6])
def test_empty_rows_render_single_spanning_placeholder(column_count):
    columns = [Column(f"H{i}", f"f{i}") for i in range(column_count)]
    grid = DataTable(columns, []).build_grid()

    assert grid.is_placeholder
    assert len(grid.rows) == 1
    assert grid.rows[0].colspan == column_count
    assert grid.rows[0].cells == (PLACEHOLDER_TEXT,)
    assert f'colspan="{column_count}"' in grid.to_html()
    assert grid.to_html().count("<td") == 1


def test_row_type_requires_accessor_or_cell():
    with pytest.raises(ValueError, match="nope"):
        DataTable([Column("Bad", "nope")], [], row_type=Item)
    # a cell renderer makes any accessor acceptable
    DataTable([Column("Ok", "nope", cell=lambda i: i.name)], [], row_type=Item)


def test_row_type_accepts_model_properties():
    DataTable([Column("Account", "account_name")], [], row_type=Engagement)


def test_renderer_does_not_mutate_rows():
    rows = [{"name": "A", "amount": 1.0}]
    DataTable(COLUMNS[:1], rows).build_grid()
    assert rows == [{"name": "A", "amount": 1.0}]


def test_row_click_invokes_handler_once_with_full_row():
    clicked = []
    rows = [Item(1, "A"), Item(2, "B")]
    table = DataTable(COLUMNS, rows, on_row_click=clicked.append)

    assert table.handle_click(ClickEvent(row_index=1)) == "row"
    assert clicked == [rows[1]]


def test_click_on_nested_action_does_not_trigger_row_handler():
    clicked, invited = [], []
    rows = [Item(1, "A")]
    columns = COLUMNS + [Column("Actions", "actions", actions=(RowAction("invite", "Invite", invited.append),))]
    table = DataTable(columns, rows, on_row_click=clicked.append)

    assert table.handle_click(ClickEvent(row_index=0, action="invite")) == "invite"
    assert invited == [rows[0]]
    assert clicked == []


def test_clicks_without_handler_or_outside_rows_are_ignored():
    table = DataTable(COLUMNS, [Item(1, "A")])
    assert table.handle_click(ClickEvent(row_index=0)) is None

    clicked = []
    empty = DataTable(COLUMNS, [], on_row_click=clicked.append)
    assert empty.handle_click(ClickEvent(row_index=0)) is None
    assert clicked == []


def test_action_columns_render_no_value():
    columns = [Column("Actions", "actions", actions=(RowAction("go", "Go", lambda r: None),))]
    grid = DataTable(columns, [Item(1, "A")]).build_grid()
    assert grid.rows[0].cells == (None,)


@patch("crm_dashboard.ui.components.data_table.st")
def test_render_empty_table_as_placeholder_html(mock_st):
    render_data_table(DataTable(COLUMNS, []), key="t")

    html = mock_st.markdown.call_args[0][0]
    assert PLACEHOLDER_TEXT in html
    assert 'colspan="2"' in html
    mock_st.dataframe.assert_not_called()


@patch("crm_dashboard.ui.components.data_table.st")
def test_selection_fires_row_handler_once_across_reruns(mock_st):
    mock_st.session_state = {}
    mock_st.dataframe.return_value = SimpleNamespace(selection=SimpleNamespace(rows=[1]))
    clicked = []
    rows = [Item(1, "A"), Item(2, "B")]

    for _ in range(3):
        render_data_table(DataTable(COLUMNS, rows, on_row_click=clicked.append), key="t")

    assert clicked == [rows[1]]
    assert mock_st.dataframe.call_args.kwargs["selection_mode"] == "single-row"


@patch("crm_dashboard.ui.components.data_table.st")
def test_action_button_runs_only_the_action(mock_st):
    clicked, invited = [], []
    rows = [Item(1, "A")]
    columns = [Column("Name", "name"), Column("Actions", "actions", actions=(RowAction("invite", "Invite", invited.append),))]

    def fake_columns(widths):
        cols = [MagicMock() for _ in widths]
        for col in cols:
            col.button.side_effect = lambda label, key: key.endswith("-invite")
        return cols

    mock_st.columns.side_effect = fake_columns
    render_data_table(DataTable(columns, rows, on_row_click=clicked.append), key="t")

    assert invited == [rows[0]]
    assert clicked == []


def test_zero_columns_still_render_one_placeholder():
    grid = DataTable([], []).build_grid()

    assert grid.is_placeholder
    assert grid.rows[0].colspan == 1
    assert 'colspan="1"' in grid.to_html()


@patch("crm_dashboard.ui.components.data_table.st")
def test_selection_at_same_index_fires_again_when_row_changes(mock_st):
    mock_st.session_state = {}
    mock_st.dataframe.return_value = SimpleNamespace(selection=SimpleNamespace(rows=[0]))
    clicked = []

    render_data_table(DataTable(COLUMNS, [Item(1, "A")], on_row_click=clicked.append), key="t")
    render_data_table(DataTable(COLUMNS, [Item(1, "A")], on_row_click=clicked.append), key="t")
    # after a refresh a different record sits at index 0
    render_data_table(DataTable(COLUMNS, [Item(9, "Z")], on_row_click=clicked.append), key="t")

    assert [item.id for item in clicked] == [1, 9]


@patch("crm_dashboard.ui.components.data_table.st")
def test_selection_past_the_end_is_ignored(mock_st):
    mock_st.session_state = {}
    mock_st.dataframe.return_value = SimpleNamespace(selection=SimpleNamespace(rows=[5]))
    clicked = []

    render_data_table(DataTable(COLUMNS, [Item(1, "A")], on_row_click=clicked.append), key="t")

    assert clicked == []
    assert mock_st.dataframe.call_args.kwargs["width"] == "stretch"
