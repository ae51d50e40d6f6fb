"""
Declarative table rendering shared by every list view.

A table is an ordered list of :class:`Column` descriptors applied uniformly to
a list of rows. Each cell shows either the column's ``cell`` output or the raw
field read through ``accessor``. Rows are never inspected beyond that read and
never mutated. An empty row list renders one placeholder row spanning every
column.

No sorting, filtering or pagination.
"""

from __future__ import annotations

import dataclasses
import html
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

import pandas as pd
import streamlit as st
from pydantic import BaseModel

from crm_dashboard.data.aggregation import read_field

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLACEHOLDER_TEXT = "No results found."


@dataclass(frozen=True)
class RowAction(Generic[T]):
    """Interactive control nested inside a cell (e.g. an "Invite" button)."""

    key: str
    label: str
    handler: Callable[[T], Any]


@dataclass(frozen=True)
class Column(Generic[T]):
    header: str
    accessor: str
    cell: Optional[Callable[[T], Any]] = None
    actions: Tuple[RowAction[T], ...] = ()

    def value(self, row: T) -> Any:
        if self.cell is not None:
            return self.cell(row)
        if self.actions:
            return None
        return read_field(row, self.accessor)


@dataclass(frozen=True)
class ClickEvent:
    row_index: int
    # None means the click landed on the row itself
    action: Optional[str] = None


@dataclass(frozen=True)
class GridRow:
    cells: Tuple[Any, ...]
    source_index: Optional[int] = None
    colspan: int = 1


@dataclass(frozen=True)
class TableGrid:
    headers: Tuple[str, ...]
    rows: Tuple[GridRow, ...]
    is_placeholder: bool = False

    def to_frame(self) -> pd.DataFrame:
        if self.is_placeholder:
            return pd.DataFrame(columns=list(self.headers))
        return pd.DataFrame([list(r.cells) for r in self.rows], columns=list(self.headers))

    def to_html(self) -> str:
        head = "".join(f"<th>{html.escape(h)}</th>" for h in self.headers)
        body = []
        for row in self.rows:
            if self.is_placeholder:
                text = html.escape(str(row.cells[0]))
                body.append(f'<tr><td colspan="{row.colspan}" style="text-align:center">{text}</td></tr>')
                continue
            cells = "".join(f"<td>{html.escape(_cell_text(c))}</td>" for c in row.cells)
            body.append(f"<tr>{cells}</tr>")
        return f'<table class="crm-table"><thead><tr>{head}</tr></thead><tbody>{"".join(body)}</tbody></table>'


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value)


def _row_type_fields(row_type: type) -> Optional[set]:
    if isinstance(row_type, type) and issubclass(row_type, BaseModel):
        names = set(row_type.model_fields)
        for klass in row_type.__mro__:
            names.update(n for n, v in vars(klass).items() if isinstance(v, property))
        return names
    if dataclasses.is_dataclass(row_type):
        return {f.name for f in dataclasses.fields(row_type)}
    return None


@dataclass
class DataTable(Generic[T]):
    columns: Sequence[Column[T]]
    rows: Sequence[T]
    on_row_click: Optional[Callable[[T], Any]] = None
    row_type: Optional[type] = None
    placeholder: str = PLACEHOLDER_TEXT

    def __post_init__(self) -> None:
        if self.row_type is None:
            return
        known = _row_type_fields(self.row_type)
        if known is None:
            return
        for column in self.columns:
            if column.cell is None and not column.actions and column.accessor not in known:
                raise ValueError(
                    f"Column {column.header!r}: {self.row_type.__name__} has no field "
                    f"{column.accessor!r} and no cell renderer was given"
                )

    @property
    def headers(self) -> Tuple[str, ...]:
        return tuple(column.header for column in self.columns)

    @property
    def has_actions(self) -> bool:
        return any(column.actions for column in self.columns)

    def build_grid(self) -> TableGrid:
        if not self.rows:
            placeholder = GridRow(cells=(self.placeholder,), colspan=max(len(self.columns), 1))
            return TableGrid(headers=self.headers, rows=(placeholder,), is_placeholder=True)
        grid_rows = tuple(
            GridRow(cells=tuple(column.value(row) for column in self.columns), source_index=idx)
            for idx, row in enumerate(self.rows)
        )
        return TableGrid(headers=self.headers, rows=grid_rows)

    def _find_action(self, key: str) -> RowAction[T]:
        for column in self.columns:
            for action in column.actions:
                if action.key == key:
                    return action
        raise KeyError(key)

    def handle_click(self, event: ClickEvent) -> Optional[str]:
        """Dispatch a click on a data row.

        A click that originates from a nested action runs only that action;
        propagation to the row handler is stopped. Returns the action key that
        ran, ``"row"`` when the row handler ran, or ``None`` when nothing did.
        """
        if not 0 <= event.row_index < len(self.rows):
            return None
        row = self.rows[event.row_index]
        if event.action is not None:
            logger.debug("Action %s on row %d", event.action, event.row_index)
            self._find_action(event.action).handler(row)
            return event.action
        if self.on_row_click is None:
            return None
        self.on_row_click(row)
        return "row"


def _selection_rows(event: Any) -> List[int]:
    selection = getattr(event, "selection", None)
    if selection is None and isinstance(event, dict):
        selection = event.get("selection")
    if selection is None:
        return []
    rows = getattr(selection, "rows", None)
    if rows is None and isinstance(selection, dict):
        rows = selection.get("rows")
    return list(rows or [])


def _row_identity(row: Any, index: int) -> Any:
    row_id = read_field(row, "id")
    return ("id", row_id) if row_id is not None else ("index", index)


def _render_selectable(table: DataTable[T], grid: TableGrid, key: str, height: Optional[int]) -> None:
    kwargs = {"width": "stretch", "hide_index": True}
    if height:
        kwargs["height"] = height
    if table.on_row_click is None:
        st.dataframe(grid.to_frame(), **kwargs)
        return

    event = st.dataframe(
        grid.to_frame(),
        key=key,
        on_select="rerun",
        selection_mode="single-row",
        **kwargs,
    )
    selected = _selection_rows(event)
    # A selection survives reruns; only the first rerun after it changes counts as a click.
    seen_key = f"{key}__handled_selection"
    if not selected:
        st.session_state.pop(seen_key, None)
        return
    index = selected[0]
    if not 0 <= index < len(table.rows):
        return
    # a refetch can put a different row at the same index
    marker = _row_identity(table.rows[index], index)
    if st.session_state.get(seen_key) == marker:
        return
    st.session_state[seen_key] = marker
    table.handle_click(ClickEvent(row_index=index))


def _render_with_actions(table: DataTable[T], grid: TableGrid, key: str) -> None:
    widths = [1] * len(table.columns)
    if table.on_row_click is not None:
        widths.append(1)
    header_cols = st.columns(widths)
    for col, header in zip(header_cols, grid.headers):
        col.markdown(f"**{header}**")

    for grid_row in grid.rows:
        idx = grid_row.source_index
        cols = st.columns(widths)
        for col, column, value in zip(cols, table.columns, grid_row.cells):
            if column.actions:
                for action in column.actions:
                    if col.button(action.label, key=f"{key}-{idx}-{action.key}"):
                        table.handle_click(ClickEvent(row_index=idx, action=action.key))
            else:
                col.write(_cell_text(value))
        if table.on_row_click is not None:
            if cols[-1].button("Open", key=f"{key}-{idx}-open"):
                table.handle_click(ClickEvent(row_index=idx))


def render_data_table(table: DataTable[T], key: str, height: Optional[int] = None) -> TableGrid:
    """Render ``table`` with Streamlit and wire its click handlers."""
    grid = table.build_grid()
    if grid.is_placeholder:
        st.markdown(grid.to_html(), unsafe_allow_html=True)
    elif table.has_actions:
        _render_with_actions(table, grid, key)
    else:
        _render_selectable(table, grid, key, height)
    return grid
