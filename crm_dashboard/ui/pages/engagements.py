from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import streamlit as st

from crm_dashboard.constants import ENGAGEMENT_STATUSES
from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.data.models import Account, Engagement
from crm_dashboard.data.mutations import delete_rows, insert_row, update_rows
from crm_dashboard.ui.commands import MutationCommand, run_command
from crm_dashboard.ui.components.badges import badge
from crm_dashboard.ui.components.data_table import Column, DataTable, render_data_table
from crm_dashboard.ui.components.formatting import display_or, format_currency, format_date, format_percent
from crm_dashboard.ui.pages.context import PageContext, get_view_model
from crm_dashboard.ui.pages.helpers import (
    find_selected,
    optional_date,
    optional_number,
    optional_text,
    parse_iso_date,
    select_into,
)
from crm_dashboard.ui.view_model import ViewModel

TABLE = "engagements"
VM_KEY = "engagements"
SELECTED_KEY = "selected_engagement_id"


def _name_cell(engagement: Engagement) -> str:
    if engagement.engagement_type:
        return f"{engagement.name} ({engagement.engagement_type})"
    return engagement.name


def _dates_cell(engagement: Engagement) -> str:
    return f"{format_date(engagement.start_date)} - {format_date(engagement.end_date)}"


COLUMNS: List[Column[Engagement]] = [
    Column("Engagement Name", "name", cell=_name_cell),
    Column("Account", "account_id", cell=lambda e: e.account_name),
    Column("Dates", "start_date", cell=_dates_cell),
    Column("Value", "contract_value", cell=lambda e: format_currency(e.contract_value)),
    Column("Status", "status"),
]


@dataclass
class EngagementsData:
    engagements: List[Engagement] = field(default_factory=list)
    accounts: List[Account] = field(default_factory=list)


def build_view_model(context: PageContext) -> ViewModel[EngagementsData]:
    client = context.client
    return ViewModel(
        "engagements",
        fetchers={
            "engagements": lambda: fetch_rows(
                client, TABLE, columns="*, accounts(name)", order_by="start_date", model=Engagement
            ),
            "accounts": lambda: fetch_rows(
                client, "accounts", columns="id, name", order_by="name", descending=False, model=Account
            ),
        },
        combine=lambda results: EngagementsData(results["engagements"], results["accounts"]),
        empty=EngagementsData,
        max_workers=context.settings.fetch_workers,
    )


def build_engagement_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    name = optional_text(values.get("name"))
    if name is None or len(name) < 2:
        raise ValueError("Engagement name must be at least 2 characters")
    status = optional_text(values.get("status")) or ENGAGEMENT_STATUSES[0]
    if status not in ENGAGEMENT_STATUSES:
        raise ValueError(f"Unknown status {status!r}")
    return {
        "name": name,
        "account_id": optional_text(values.get("account_id")),
        "engagement_type": optional_text(values.get("engagement_type")),
        "start_date": optional_date(values.get("start_date")),
        "end_date": optional_date(values.get("end_date")),
        "status": status,
        "scope_summary": optional_text(values.get("scope_summary")),
        "budget": optional_number(values.get("budget"), "Budget"),
        "contract_value": optional_number(values.get("contract_value"), "Contract value"),
        "margin_pct": optional_number(values.get("margin_pct"), "Margin %"),
    }


def create_command(context: PageContext, payload: Mapping[str, Any]) -> MutationCommand:
    return MutationCommand(
        description="create engagement",
        mutate=lambda: insert_row(context.client, TABLE, payload),
        success_message="Engagement created",
        error_message="Could not create engagement",
    )


def update_command(
    context: PageContext, engagement: Engagement, payload: Mapping[str, Any], now: Optional[dt.datetime] = None
) -> MutationCommand:
    stamp = (now or dt.datetime.now(dt.timezone.utc)).isoformat()
    values = {**payload, "updated_at": stamp}
    return MutationCommand(
        description=f"update engagement {engagement.id}",
        mutate=lambda: update_rows(context.client, TABLE, values, {"id": engagement.id}),
        success_message="Engagement updated",
        error_message="Could not update engagement",
    )


def delete_command(context: PageContext, engagement: Engagement) -> MutationCommand:
    return MutationCommand(
        description=f"delete engagement {engagement.id}",
        mutate=lambda: delete_rows(context.client, TABLE, {"id": engagement.id}),
        success_message="Engagement deleted",
        error_message="Could not delete engagement",
    )


def _engagement_fields(
    prefix: str, accounts: List[Account], current: Optional[Engagement] = None
) -> Dict[str, Any]:
    names = {account.id: account.name for account in accounts}
    account_options: List[Optional[str]] = [None] + list(names)
    account_id = current.account_id if current else None
    status = (current.status if current else None) or ENGAGEMENT_STATUSES[0]

    values: Dict[str, Any] = {
        "name": st.text_input("Name *", value=current.name if current else "", key=f"{prefix}-name")
    }
    left, right = st.columns(2)
    values["account_id"] = left.selectbox(
        "Account",
        account_options,
        index=account_options.index(account_id) if account_id in account_options else 0,
        format_func=lambda a: "None" if a is None else names.get(a, a),
        key=f"{prefix}-account",
    )
    values["status"] = right.selectbox(
        "Status",
        ENGAGEMENT_STATUSES,
        index=ENGAGEMENT_STATUSES.index(status) if status in ENGAGEMENT_STATUSES else 0,
        key=f"{prefix}-status",
    )
    values["engagement_type"] = left.text_input(
        "Type", value=(current.engagement_type or "") if current else "", key=f"{prefix}-type"
    )
    values["start_date"] = left.date_input(
        "Start Date", value=parse_iso_date(current.start_date) if current else None, key=f"{prefix}-start"
    )
    values["end_date"] = right.date_input(
        "End Date", value=parse_iso_date(current.end_date) if current else None, key=f"{prefix}-end"
    )
    values["budget"] = left.text_input(
        "Budget", value=str(display_or(current.budget, "")) if current else "", key=f"{prefix}-budget"
    )
    values["contract_value"] = right.text_input(
        "Contract Value",
        value=str(display_or(current.contract_value, "")) if current else "",
        key=f"{prefix}-value",
    )
    values["margin_pct"] = left.text_input(
        "Margin %", value=str(display_or(current.margin_pct, "")) if current else "", key=f"{prefix}-margin"
    )
    values["scope_summary"] = st.text_area(
        "Scope Summary", value=(current.scope_summary or "") if current else "", key=f"{prefix}-scope"
    )
    return values


def _submit(context: PageContext, vm: ViewModel, values: Mapping[str, Any], build) -> None:
    try:
        payload = build_engagement_payload(values)
    except ValueError as exc:
        st.warning(str(exc))
        return
    if run_command(build(payload), vm, context.notify):
        st.rerun()


def _render_summary(context: PageContext, vm: ViewModel, engagement: Engagement) -> None:
    with st.container(border=True):
        st.markdown(f"#### {engagement.name}  {badge(engagement.status, 'Planned')}")
        st.caption(f"{engagement.account_name} · {_dates_cell(engagement)}")
        if engagement.scope_summary:
            st.write(engagement.scope_summary)
        cols = st.columns(3)
        cols[0].metric("Budget", format_currency(engagement.budget))
        cols[1].metric("Contract Value", format_currency(engagement.contract_value))
        cols[2].metric("Margin", format_percent(engagement.margin_pct, decimals=1))

        with st.expander("Edit Engagement"):
            with st.form(f"engagement-edit-{engagement.id}"):
                values = _engagement_fields(f"edit-{engagement.id}", vm.data.accounts, engagement)
                save = st.form_submit_button("Save Changes")
            if save:
                _submit(context, vm, values, lambda payload: update_command(context, engagement, payload))

        confirm = st.checkbox("I understand this cannot be undone", key=f"confirm-delete-{engagement.id}")
        if st.button("Delete Engagement", key=f"delete-{engagement.id}", disabled=not confirm):
            if run_command(delete_command(context, engagement), vm, context.notify):
                st.session_state.pop(SELECTED_KEY, None)
                st.rerun()


def _render_form(context: PageContext, vm: ViewModel) -> None:
    with st.expander("New Engagement", expanded=False):
        with st.form("engagement-form", clear_on_submit=True):
            values = _engagement_fields("new-engagement", vm.data.accounts)
            submitted = st.form_submit_button("Create Engagement")
    if submitted:
        _submit(context, vm, values, lambda payload: create_command(context, payload))


def render(context: PageContext) -> None:
    st.subheader("Engagements")
    st.caption("Track active projects and service delivery.")

    vm = get_view_model(VM_KEY, lambda: build_view_model(context))
    with st.spinner("Loading..."):
        vm.ensure_loaded()
    data: EngagementsData = vm.data

    table = DataTable(COLUMNS, data.engagements, on_row_click=select_into(SELECTED_KEY), row_type=Engagement)
    render_data_table(table, key="engagements-table")

    selected = find_selected(data.engagements, st.session_state.get(SELECTED_KEY))
    if selected is not None:
        _render_summary(context, vm, selected)
    _render_form(context, vm)
