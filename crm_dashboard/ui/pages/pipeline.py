"""
Opportunity pipeline: per-stage summary, list and create/edit/delete.

``weighted_value`` is derived by the database from value and probability and
is never written from here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
import streamlit as st

from crm_dashboard.constants import DEFAULT_PROBABILITY, PIPELINE_STAGES, PROBABILITY_CHOICES
from crm_dashboard.data import metrics
from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.data.models import Account, Opportunity
from crm_dashboard.data.mutations import delete_rows, insert_row, update_rows
from crm_dashboard.ui.commands import MutationCommand, flash, run_command, show_flash
from crm_dashboard.ui.components.badges import badge
from crm_dashboard.ui.components.data_table import Column, DataTable, render_data_table
from crm_dashboard.ui.components.formatting import (
    display_or,
    format_compact_currency,
    format_currency,
    format_date,
    format_percent,
)
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

TABLE = "opportunities"
VM_KEY = "pipeline"
SELECTED_KEY = "selected_opportunity_id"

COLUMNS: List[Column[Opportunity]] = [
    Column("Opportunity", "name"),
    Column("Account", "account_name"),
    Column("Stage", "stage", cell=lambda o: o.stage or PIPELINE_STAGES[0]),
    Column("Probability", "probability_pct", cell=lambda o: format_percent(o.probability_pct)),
    Column("Value", "estimated_value", cell=lambda o: format_currency(o.estimated_value)),
    Column("Weighted", "weighted_value", cell=lambda o: format_currency(o.weighted_value)),
    Column("Next Step", "next_step", cell=lambda o: display_or(o.next_step, "")),
    Column("Due", "next_step_due", cell=lambda o: format_date(o.next_step_due)),
]


@dataclass
class PipelineData:
    opportunities: List[Opportunity] = field(default_factory=list)
    accounts: List[Account] = field(default_factory=list)
    by_stage: pd.DataFrame = field(default_factory=lambda: metrics.pipeline_by_stage([]))


def combine(results: Dict[str, Any]) -> PipelineData:
    opportunities = results["opportunities"]
    return PipelineData(
        opportunities=list(opportunities),
        accounts=list(results["accounts"]),
        by_stage=metrics.pipeline_by_stage(opportunities),
    )


def build_view_model(context: PageContext) -> ViewModel[PipelineData]:
    client = context.client
    return ViewModel(
        "pipeline",
        fetchers={
            "opportunities": lambda: fetch_rows(
                client, TABLE, columns="*, accounts(name)", order_by="created_at", model=Opportunity
            ),
            "accounts": lambda: fetch_rows(
                client, "accounts", columns="id, name", order_by="name", descending=False, model=Account
            ),
        },
        combine=combine,
        empty=PipelineData,
        max_workers=context.settings.fetch_workers,
    )


def build_opportunity_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    name = optional_text(values.get("name"))
    if name is None or len(name) < 2:
        raise ValueError("Opportunity name must be at least 2 characters")
    stage = optional_text(values.get("stage")) or PIPELINE_STAGES[0]
    if stage not in PIPELINE_STAGES:
        raise ValueError(f"Unknown stage {stage!r}")
    probability = values.get("probability_pct")
    probability = DEFAULT_PROBABILITY if probability is None else int(probability)
    if probability not in PROBABILITY_CHOICES:
        raise ValueError(f"Probability must be one of {PROBABILITY_CHOICES}")
    return {
        "name": name,
        "account_id": optional_text(values.get("account_id")),
        "service_line": optional_text(values.get("service_line")),
        "stage": stage,
        "probability_pct": probability,
        "estimated_value": optional_number(values.get("estimated_value"), "Estimated value") or 0,
        "expected_start": optional_date(values.get("expected_start")),
        "expected_end": optional_date(values.get("expected_end")),
        "funding_source": optional_text(values.get("funding_source")),
        "next_step": optional_text(values.get("next_step")),
        "next_step_due": optional_date(values.get("next_step_due")),
        "notes": optional_text(values.get("notes")),
    }


def create_command(context: PageContext, payload: Mapping[str, Any]) -> MutationCommand:
    return MutationCommand(
        description="create opportunity",
        mutate=lambda: insert_row(context.client, TABLE, payload),
        success_message="Opportunity created",
        error_message="Could not create opportunity",
    )


def update_command(context: PageContext, opportunity: Opportunity, payload: Mapping[str, Any]) -> MutationCommand:
    return MutationCommand(
        description=f"update opportunity {opportunity.id}",
        mutate=lambda: update_rows(context.client, TABLE, payload, {"id": opportunity.id}),
        success_message="Opportunity updated",
        error_message="Could not update opportunity",
    )


def delete_command(context: PageContext, opportunity: Opportunity) -> MutationCommand:
    return MutationCommand(
        description=f"delete opportunity {opportunity.id}",
        mutate=lambda: delete_rows(context.client, TABLE, {"id": opportunity.id}),
        success_message="Opportunity deleted",
        error_message="Could not delete opportunity",
    )


def _render_summary(by_stage: pd.DataFrame) -> None:
    cols = st.columns(len(by_stage))
    for col, row in zip(cols, by_stage.itertuples(index=False)):
        col.metric(row.stage, format_compact_currency(row.value), f"{row.count} deals", delta_color="off")


def _opportunity_fields(
    prefix: str, accounts: List[Account], current: Optional[Opportunity] = None
) -> Dict[str, Any]:
    names = {account.id: account.name for account in accounts}
    account_options: List[Optional[str]] = [None] + list(names)
    account_id = current.account_id if current else None
    stage = (current.stage if current else None) or PIPELINE_STAGES[0]
    probability = DEFAULT_PROBABILITY
    if current and current.probability_pct is not None and int(current.probability_pct) in PROBABILITY_CHOICES:
        probability = int(current.probability_pct)

    def text(field_name: str) -> str:
        return str(display_or(getattr(current, field_name), "")) if current else ""

    values: Dict[str, Any] = {"name": st.text_input("Name *", value=text("name"), key=f"{prefix}-name")}
    left, right = st.columns(2)
    values["account_id"] = left.selectbox(
        "Account",
        account_options,
        index=account_options.index(account_id) if account_id in account_options else 0,
        format_func=lambda a: "None" if a is None else names.get(a, a),
        key=f"{prefix}-account",
    )
    values["service_line"] = right.text_input("Service Line", value=text("service_line"), key=f"{prefix}-line")
    values["stage"] = left.selectbox(
        "Stage",
        PIPELINE_STAGES,
        index=PIPELINE_STAGES.index(stage) if stage in PIPELINE_STAGES else 0,
        key=f"{prefix}-stage",
    )
    values["probability_pct"] = right.selectbox(
        "Probability %", PROBABILITY_CHOICES, index=PROBABILITY_CHOICES.index(probability), key=f"{prefix}-prob"
    )
    values["estimated_value"] = left.text_input(
        "Estimated Value", value=text("estimated_value"), key=f"{prefix}-value"
    )
    values["funding_source"] = right.text_input(
        "Funding Source", value=text("funding_source"), key=f"{prefix}-funding"
    )
    values["expected_start"] = left.date_input(
        "Expected Start", value=parse_iso_date(current.expected_start) if current else None, key=f"{prefix}-start"
    )
    values["expected_end"] = right.date_input(
        "Expected End", value=parse_iso_date(current.expected_end) if current else None, key=f"{prefix}-end"
    )
    values["next_step"] = left.text_input("Next Step", value=text("next_step"), key=f"{prefix}-next")
    values["next_step_due"] = right.date_input(
        "Next Step Due", value=parse_iso_date(current.next_step_due) if current else None, key=f"{prefix}-due"
    )
    values["notes"] = st.text_area("Notes", value=text("notes"), key=f"{prefix}-notes")
    return values


def _submit(context: PageContext, vm: ViewModel, values: Mapping[str, Any], build) -> bool:
    try:
        payload = build_opportunity_payload(values)
    except ValueError as exc:
        st.warning(str(exc))
        return False
    return run_command(build(payload), vm, context.notify)


def _render_detail(context: PageContext, vm: ViewModel, opportunity: Opportunity) -> None:
    with st.container(border=True):
        st.markdown(f"#### {opportunity.name}  {badge(opportunity.stage, PIPELINE_STAGES[0])}")
        st.caption(f"{opportunity.account_name} · {opportunity.service_line or 'No service line'}")
        cols = st.columns(3)
        cols[0].metric("Estimated Value", format_currency(opportunity.estimated_value))
        cols[1].metric("Probability", format_percent(opportunity.probability_pct))
        cols[2].metric("Weighted Value", format_currency(opportunity.weighted_value))
        if opportunity.notes:
            st.write(opportunity.notes)

        with st.expander("Edit Opportunity"):
            with st.form(f"opportunity-edit-{opportunity.id}"):
                values = _opportunity_fields(f"edit-{opportunity.id}", vm.data.accounts, opportunity)
                save = st.form_submit_button("Save Changes")
            if save and _submit(context, vm, values, lambda p: update_command(context, opportunity, p)):
                st.rerun()

        confirm = st.checkbox("I understand this cannot be undone", key=f"confirm-delete-{opportunity.id}")
        if st.button("Delete Opportunity", key=f"delete-{opportunity.id}", disabled=not confirm):
            if run_command(delete_command(context, opportunity), vm, context.notify):
                st.session_state.pop(SELECTED_KEY, None)
                st.rerun()


def _render_form(context: PageContext, vm: ViewModel) -> None:
    with st.expander("New Opportunity", expanded=False):
        with st.form("opportunity-form", clear_on_submit=True):
            values = _opportunity_fields("new-opportunity", vm.data.accounts)
            submitted = st.form_submit_button("Create Opportunity")
    if submitted and _submit(context, vm, values, lambda p: create_command(context, p)):
        flash(VM_KEY, f"{values['name'].strip()} added to the pipeline.")
        st.rerun()


def render(context: PageContext) -> None:
    st.subheader("Pipeline")
    st.caption("Track opportunities from first lead to award.")

    vm = get_view_model(VM_KEY, lambda: build_view_model(context))
    with st.spinner("Loading..."):
        vm.ensure_loaded()
    data: PipelineData = vm.data

    _render_summary(data.by_stage)
    table = DataTable(COLUMNS, data.opportunities, on_row_click=select_into(SELECTED_KEY), row_type=Opportunity)
    render_data_table(table, key="pipeline-table")
    show_flash(VM_KEY)

    selected = find_selected(data.opportunities, st.session_state.get(SELECTED_KEY))
    if selected is not None:
        _render_detail(context, vm, selected)
    _render_form(context, vm)
