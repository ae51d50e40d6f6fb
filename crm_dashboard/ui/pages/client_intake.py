"""
City and agency intake: capture interest, review readiness, convert to an account.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import streamlit as st

from crm_dashboard.constants import (
    CLIENT_INTERESTS,
    INTAKE_CONVERTED_STATUS,
    INTAKE_DEFAULT_STATUS,
    INTAKE_STATUSES,
    INTAKE_TIERS,
)
from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.data.models import ClientIntake
from crm_dashboard.data.mutations import insert_returning_id, insert_row, update_rows
from crm_dashboard.errors import MutationError, PartialMutationError
from crm_dashboard.ui.commands import MutationCommand, flash, run_command, show_flash
from crm_dashboard.ui.components.data_table import Column, DataTable, render_data_table
from crm_dashboard.ui.components.formatting import display_or, format_currency, format_datetime
from crm_dashboard.ui.pages.context import PageContext, get_view_model
from crm_dashboard.ui.pages.helpers import (
    find_selected,
    optional_number,
    optional_text,
    require_text,
    select_into,
    split_csv,
)
from crm_dashboard.ui.view_model import ViewModel

TABLE = "client_intakes"
VM_KEY = "client_intake"
SELECTED_KEY = "selected_intake_id"

COLUMNS: List[Column[ClientIntake]] = [
    Column("Organization", "organization_name"),
    Column("Contact", "contact_name"),
    Column("Status", "status", cell=lambda i: i.status or INTAKE_DEFAULT_STATUS),
    Column("Tier", "assigned_tier", cell=lambda i: display_or(i.assigned_tier, "Unassigned")),
    Column("Readiness", "readiness_score", cell=lambda i: display_or(i.readiness_score, "-")),
    Column("Date", "created_at", cell=lambda i: format_datetime(i.created_at)),
]


def build_view_model(context: PageContext) -> ViewModel[List[ClientIntake]]:
    client = context.client
    return ViewModel(
        "client intake",
        fetchers={"intakes": lambda: fetch_rows(client, TABLE, order_by="created_at", model=ClientIntake)},
        combine=lambda results: results["intakes"],
        empty=list,
        max_workers=context.settings.fetch_workers,
    )


def build_intake_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "organization_name": require_text(values, "organization_name", "Organization name"),
    }
    for key in ("current_initiatives", "strategic_plan_link", "contact_name", "contact_email", "contact_title"):
        payload[key] = optional_text(values.get(key))
    payload["population_size"] = optional_number(values.get("population_size"), "Population size")
    payload["annual_it_budget"] = optional_number(values.get("annual_it_budget"), "Annual IT budget")
    payload["top_challenges"] = split_csv(values.get("top_challenges"))
    payload["grant_funding_interest"] = bool(values.get("grant_funding_interest"))
    payload["interested_in"] = list(values.get("interested_in") or [])
    payload["status"] = INTAKE_DEFAULT_STATUS
    return payload


def review_values(tier: Optional[str], estimate: Any, readiness: Any, status: str) -> Dict[str, Any]:
    return {
        "assigned_tier": optional_text(tier),
        "advisory_estimate": optional_number(estimate, "Advisory estimate"),
        "readiness_score": optional_number(readiness, "Readiness score"),
        "status": status,
    }


def save_review_command(context: PageContext, intake: ClientIntake, values: Mapping[str, Any]) -> MutationCommand:
    return MutationCommand(
        description=f"review intake {intake.id}",
        mutate=lambda: update_rows(context.client, TABLE, values, {"id": intake.id}),
        success_message="Intake updated",
        error_message="Could not update intake",
    )


def convert_to_account(context: PageContext, intake: ClientIntake) -> str:
    """Create an account (and its contact) from ``intake``; returns the account id."""
    account_id = insert_returning_id(
        context.client,
        "accounts",
        {
            "name": intake.organization_name,
            "account_type": "City",
            "status": "Prospect",
            "innovation_tier": intake.assigned_tier,
            "readiness_score": intake.readiness_score,
        },
    )
    try:
        if intake.contact_name:
            insert_row(
                context.client,
                "contacts",
                {
                    "full_name": intake.contact_name,
                    "title_role": intake.contact_title,
                    "email": intake.contact_email,
                    "account_id": account_id,
                },
            )
        update_rows(
            context.client,
            TABLE,
            {"account_id": account_id, "status": INTAKE_CONVERTED_STATUS},
            {"id": intake.id},
        )
    except MutationError as exc:
        raise PartialMutationError(exc.table, exc.message, "Account created but intake link failed") from exc
    return account_id


def convert_command(context: PageContext, intake: ClientIntake) -> MutationCommand:
    return MutationCommand(
        description=f"convert intake {intake.id}",
        mutate=lambda: convert_to_account(context, intake),
        success_message="Converted to account",
        error_message="Could not create account",
    )


def _render_review(context: PageContext, vm: ViewModel, intake: ClientIntake) -> None:
    with st.container(border=True):
        st.markdown(f"#### {intake.organization_name}")
        st.caption(f"{intake.contact_name or 'No contact'} · {format_datetime(intake.created_at)}")
        if intake.top_challenges:
            st.markdown("**Top Challenges:** " + ", ".join(intake.top_challenges))
        if intake.current_initiatives:
            st.write(intake.current_initiatives)

        with st.form(f"intake-review-{intake.id}"):
            left, right = st.columns(2)
            tiers: List[Optional[str]] = [None] + INTAKE_TIERS
            tier = left.selectbox(
                "Assigned Tier",
                tiers,
                index=tiers.index(intake.assigned_tier) if intake.assigned_tier in tiers else 0,
                format_func=lambda t: "Unassigned" if t is None else t,
            )
            current = intake.status or INTAKE_DEFAULT_STATUS
            status = right.selectbox(
                "Status",
                INTAKE_STATUSES,
                index=INTAKE_STATUSES.index(current) if current in INTAKE_STATUSES else 0,
            )
            estimate = left.text_input("Advisory Estimate", value=str(display_or(intake.advisory_estimate, "")))
            readiness = right.text_input("Readiness Score", value=str(display_or(intake.readiness_score, "")))
            save = st.form_submit_button("Save")
        if save:
            try:
                values = review_values(tier, estimate, readiness, status)
            except ValueError as exc:
                st.warning(str(exc))
            else:
                if run_command(save_review_command(context, intake, values), vm, context.notify):
                    st.rerun()

        if intake.account_id:
            st.caption(f"Linked to account {intake.account_id}.")
        elif st.button("Convert to Account", key=f"convert-{intake.id}"):
            if run_command(convert_command(context, intake), vm, context.notify):
                st.rerun()
        if intake.advisory_estimate:
            st.caption(f"Advisory estimate: {format_currency(intake.advisory_estimate)}")


def _render_form(context: PageContext, vm: ViewModel) -> None:
    with st.expander("New Intake", expanded=False):
        with st.form("client-intake-form", clear_on_submit=True):
            values: Dict[str, Any] = {"organization_name": st.text_input("City / Agency Name *")}
            left, right = st.columns(2)
            values["population_size"] = left.text_input("Population Size")
            values["annual_it_budget"] = right.text_input("Annual IT Budget")
            values["top_challenges"] = st.text_input("Top Challenges (comma-separated)")
            values["current_initiatives"] = st.text_area("Current Initiatives")
            values["strategic_plan_link"] = st.text_input("Strategic Plan Link")
            values["interested_in"] = st.multiselect("Interested In", CLIENT_INTERESTS)
            values["grant_funding_interest"] = st.checkbox("Interested in grant funding")
            values["contact_name"] = left.text_input("Contact Name")
            values["contact_title"] = right.text_input("Contact Title")
            values["contact_email"] = st.text_input("Contact Email")
            submitted = st.form_submit_button("Submit Intake")

    if not submitted:
        return
    try:
        payload = build_intake_payload(values)
    except ValueError as exc:
        st.warning(str(exc))
        return

    command = MutationCommand(
        description="submit client intake",
        mutate=lambda: insert_row(context.client, TABLE, payload),
        success_message="Intake submitted",
        error_message="Could not submit intake",
    )
    if run_command(command, vm, context.notify):
        flash(VM_KEY, f"Intake for {payload['organization_name']} recorded.")
        st.rerun()


def render(context: PageContext) -> None:
    st.subheader("Client Intake")
    st.caption("Assess city/agency interest and readiness.")

    vm = get_view_model(VM_KEY, lambda: build_view_model(context))
    with st.spinner("Loading..."):
        vm.ensure_loaded()

    table = DataTable(COLUMNS, vm.data, on_row_click=select_into(SELECTED_KEY), row_type=ClientIntake)
    render_data_table(table, key="client-intake-table")
    show_flash(VM_KEY)

    selected = find_selected(vm.data, st.session_state.get(SELECTED_KEY))
    if selected is not None:
        _render_review(context, vm, selected)
    _render_form(context, vm)
