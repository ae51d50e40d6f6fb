"""
Stages 2 and 3 of partner enrollment: vendor applications and their review.

Selecting an application opens the weighted scoring review; an approved
application can be turned into a partner record in one step.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import streamlit as st

from crm_dashboard.constants import (
    APPLICATION_DEFAULT_STATUS,
    APPLICATION_STATUSES,
    DEFAULT_CRITERION_SCORE,
    SCORE_WEIGHTS,
)
from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.data.models import VendorApplication, VendorInquiry
from crm_dashboard.data.mutations import insert_returning_id, insert_row, update_rows
from crm_dashboard.errors import MutationError, PartialMutationError
from crm_dashboard.ui.commands import MutationCommand, flash, run_command, show_flash
from crm_dashboard.ui.components.data_table import Column, DataTable, render_data_table
from crm_dashboard.ui.components.formatting import display_or, format_datetime
from crm_dashboard.ui.pages.context import PageContext, get_view_model
from crm_dashboard.ui.pages.helpers import (
    find_selected,
    optional_int,
    optional_number,
    optional_text,
    select_into,
    split_csv,
)
from crm_dashboard.ui.view_model import ViewModel

TABLE = "vendor_applications"
VM_KEY = "vendor_applications"
SELECTED_KEY = "selected_application_id"
# Set by the inquiry "View" action to preselect the inquiry in the form.
APPLICATION_INQUIRY_KEY = "application_inquiry_id"

PROJECTION = (
    "id, inquiry_id, score, status, reviewed_by, partner_id, core_offerings, contract_vehicles, "
    "strategic_alignment, created_at, vendor_inquiries(company_name)"
)

CRITERIA_LABELS: Dict[str, str] = {
    "public_sector_experience": "Public Sector Experience",
    "financial_stability": "Financial Stability",
    "strategic_fit": "Strategic Fit",
    "innovation_value": "Innovation Value",
    "compliance_security": "Compliance & Security",
    "ecosystem_complement": "Ecosystem Complement",
}

TEXT_FIELDS = (
    "legal_structure",
    "insurance_coverage",
    "contract_vehicles",
    "annual_revenue_range",
    "bonding_capacity",
    "public_sector_references",
    "core_offerings",
    "problem_solved",
    "existing_gov_clients",
    "differentiator",
    "technology_stack",
    "integration_capabilities",
    "cost_reduction_explanation",
    "strategic_alignment",
    "security_certifications",
    "data_handling_practices",
    "compliance_standards",
)

COLUMNS: List[Column[VendorApplication]] = [
    Column("Company", "company", cell=lambda a: a.company_name),
    Column("Score", "score", cell=lambda a: display_or(a.score, "Not scored")),
    Column("Status", "status", cell=lambda a: a.status or APPLICATION_DEFAULT_STATUS),
    Column("Submitted", "created_at", cell=lambda a: format_datetime(a.created_at)),
]


@dataclass
class ApplicationsData:
    applications: List[VendorApplication] = field(default_factory=list)
    inquiries: List[VendorInquiry] = field(default_factory=list)


def build_view_model(context: PageContext) -> ViewModel[ApplicationsData]:
    client = context.client
    return ViewModel(
        "vendor applications",
        fetchers={
            "applications": lambda: fetch_rows(
                client, TABLE, columns=PROJECTION, order_by="created_at", model=VendorApplication
            ),
            "inquiries": lambda: fetch_rows(
                client,
                "vendor_inquiries",
                columns="id, company_name",
                order_by="company_name",
                descending=False,
                model=VendorInquiry,
            ),
        },
        combine=lambda results: ApplicationsData(results["applications"], results["inquiries"]),
        empty=ApplicationsData,
        max_workers=context.settings.fetch_workers,
    )


def weighted_score(scores: Mapping[str, float]) -> int:
    """Weighted 0-100 total; missing criteria count as 0, halves round up."""
    total = sum(float(scores.get(key, 0)) * weight for key, weight in SCORE_WEIGHTS.items()) / 100
    return int(math.floor(total + 0.5))


def build_application_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {key: optional_text(values.get(key)) for key in TEXT_FIELDS}
    payload["inquiry_id"] = optional_text(values.get("inquiry_id"))
    payload["years_in_business"] = optional_int(values.get("years_in_business"), "Years in business")
    payload["growth_pct"] = optional_number(values.get("growth_pct"), "Growth %")
    payload["certifications"] = split_csv(values.get("certifications"))
    payload["open_to_revenue_share"] = bool(values.get("open_to_revenue_share"))
    payload["status"] = APPLICATION_DEFAULT_STATUS
    return payload


def review_values(score: int, status: str, reviewer: Optional[str]) -> Dict[str, Any]:
    return {"score": score, "status": status, "reviewed_by": optional_text(reviewer)}


def save_review_command(
    context: PageContext, application: VendorApplication, score: int, status: str, reviewer: Optional[str]
) -> MutationCommand:
    return MutationCommand(
        description=f"review application {application.id}",
        mutate=lambda: update_rows(
            context.client, TABLE, review_values(score, status, reviewer), {"id": application.id}
        ),
        success_message="Review saved",
        error_message="Could not save review",
    )


def approve_as_partner(
    context: PageContext, application: VendorApplication, score: int, status: str, reviewer: Optional[str]
) -> str:
    """Create a partner from ``application`` and link it back; returns the partner id."""
    company = application.vendor_inquiries.company_name if application.vendor_inquiries else None
    partner_id = insert_returning_id(
        context.client,
        "partners",
        {
            "name": company or "New Partner",
            "partner_type": "Vendor",
            "capabilities": application.core_offerings,
            "contract_vehicles": application.contract_vehicles,
            "notes": application.strategic_alignment,
            "vendor_score": score,
            "vendor_status": status,
        },
    )
    values = {**review_values(score, status, reviewer), "partner_id": partner_id}
    try:
        update_rows(context.client, TABLE, values, {"id": application.id})
    except MutationError as exc:
        raise PartialMutationError(TABLE, exc.message, "Partner created but application link failed") from exc
    return partner_id


def approve_command(
    context: PageContext, application: VendorApplication, score: int, status: str, reviewer: Optional[str]
) -> MutationCommand:
    return MutationCommand(
        description=f"approve application {application.id}",
        mutate=lambda: approve_as_partner(context, application, score, status, reviewer),
        success_message="Partner approved and linked",
        error_message="Could not create partner",
    )


def _render_review(context: PageContext, vm: ViewModel, application: VendorApplication) -> None:
    with st.container(border=True):
        st.markdown(f"#### {application.company_name}")
        st.caption(f"Submitted {format_datetime(application.created_at)}")

        scores = {}
        cols = st.columns(3)
        for idx, (key, weight) in enumerate(SCORE_WEIGHTS.items()):
            scores[key] = cols[idx % 3].slider(
                f"{CRITERIA_LABELS[key]} ({weight}%)",
                min_value=0,
                max_value=100,
                value=DEFAULT_CRITERION_SCORE,
                key=f"score-{application.id}-{key}",
            )
        score = weighted_score(scores)
        st.metric("Weighted Total", f"{score} / 100")

        current = application.status or APPLICATION_DEFAULT_STATUS
        status = st.selectbox(
            "Approval Status",
            APPLICATION_STATUSES,
            index=APPLICATION_STATUSES.index(current) if current in APPLICATION_STATUSES else 0,
            key=f"status-{application.id}",
        )
        reviewer = st.text_input(
            "Reviewed By", value=application.reviewed_by or "", key=f"reviewer-{application.id}"
        )

        if application.strategic_alignment:
            st.text_area("Strategic Alignment", application.strategic_alignment, disabled=True)

        save_col, approve_col = st.columns(2)
        if save_col.button("Save Review", key=f"save-{application.id}"):
            if run_command(save_review_command(context, application, score, status, reviewer), vm, context.notify):
                st.rerun()
        if application.partner_id:
            approve_col.caption("Linked to a partner record.")
        elif approve_col.button("Approve & Create Partner", key=f"approve-{application.id}"):
            if run_command(approve_command(context, application, score, status, reviewer), vm, context.notify):
                st.rerun()


def _render_form(context: PageContext, vm: ViewModel, inquiries: List[VendorInquiry]) -> None:
    preselected = st.session_state.get(APPLICATION_INQUIRY_KEY)
    options: List[Optional[str]] = [None] + [inquiry.id for inquiry in inquiries]
    names = {inquiry.id: inquiry.company_name for inquiry in inquiries}

    with st.expander("New Application", expanded=preselected is not None):
        with st.form("vendor-application-form", clear_on_submit=True):
            values: Dict[str, Any] = {
                "inquiry_id": st.selectbox(
                    "Related Inquiry",
                    options,
                    index=options.index(preselected) if preselected in options else 0,
                    format_func=lambda i: "None" if i is None else names.get(i, i),
                ),
            }
            left, right = st.columns(2)
            values["years_in_business"] = left.text_input("Years in Business")
            values["legal_structure"] = right.text_input("Legal Structure")
            values["certifications"] = left.text_input("Certifications (comma-separated)")
            values["insurance_coverage"] = right.text_input("Insurance Coverage")
            values["contract_vehicles"] = left.text_input("Contract Vehicles")
            values["annual_revenue_range"] = right.text_input("Annual Revenue Range")
            values["bonding_capacity"] = left.text_input("Bonding Capacity")
            values["growth_pct"] = right.text_input("Past 2-year Growth %")
            values["public_sector_references"] = st.text_area("Public Sector References")
            values["core_offerings"] = st.text_area("Core Offerings")
            values["problem_solved"] = st.text_area("What problem do you solve?")
            values["existing_gov_clients"] = st.text_area("Existing Government Clients")
            values["differentiator"] = st.text_area("Differentiator")
            values["technology_stack"] = st.text_area("Technology Stack")
            values["integration_capabilities"] = st.text_area("Integration Capabilities")
            values["cost_reduction_explanation"] = st.text_area("Cost Reduction for Municipalities")
            values["strategic_alignment"] = st.text_area("Strategic Alignment (Cyber/Broadband/AI/Resiliency)")
            values["security_certifications"] = st.text_area("Security Certifications")
            values["data_handling_practices"] = st.text_area("Data Handling Practices")
            values["compliance_standards"] = st.text_area("Compliance Standards")
            values["open_to_revenue_share"] = st.checkbox("Open to revenue share models")
            submitted = st.form_submit_button("Submit Application")

    if not submitted:
        return
    try:
        payload = build_application_payload(values)
    except ValueError as exc:
        st.warning(str(exc))
        return

    command = MutationCommand(
        description="submit vendor application",
        mutate=lambda: insert_row(context.client, TABLE, payload),
        success_message="Application submitted",
        error_message="Could not submit application",
    )
    if run_command(command, vm, context.notify):
        st.session_state.pop(APPLICATION_INQUIRY_KEY, None)
        flash(VM_KEY, "Application received.")
        st.rerun()


def render(context: PageContext) -> None:
    st.subheader("Vendor Applications")
    st.caption("Stage 2 and 3 of partner enrollment.")

    vm = get_view_model(VM_KEY, lambda: build_view_model(context))
    with st.spinner("Loading..."):
        vm.ensure_loaded()
    data = vm.data

    table = DataTable(
        COLUMNS, data.applications, on_row_click=select_into(SELECTED_KEY), row_type=VendorApplication
    )
    render_data_table(table, key="vendor-applications-table")
    show_flash(VM_KEY)

    selected = find_selected(data.applications, st.session_state.get(SELECTED_KEY))
    if selected is not None:
        _render_review(context, vm, selected)
    _render_form(context, vm, data.inquiries)
