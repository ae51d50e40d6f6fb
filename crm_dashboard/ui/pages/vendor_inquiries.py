"""
Stage 1 of partner enrollment: vendor inquiries.

Screeners invite promising vendors to apply; the public form at the bottom
lets a vendor submit an inquiry with an optional capability statement.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import streamlit as st

from crm_dashboard.constants import INQUIRY_DEFAULT_STATUS, INQUIRY_INVITED_STATUS, VENDOR_INTERESTS
from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.data.models import VendorInquiry
from crm_dashboard.data.mutations import insert_row, update_rows
from crm_dashboard.data.storage import upload_attachment
from crm_dashboard.ui.commands import MutationCommand, flash, run_command, show_flash, upload_with_feedback
from crm_dashboard.ui.components.data_table import Column, DataTable, RowAction, render_data_table
from crm_dashboard.ui.components.formatting import format_datetime
from crm_dashboard.ui.pages.context import PageContext, get_view_model
from crm_dashboard.ui.pages.vendor_applications import APPLICATION_INQUIRY_KEY
from crm_dashboard.ui.view_model import ViewModel

TABLE = "vendor_inquiries"
VM_KEY = "vendor_inquiries"


def build_view_model(context: PageContext) -> ViewModel[List[VendorInquiry]]:
    client = context.client
    return ViewModel(
        "vendor inquiries",
        fetchers={"inquiries": lambda: fetch_rows(client, TABLE, order_by="created_at", model=VendorInquiry)},
        combine=lambda results: results["inquiries"],
        empty=list,
        max_workers=context.settings.fetch_workers,
    )


def invite_command(context: PageContext, inquiry: VendorInquiry) -> MutationCommand:
    return MutationCommand(
        description=f"invite inquiry {inquiry.id}",
        mutate=lambda: update_rows(
            context.client, TABLE, {"status": INQUIRY_INVITED_STATUS}, {"id": inquiry.id}
        ),
        success_message="Inquiry marked as invited",
        error_message="Could not update inquiry status",
    )


def open_application(inquiry: VendorInquiry) -> None:
    """Preselect ``inquiry`` in the vendor application form."""
    st.session_state[APPLICATION_INQUIRY_KEY] = inquiry.id


def build_columns(context: PageContext, vm: ViewModel) -> List[Column[VendorInquiry]]:
    def invite(inquiry: VendorInquiry) -> None:
        if run_command(invite_command(context, inquiry), vm, context.notify):
            # the table above was drawn from the pre-mutation rows
            st.rerun()

    def view(inquiry: VendorInquiry) -> None:
        open_application(inquiry)
        context.notify(
            f"Application form for {inquiry.company_name} is ready on the Vendor Applications tab", "info"
        )

    return [
        Column("Company", "company_name"),
        Column("Primary Contact", "primary_contact"),
        Column("Category", "core_service_category"),
        Column("Status", "status", cell=lambda i: i.status or INQUIRY_DEFAULT_STATUS),
        Column("Submitted", "created_at", cell=lambda i: format_datetime(i.created_at)),
        Column(
            "Actions",
            "actions",
            actions=(RowAction("view", "View", view), RowAction("invite", "Invite to Apply", invite)),
        ),
    ]


def build_inquiry_payload(values: Mapping[str, Any], attachment_url: Optional[str] = None) -> Dict[str, Any]:
    """Normalise raw form values into a ``vendor_inquiries`` insert payload."""
    payload: Dict[str, Any] = {}
    for key in (
        "company_name",
        "primary_contact",
        "title",
        "email",
        "website",
        "core_service_category",
        "states",
        "brief_description",
    ):
        raw = values.get(key)
        payload[key] = raw.strip() if isinstance(raw, str) else raw
    if not payload["company_name"]:
        raise ValueError("Company name is required")
    payload["worked_public_sector"] = bool(values.get("worked_public_sector"))
    payload["interested_in"] = list(values.get("interested_in") or [])
    payload["attachments"] = [attachment_url] if attachment_url else []
    payload["status"] = INQUIRY_DEFAULT_STATUS
    return payload


def _render_form(context: PageContext, vm: ViewModel) -> None:
    with st.expander("Open Public Form", expanded=False):
        with st.form("vendor-inquiry-form", clear_on_submit=True):
            values = {
                "company_name": st.text_input("Company name *"),
                "primary_contact": st.text_input("Primary contact"),
                "title": st.text_input("Title"),
                "email": st.text_input("Email"),
                "website": st.text_input("Website"),
                "core_service_category": st.text_input("Core service category"),
                "states": st.text_input("States served"),
                "worked_public_sector": st.checkbox("Worked with the public sector before"),
                "interested_in": st.multiselect("Interested in", VENDOR_INTERESTS),
                "brief_description": st.text_area("Brief description"),
            }
            upload = st.file_uploader("Capability statement (optional)")
            submitted = st.form_submit_button("Submit Inquiry")

        if not submitted:
            return

        attachment_url = None
        if upload is not None:
            attachment_url = upload_with_feedback(
                lambda: upload_attachment(
                    context.client,
                    upload.name,
                    upload.getvalue(),
                    context.settings.storage_bucket,
                    upload.type,
                ),
                context.notify,
            )
            if attachment_url is None:
                return

        try:
            payload = build_inquiry_payload(values, attachment_url)
        except ValueError as exc:
            st.warning(str(exc))
            return

        command = MutationCommand(
            description="submit vendor inquiry",
            mutate=lambda: insert_row(context.client, TABLE, payload),
            success_message="Inquiry submitted",
            error_message="Could not submit inquiry",
        )
        if run_command(command, vm, context.notify):
            flash(VM_KEY, "Your inquiry was received. We will review and follow up if there is a fit.")
            st.rerun()


def render(context: PageContext) -> None:
    st.subheader("Vendor Inquiries")
    st.caption("Stage 1 of partner enrollment.")

    vm = get_view_model(VM_KEY, lambda: build_view_model(context))
    with st.spinner("Loading..."):
        vm.ensure_loaded()

    table = DataTable(build_columns(context, vm), vm.data, row_type=VendorInquiry)
    render_data_table(table, key="vendor-inquiries-table")
    show_flash(VM_KEY)
    _render_form(context, vm)
