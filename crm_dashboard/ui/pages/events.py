"""
Vendor showcase events: list, creation, vendor bookings and post-event metrics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import streamlit as st

from crm_dashboard.constants import APPROVED_VENDOR_STATUSES, EVENT_DEFAULT_STATUS, SPONSORSHIP_TIERS
from crm_dashboard.data.aggregation import attach_counts
from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.data.models import EventRow, EventVendorLink, Partner
from crm_dashboard.data.mutations import insert_row, update_rows
from crm_dashboard.ui.commands import MutationCommand, flash, run_command, show_flash
from crm_dashboard.ui.components.data_table import Column, DataTable, render_data_table
from crm_dashboard.ui.components.formatting import display_or, format_currency, format_date
from crm_dashboard.ui.pages.context import PageContext, get_view_model
from crm_dashboard.ui.pages.helpers import (
    find_selected,
    optional_date,
    optional_int,
    optional_number,
    optional_text,
    require_text,
    select_into,
)
from crm_dashboard.ui.view_model import ViewModel

TABLE = "events"
VM_KEY = "events"
SELECTED_KEY = "selected_event_id"
VENDOR_PROJECTION = "event_id, partner_id, sponsorship_tier, fee, partners(name)"

COLUMNS: List[Column[EventRow]] = [
    Column("Event", "name"),
    Column("Date", "event_date", cell=lambda e: format_date(e.event_date)),
    Column("Theme", "theme", cell=lambda e: display_or(e.theme, "")),
    Column("Status", "status", cell=lambda e: e.status or EVENT_DEFAULT_STATUS),
    Column("Vendors", "vendor_count"),
    Column("Revenue", "revenue_generated", cell=lambda e: format_currency(e.revenue_generated)),
]

VENDOR_COLUMNS: List[Column[EventVendorLink]] = [
    Column("Partner", "partner_name"),
    Column("Tier", "sponsorship_tier", cell=lambda v: v.sponsorship_tier or SPONSORSHIP_TIERS[0]),
    Column("Fee", "fee", cell=lambda v: format_currency(v.fee)),
]


@dataclass
class EventsData:
    events: List[EventRow] = field(default_factory=list)
    vendors: List[EventVendorLink] = field(default_factory=list)
    partners: List[Partner] = field(default_factory=list)

    def vendors_for(self, event_id: str) -> List[EventVendorLink]:
        return [vendor for vendor in self.vendors if vendor.event_id == event_id]


def combine(results: Dict[str, Any]) -> EventsData:
    vendors = results["event_vendors"]
    return EventsData(
        events=attach_counts(results["events"], vendors, "event_id", "vendor_count"),
        vendors=list(vendors),
        partners=list(results.get("partners", [])),
    )


def build_view_model(context: PageContext) -> ViewModel[EventsData]:
    client = context.client
    return ViewModel(
        "events",
        fetchers={
            "events": lambda: fetch_rows(client, TABLE, order_by="event_date", model=EventRow),
            "event_vendors": lambda: fetch_rows(
                client, "event_vendors", columns=VENDOR_PROJECTION, model=EventVendorLink
            ),
            "partners": lambda: fetch_rows(
                client,
                "partners",
                columns="id, name, vendor_status",
                order_by="name",
                descending=False,
                in_filters={"vendor_status": APPROVED_VENDOR_STATUSES},
                model=Partner,
            ),
        },
        combine=combine,
        empty=EventsData,
        max_workers=context.settings.fetch_workers,
    )


def build_event_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"name": require_text(values, "name", "Event name")}
    for key in ("location", "theme", "target_audience", "registration_link", "notes"):
        payload[key] = optional_text(values.get(key))
    payload["event_date"] = optional_date(values.get("event_date"))
    payload["cost_to_vendor"] = optional_number(values.get("cost_to_vendor"), "Cost to vendor")
    payload["cost_to_attendees"] = optional_number(values.get("cost_to_attendees"), "Cost to attendees")
    payload["status"] = optional_text(values.get("status")) or EVENT_DEFAULT_STATUS
    return payload


def build_event_vendor_payload(
    event_id: str, partner_id: Optional[str], tier: str, fee: Any
) -> Dict[str, Any]:
    if not partner_id:
        raise ValueError("Select a partner")
    return {
        "event_id": event_id,
        "partner_id": partner_id,
        "sponsorship_tier": tier,
        "fee": optional_number(fee, "Fee"),
    }


def event_metrics_values(leads: Any, revenue: Any) -> Dict[str, Any]:
    return {
        "post_event_leads": optional_int(leads, "Post-event leads"),
        "revenue_generated": optional_number(revenue, "Revenue generated"),
    }


def add_vendor_command(context: PageContext, payload: Mapping[str, Any]) -> MutationCommand:
    return MutationCommand(
        description=f"add vendor to event {payload['event_id']}",
        mutate=lambda: insert_row(context.client, "event_vendors", payload),
        success_message="Vendor added",
        error_message="Could not add vendor",
    )


def update_metrics_command(context: PageContext, event: EventRow, values: Mapping[str, Any]) -> MutationCommand:
    return MutationCommand(
        description=f"update metrics of event {event.id}",
        mutate=lambda: update_rows(context.client, TABLE, values, {"id": event.id}),
        success_message="Metrics updated",
        error_message="Could not update metrics",
    )


def _render_detail(context: PageContext, vm: ViewModel, event: EventRow) -> None:
    data: EventsData = vm.data
    with st.container(border=True):
        st.markdown(f"#### {event.name}")
        st.caption(f"{format_date(event.event_date)} · {event.theme or 'No theme'}")
        left, right = st.columns(2)
        left.markdown(f"**Location:** {event.location or 'N/A'}")
        left.markdown(f"**Target Audience:** {event.target_audience or 'N/A'}")
        right.markdown(f"**Status:** {event.status or EVENT_DEFAULT_STATUS}")
        right.markdown(f"**Current Revenue:** {format_currency(event.revenue_generated)}")

        st.markdown("##### Participating Vendors")
        render_data_table(
            DataTable(VENDOR_COLUMNS, data.vendors_for(event.id), placeholder="No vendors added yet."),
            key=f"event-vendors-{event.id}",
        )
        partner_names = {partner.id: partner.name for partner in data.partners}
        with st.form(f"add-vendor-{event.id}", clear_on_submit=True):
            cols = st.columns(3)
            partner_id = cols[0].selectbox(
                "Partner",
                [None] + list(partner_names),
                format_func=lambda p: "Select partner" if p is None else partner_names[p],
            )
            tier = cols[1].selectbox("Tier", SPONSORSHIP_TIERS)
            fee = cols[2].text_input("Fee")
            add = st.form_submit_button("Add Vendor")
        if add:
            try:
                payload = build_event_vendor_payload(event.id, partner_id, tier, fee)
            except ValueError as exc:
                st.warning(str(exc))
            else:
                if run_command(add_vendor_command(context, payload), vm, context.notify):
                    st.rerun()

        st.markdown("##### Post-Event Metrics")
        with st.form(f"event-metrics-{event.id}"):
            cols = st.columns(2)
            leads = cols[0].text_input("Leads", value=str(display_or(event.post_event_leads, "")))
            revenue = cols[1].text_input("Revenue", value=str(display_or(event.revenue_generated, "")))
            save = st.form_submit_button("Update Metrics")
        if save:
            try:
                values = event_metrics_values(leads, revenue)
            except ValueError as exc:
                st.warning(str(exc))
            else:
                if run_command(update_metrics_command(context, event, values), vm, context.notify):
                    st.rerun()


def _render_form(context: PageContext, vm: ViewModel) -> None:
    with st.expander("Create Event", expanded=False):
        with st.form("event-form", clear_on_submit=True):
            values = {"name": st.text_input("Event Name *")}
            left, right = st.columns(2)
            values["event_date"] = left.date_input("Date", value=None)
            values["theme"] = right.text_input("Theme", placeholder="AI / Cyber / Broadband / Resiliency")
            values["location"] = left.text_input("Location")
            values["target_audience"] = right.text_input("Target Audience")
            values["cost_to_vendor"] = left.text_input("Cost to Vendor")
            values["cost_to_attendees"] = right.text_input("Cost to Attendees")
            values["registration_link"] = st.text_input("Registration Link")
            values["notes"] = st.text_area("Notes")
            submitted = st.form_submit_button("Create Event")

    if not submitted:
        return
    try:
        payload = build_event_payload(values)
    except ValueError as exc:
        st.warning(str(exc))
        return

    command = MutationCommand(
        description="create event",
        mutate=lambda: insert_row(context.client, TABLE, payload),
        success_message="Event created",
        error_message="Could not create event",
    )
    if run_command(command, vm, context.notify):
        flash(VM_KEY, f"{payload['name']} was added to the calendar.")
        st.rerun()


def render(context: PageContext) -> None:
    st.subheader("Vendor Showcase Events")
    st.caption("Track event strategy, sponsors, and outcomes.")

    vm = get_view_model(VM_KEY, lambda: build_view_model(context))
    with st.spinner("Loading..."):
        vm.ensure_loaded()
    data: EventsData = vm.data

    table = DataTable(COLUMNS, data.events, on_row_click=select_into(SELECTED_KEY), row_type=EventRow)
    render_data_table(table, key="events-table")
    show_flash(VM_KEY)

    selected = find_selected(data.events, st.session_state.get(SELECTED_KEY))
    if selected is not None:
        _render_detail(context, vm, selected)
    _render_form(context, vm)
