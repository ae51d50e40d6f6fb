"""
Typed records for the Supabase tables the dashboard reads.

Joined selects such as ``*, accounts(name)`` come back as nested objects; each
join gets its own small reference model instead of a loosely typed dict, and
rows are validated once when they leave the data layer.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    id: str


class NameRef(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    name: Optional[str] = None


AccountRef = NameRef
PartnerRef = NameRef


class Account(Record):
    name: str
    account_type: Optional[str] = None
    region_state: Optional[str] = None
    region_locality: Optional[str] = None
    primary_focus: Optional[str] = None
    status: Optional[str] = None
    owner: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None


class Partner(Record):
    name: str
    partner_type: Optional[str] = None
    vendor_status: Optional[str] = None


class Engagement(Record):
    name: str
    account_id: Optional[str] = None
    engagement_type: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: Optional[str] = None
    scope_summary: Optional[str] = None
    budget: Optional[float] = None
    contract_value: Optional[float] = None
    margin_pct: Optional[float] = None
    accounts: Optional[AccountRef] = None

    @property
    def account_name(self) -> str:
        if self.accounts and self.accounts.name:
            return self.accounts.name
        return "No Account"


class InnovationEngagement(Record):
    name: str
    innovation_theme: Optional[str] = None
    lifecycle_stage: Optional[str] = None
    budget: Optional[float] = None
    estimated_savings: Optional[float] = None
    funding_source: Optional[str] = None
    funding_stage: Optional[str] = None
    grant_deadline: Optional[str] = None
    grant_probability_pct: Optional[float] = None
    existing_tool_owned: Optional[bool] = None
    redundant_purchase_risk: Optional[bool] = None
    annual_license_cost: Optional[float] = None


class Opportunity(Record):
    name: str
    account_id: Optional[str] = None
    service_line: Optional[str] = None
    stage: Optional[str] = None
    probability_pct: Optional[float] = None
    estimated_value: Optional[float] = None
    weighted_value: Optional[float] = None
    expected_start: Optional[str] = None
    expected_end: Optional[str] = None
    funding_source: Optional[str] = None
    next_step: Optional[str] = None
    next_step_due: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    accounts: Optional[AccountRef] = None

    @property
    def account_name(self) -> str:
        if self.accounts and self.accounts.name:
            return self.accounts.name
        return "No Account"


class Activity(Record):
    activity_type: Optional[str] = None
    date_time: Optional[str] = None
    account_id: Optional[str] = None
    summary: Optional[str] = None
    outcome: Optional[str] = None
    next_action: Optional[str] = None
    next_action_due: Optional[str] = None
    attachments: Optional[List[str]] = None
    accounts: Optional[AccountRef] = None


class EventRow(Record):
    name: str
    event_date: Optional[str] = None
    location: Optional[str] = None
    theme: Optional[str] = None
    target_audience: Optional[str] = None
    registration_link: Optional[str] = None
    cost_to_vendor: Optional[float] = None
    cost_to_attendees: Optional[float] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    post_event_leads: Optional[int] = None
    revenue_generated: Optional[float] = None
    vendor_count: int = 0


class EventVendorLink(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    event_id: Optional[str] = None
    partner_id: Optional[str] = None
    sponsorship_tier: Optional[str] = None
    fee: Optional[float] = None
    partners: Optional[PartnerRef] = None

    @property
    def partner_name(self) -> str:
        if self.partners and self.partners.name:
            return self.partners.name
        return "Unknown Partner"


class VendorInquiry(Record):
    company_name: str
    primary_contact: Optional[str] = None
    core_service_category: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = None


class InquiryRef(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    company_name: Optional[str] = None


class VendorApplication(Record):
    inquiry_id: Optional[str] = None
    score: Optional[float] = None
    status: Optional[str] = None
    reviewed_by: Optional[str] = None
    partner_id: Optional[str] = None
    core_offerings: Optional[str] = None
    contract_vehicles: Optional[str] = None
    strategic_alignment: Optional[str] = None
    created_at: Optional[str] = None
    vendor_inquiries: Optional[InquiryRef] = None

    @property
    def company_name(self) -> str:
        if self.vendor_inquiries and self.vendor_inquiries.company_name:
            return self.vendor_inquiries.company_name
        return "Unknown"


class ClientIntake(Record):
    organization_name: str
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_title: Optional[str] = None
    top_challenges: Optional[List[str]] = None
    current_initiatives: Optional[str] = None
    status: Optional[str] = None
    assigned_tier: Optional[str] = None
    advisory_estimate: Optional[float] = None
    readiness_score: Optional[float] = None
    account_id: Optional[str] = None
    created_at: Optional[str] = None
