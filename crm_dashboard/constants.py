"""
Domain vocabularies shared by pages, widgets and metrics.
"""

from typing import Dict, List

ACCOUNT_TYPES: List[str] = ["City", "County", "State Agency", "University", "Nonprofit", "Private"]
ACCOUNT_STATUSES: List[str] = ["Active", "Prospect", "Dormant"]
RELATIONSHIP_HEALTHS: List[str] = ["Cold", "Warm", "Strong"]
ENGAGEMENT_STATUSES: List[str] = ["Planned", "In Progress", "On Hold", "Complete"]
OUTCOME_TYPES: List[str] = ["Good", "Neutral", "Bad"]
PIPELINE_STAGES: List[str] = ["Lead", "Discovery", "Proposal", "Negotiation", "Awarded", "Lost"]
CLOSED_STAGES = frozenset({"Awarded", "Lost"})
ACTIVITY_TYPES: List[str] = ["Meeting", "Call", "Email", "Site Visit"]
PARTNER_TYPES: List[str] = ["Prime", "Sub", "Vendor", "University", "Community Org"]

INNOVATION_THEMES: List[str] = [
    "AI & Automation",
    "Smart Infrastructure",
    "Public Safety",
    "Digital Services",
    "Sustainability",
]

# Engagement status that counts as "at risk" on the command center.
AT_RISK_STATUS = "On Hold"
ACTIVE_STATUS = "In Progress"

INQUIRY_DEFAULT_STATUS = "Unscreened Inquiry"
INQUIRY_INVITED_STATUS = "Invited to Apply"
APPLICATION_DEFAULT_STATUS = "Pending Review"
INTAKE_DEFAULT_STATUS = "New"
EVENT_DEFAULT_STATUS = "Planned"

VENDOR_INTERESTS: List[str] = ["Showcase Events", "Pilot Programs", "Partnership", "Cooperative Contracts"]

STATUS_TONES: Dict[str, frozenset] = {
    "green": frozenset({"active", "awarded", "good", "complete", "on-track", "paid", "approved", "reimbursed"}),
    "blue": frozenset({"prospect", "proposal", "lead", "planned", "discovery", "draft", "pending"}),
    "violet": frozenset({"negotiation", "in progress", "warm", "sent"}),
    "gray": frozenset({"on hold", "neutral", "cancelled"}),
    "red": frozenset({"lost", "dormant", "bad", "at-risk", "overdue"}),
}

PROBABILITY_CHOICES: List[int] = [0, 10, 25, 50, 75, 90, 100]
DEFAULT_PROBABILITY = 10

SPONSORSHIP_TIERS: List[str] = ["Showcase", "Premium Sponsor", "Strategic Partner"]

APPLICATION_STATUSES: List[str] = [
    "Approved Innovation Partner",
    "Approved Event Participant",
    "Conditional",
    "Not Approved",
    APPLICATION_DEFAULT_STATUS,
]
# Partners with these statuses can be booked into events.
APPROVED_VENDOR_STATUSES: List[str] = APPLICATION_STATUSES[:2]

# Review criteria and their weights (percent, summing to 100).
SCORE_WEIGHTS: Dict[str, int] = {
    "public_sector_experience": 20,
    "financial_stability": 15,
    "strategic_fit": 20,
    "innovation_value": 15,
    "compliance_security": 15,
    "ecosystem_complement": 15,
}
DEFAULT_CRITERION_SCORE = 50

INTAKE_TIERS: List[str] = ["Dashboard Only", "Advisory", "Full IaaS"]
INTAKE_STATUSES: List[str] = [INTAKE_DEFAULT_STATUS, "Reviewing", "Qualified", "Converted"]
INTAKE_CONVERTED_STATUS = "Converted"
INTAKE_REVIEW_STATUS = "Reviewing"
CLIENT_INTERESTS: List[str] = [
    "Innovation Dashboard",
    "Advisory Services",
    "Managed IaaS",
    "Broadband Strategy",
    "Cyber Assessment",
]
