"""
Utility helpers for formatting currency strings, dates, and status tones.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import pandas as pd

from crm_dashboard.constants import STATUS_TONES

SCALE_FACTORS = [
    (1_000_000_000_000, "T"),
    (1_000_000_000, "B"),
    (1_000_000, "M"),
    (1_000, "K"),
]

ZERO_CURRENCY = "$0.00"
MISSING = "N/A"


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(numeric) or math.isinf(numeric):
        return None
    return numeric


def _round1(value: float) -> float:
    return float(Decimal(repr(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _scale_value(value: float):
    for idx, (factor, suffix) in enumerate(SCALE_FACTORS):
        if abs(value) >= factor:
            scaled = _round1(value / factor)
            # 999_950 rounds up to 1000.0K; promote it to 1M
            if abs(scaled) >= 1000 and idx > 0:
                bigger, bigger_suffix = SCALE_FACTORS[idx - 1]
                return _round1(value / bigger), bigger_suffix
            return scaled, suffix
    return _round1(value), ""


def format_currency(value: Any) -> str:
    """USD with cents; missing or non-numeric values read as zero."""
    numeric = _as_float(value)
    if numeric is None:
        return ZERO_CURRENCY
    sign = "-" if numeric < 0 else ""
    return f"{sign}${abs(numeric):,.2f}"


def format_compact_currency(value: Any) -> str:
    numeric = _as_float(value)
    if numeric is None:
        return ZERO_CURRENCY
    scaled, suffix = _scale_value(numeric)
    sign = "-" if scaled < 0 else ""
    digits = f"{abs(scaled):,.1f}"
    if digits.endswith(".0"):
        digits = digits[:-2]
    return f"{sign}${digits}{suffix}"


def format_percent(value: Any, decimals: int = 0) -> str:
    numeric = _as_float(value)
    if numeric is None:
        numeric = 0.0
    return f"{numeric:.{decimals}f}%"


def _parse_timestamp(value: Any) -> Optional[pd.Timestamp]:
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce", utc=True)
    if ts is None or pd.isna(ts):
        return None
    return ts


def format_date(value: Any) -> str:
    ts = _parse_timestamp(value)
    if ts is None:
        return MISSING
    return f"{ts:%b} {ts.day}, {ts.year}"


def format_datetime(value: Any) -> str:
    ts = _parse_timestamp(value)
    if ts is None:
        return MISSING
    return f"{ts:%b} {ts.day}, {ts.year}, {ts:%I:%M %p}"


def format_date_relative(value: Any, now: Optional[pd.Timestamp] = None) -> str:
    ts = _parse_timestamp(value)
    if ts is None:
        return MISSING
    current = pd.Timestamp.now(tz="UTC") if now is None else pd.Timestamp(now)
    if current.tzinfo is None:
        current = current.tz_localize("UTC")
    # whole days, truncated toward zero so "tomorrow" is -1 not -2
    diff_days = int((current - ts).total_seconds() / 86_400)

    if diff_days == 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if diff_days == -1:
        return "Tomorrow"
    if -7 < diff_days < 0:
        return f"In {-diff_days} days"
    if 0 < diff_days < 7:
        return f"{diff_days} days ago"
    if 0 < diff_days < 30:
        return f"{diff_days // 7} weeks ago"
    return f"{ts:%b} {ts.day}"


def status_tone(status: Optional[str]) -> str:
    s = (status or "").strip().lower()
    for tone, members in STATUS_TONES.items():
        if s in members:
            return tone
    return "gray"


def display_or(value: Any, fallback: str) -> Any:
    """Return ``value`` unless it is missing or blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return fallback
    if isinstance(value, float) and math.isnan(value):
        return fallback
    return value
