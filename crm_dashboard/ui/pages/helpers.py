"""
Form value normalisation and selection helpers shared by the page modules.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Any, List, Mapping, Optional, Sequence, TypeVar

import streamlit as st

R = TypeVar("R")


def optional_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def optional_number(raw: Any, label: str = "value") -> Optional[float]:
    """Blank input becomes None; anything else must parse as a number."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        number = float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a number")
    if math.isnan(number):
        return None
    return number


def optional_int(raw: Any, label: str = "value") -> Optional[int]:
    number = optional_number(raw, label)
    return None if number is None else int(number)


def optional_date(raw: Any) -> Optional[str]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, (dt.date, dt.datetime)):
        return raw.isoformat()
    return str(raw)


def split_csv(raw: Any) -> Optional[List[str]]:
    text = optional_text(raw)
    if text is None:
        return None
    items = [item.strip() for item in text.split(",")]
    return [item for item in items if item] or None


def require_text(values: Mapping[str, Any], key: str, label: str) -> str:
    text = optional_text(values.get(key))
    if text is None:
        raise ValueError(f"{label} is required")
    return text


def find_selected(rows: Sequence[R], selected_id: Optional[str]) -> Optional[R]:
    if selected_id is None:
        return None
    return next((row for row in rows if getattr(row, "id", None) == selected_id), None)


def select_into(state_key: str):
    """Row-click handler that remembers the clicked row's id under ``state_key``."""

    def _select(row: Any) -> None:
        st.session_state[state_key] = row.id

    return _select


def parse_iso_date(raw: Optional[str]) -> Optional[dt.date]:
    """Stored ISO date (or timestamp) to a ``date`` for ``st.date_input`` defaults."""
    if not raw:
        return None
    try:
        return dt.date.fromisoformat(str(raw)[:10])
    except ValueError:
        return None
