"""
Application-wide configuration constants and helper utilities.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

import streamlit as st

from crm_dashboard.errors import ConfigurationError


@dataclass(frozen=True)
class TabConfig:
    key: str
    label: str


# Ordered tab definitions for the dashboard
TABS: List[TabConfig] = [
    TabConfig("command_center", "Command Center"),
    TabConfig("innovation", "Innovation Portfolio"),
    TabConfig("events", "Showcase Events"),
    TabConfig("vendor_inquiries", "Vendor Inquiries"),
    TabConfig("vendor_applications", "Vendor Applications"),
    TabConfig("client_intake", "Client Intake"),
    TabConfig("pipeline", "Pipeline"),
    TabConfig("engagements", "Engagements"),
]

DEFAULT_BUCKET = "crm-attachments"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_FETCH_WORKERS = 4


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    storage_bucket: str = DEFAULT_BUCKET
    log_level: str = DEFAULT_LOG_LEVEL
    fetch_workers: int = DEFAULT_FETCH_WORKERS


def get_secret(name: str, default: Optional[str] = None) -> Optional[str]:
    """Try env first, then st.secrets (if available)."""
    val = os.getenv(name)
    if val:
        return val
    try:
        sec = getattr(st, "secrets", None)
        if sec:
            v = sec.get(name)  # type: ignore[union-attr]
            return str(v) if v is not None else default
    except Exception:
        # st.secrets raises when no secrets.toml exists outside Streamlit Cloud
        pass
    return default


def _parse_workers(raw: Optional[str]) -> int:
    if raw is None:
        return DEFAULT_FETCH_WORKERS
    try:
        return max(int(raw), 1)
    except ValueError:
        raise ConfigurationError(f"FETCH_WORKERS must be an integer, got {raw!r}")


def load_settings() -> Settings:
    url = get_secret("SUPABASE_URL")
    if not url:
        raise ConfigurationError("SUPABASE_URL env var missing (env or secrets).")
    key = get_secret("SUPABASE_KEY") or get_secret("SUPABASE_ANON_KEY")
    if not key:
        raise ConfigurationError("SUPABASE_KEY env var missing (env or secrets).")
    return Settings(
        supabase_url=url,
        supabase_key=key,
        storage_bucket=get_secret("SUPABASE_STORAGE_BUCKET", DEFAULT_BUCKET) or DEFAULT_BUCKET,
        log_level=(get_secret("LOG_LEVEL", DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper(),
        fetch_workers=_parse_workers(get_secret("FETCH_WORKERS")),
    )
