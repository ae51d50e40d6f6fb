"""
Layout helpers for the Streamlit application (page config, sidebar).
"""

from __future__ import annotations

import streamlit as st

from crm_dashboard.config import Settings
from crm_dashboard.ui.pages.context import reset_view_models


def setup_page() -> None:
    """Set Streamlit page configuration and top-level styling."""
    st.set_page_config(
        page_title="Innovation CRM Command Center",
        layout="wide",
        page_icon=":briefcase:",
    )
    _inject_table_css()


def _inject_table_css() -> None:
    """Make the HTML tables used for empty results span the content width."""
    st.markdown(
        """
        <style>
        table.crm-table { width: 100%; border-collapse: collapse; }
        table.crm-table th { text-align: left; color: #334155; padding: 0.5rem; border-bottom: 1px solid #e2e8f0; }
        table.crm-table td { height: 6rem; color: #64748b; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def sidebar(settings: Settings) -> None:
    st.sidebar.title("Command Center")
    if st.sidebar.button("🔄 Refresh Data"):
        dropped = reset_view_models()
        st.toast(f"Reloading {dropped} views", icon="🔄")
    st.sidebar.caption(f"Attachments bucket: {settings.storage_bucket}")
