"""
Status badges rendered with Streamlit's colored-background markdown.
"""

from __future__ import annotations

from typing import Optional

from crm_dashboard.ui.components.formatting import status_tone


def badge(label: Optional[str], fallback: str = "Unknown", tone: Optional[str] = None) -> str:
    text = (label or "").strip() or fallback
    # brackets would close the directive early
    text = text.replace("[", "(").replace("]", ")")
    return f":{tone or status_tone(text)}-background[{text}]"
