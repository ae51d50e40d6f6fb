from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import streamlit as st

# change_type -> st.metric delta_color
_DELTA_COLORS = {
    "positive": "normal",
    "negative": "inverse",
    "neutral": "off",
}


@dataclass
class KpiCard:
    label: str
    value_display: str
    change: Optional[str] = None
    change_type: str = "neutral"  # positive | negative | neutral
    description: Optional[str] = None


def render_kpi_cards(cards: Sequence[KpiCard], columns: int = 4) -> None:
    """
    Render KPI cards in a responsive grid using Streamlit columns.
    """
    cards = list(cards)
    if not cards:
        return

    columns = max(columns, 1)
    for idx in range(0, len(cards), columns):
        row_cards = cards[idx: idx + columns]
        cols = st.columns(len(row_cards))
        for col, card in zip(cols, row_cards):
            with col:
                st.metric(
                    label=card.label,
                    value=card.value_display,
                    delta=card.change,
                    delta_color=_DELTA_COLORS.get(card.change_type, "off"),
                )
                if card.description:
                    st.caption(card.description)
