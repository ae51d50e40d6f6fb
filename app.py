import crm_dashboard.bootstrap_env  # must be first to set env/secrets
import logging

import streamlit as st

from crm_dashboard.bootstrap_env import configure_logging
from crm_dashboard.config import TABS, load_settings
from crm_dashboard.data.loader import get_client
from crm_dashboard.errors import ConfigurationError
from crm_dashboard.ui.layout import setup_page, sidebar
from crm_dashboard.ui.pages import (
    client_intake,
    command_center,
    engagements,
    events,
    innovation,
    pipeline,
    vendor_applications,
    vendor_inquiries,
)
from crm_dashboard.ui.pages.context import PageContext

logger = logging.getLogger(__name__)

PAGE_RENDERERS = {
    "command_center": command_center.render,
    "innovation": innovation.render,
    "events": events.render,
    "vendor_inquiries": vendor_inquiries.render,
    "vendor_applications": vendor_applications.render,
    "client_intake": client_intake.render,
    "pipeline": pipeline.render,
    "engagements": engagements.render,
}


def main() -> None:
    setup_page()
    st.title("Innovation CRM Command Center")

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        st.error(f"Configuration error: {exc}")
        return
    configure_logging(settings.log_level)

    sidebar(settings)
    context = PageContext(client=get_client(settings), settings=settings)

    tab_labels = [tab.label for tab in TABS]
    streamlit_tabs = st.tabs(tab_labels)

    for streamlit_tab, tab_config in zip(streamlit_tabs, TABS):
        renderer = PAGE_RENDERERS.get(tab_config.key)
        if renderer is None:
            continue
        with streamlit_tab:
            renderer(context)


if __name__ == "__main__":
    main()
