from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, TypeVar

import streamlit as st
from supabase import Client

from crm_dashboard.config import Settings
from crm_dashboard.ui.commands import Notifier, toast_notifier
from crm_dashboard.ui.view_model import ViewModel

VM_PREFIX = "vm::"

V = TypeVar("V", bound=ViewModel)


@dataclass
class PageContext:
    client: Client
    settings: Settings
    notify: Notifier = field(default=toast_notifier)


def get_view_model(key: str, factory: Callable[[], V]) -> V:
    """Return the page's view model, creating it on first mount."""
    state_key = VM_PREFIX + key
    vm = st.session_state.get(state_key)
    if vm is None:
        vm = factory()
        st.session_state[state_key] = vm
    return vm


def reset_view_models() -> int:
    """Cancel and drop every page's view model so the next render refetches."""
    keys = [k for k in list(st.session_state.keys()) if str(k).startswith(VM_PREFIX)]
    for key in keys:
        st.session_state[key].cancel()
        del st.session_state[key]
    return len(keys)
