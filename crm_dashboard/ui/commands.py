"""
Mutations run as commands: mutate, wait, then reload the affected view model.
No optimistic updates, so a failed mutation needs no rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import streamlit as st

from crm_dashboard.errors import MutationError, PartialMutationError, UploadError
from crm_dashboard.ui.view_model import ViewModel

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]

GENERIC_UPLOAD_ERROR = "Upload failed"
FLASH_PREFIX = "flash::"

_ICONS = {
    "success": "✅",
    "error": "⚠️",
    "info": "ℹ️",
}


def toast_notifier(message: str, kind: str = "info") -> None:
    st.toast(message, icon=_ICONS.get(kind, _ICONS["info"]))


@dataclass(frozen=True)
class MutationCommand:
    description: str
    mutate: Callable[[], Any]
    success_message: str
    error_message: str


def run_command(
    command: MutationCommand,
    view_model: Optional[ViewModel] = None,
    notify: Notifier = toast_notifier,
) -> bool:
    try:
        command.mutate()
    except PartialMutationError as exc:
        logger.error("%s partly failed: %s", command.description, exc)
        notify(exc.notice, "error")
        # the writes that landed must show up
        if view_model is not None:
            view_model.invalidate()
        return False
    except MutationError as exc:
        logger.error("%s failed: %s", command.description, exc)
        notify(command.error_message, "error")
        return False

    notify(command.success_message, "success")
    if view_model is not None:
        view_model.invalidate()
    return True


def upload_with_feedback(upload: Callable[[], str], notify: Notifier = toast_notifier) -> Optional[str]:
    """Run ``upload`` and surface failures as a notification; returns the URL or None."""
    try:
        url = upload()
    except UploadError as exc:
        notify(exc.message or GENERIC_UPLOAD_ERROR, "error")
        return None
    notify("File added", "success")
    return url


def flash(key: str, message: str) -> None:
    """Keep ``message`` for the next run of the script (survives ``st.rerun``)."""
    st.session_state[FLASH_PREFIX + key] = message


def show_flash(key: str) -> None:
    message = st.session_state.pop(FLASH_PREFIX + key, None)
    if message:
        st.success(message)
