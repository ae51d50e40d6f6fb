from unittest.mock import MagicMock

import httpx

from crm_dashboard.data.mutations import update_rows
from crm_dashboard.data.storage import upload_attachment
from crm_dashboard.errors import MutationError, UploadError
from crm_dashboard.ui.commands import MutationCommand, run_command, upload_with_feedback


def _command(mutate):
    return MutationCommand(
        description="invite vendor",
        mutate=mutate,
        success_message="Vendor invited",
        error_message="Could not invite vendor",
    )


def test_success_notifies_then_reloads():
    notes, order = [], []
    vm = MagicMock()
    vm.invalidate.side_effect = lambda: order.append("reload")

    def mutate():
        order.append("mutate")

    assert run_command(_command(mutate), vm, notify=lambda m, k: notes.append((m, k)))
    assert notes == [("Vendor invited", "success")]
    assert order == ["mutate", "reload"]


def test_failure_notifies_error_without_reload():
    notes = []
    vm = MagicMock()

    def mutate():
        raise MutationError("vendor_inquiries", "permission denied")

    assert not run_command(_command(mutate), vm, notify=lambda m, k: notes.append((m, k)))
    assert notes == [("Could not invite vendor", "error")]
    vm.invalidate.assert_not_called()


def test_timeout_during_mutation_is_reported(fake_client):
    notes = []
    vm = MagicMock()
    fake_client.errors["vendor_inquiries"] = httpx.ReadTimeout("timed out")
    command = _command(lambda: update_rows(fake_client, "vendor_inquiries", {"status": "x"}, {"id": "v1"}))

    assert not run_command(command, vm, notify=lambda m, k: notes.append((m, k)))
    assert notes == [("Could not invite vendor", "error")]
    vm.invalidate.assert_not_called()


def test_connection_error_during_upload_uses_generic_text(fake_client):
    notes = []
    fake_client.storage.error = httpx.ConnectError("connection refused")

    url = upload_with_feedback(
        lambda: upload_attachment(fake_client, "deck.pdf", b"", "crm-attachments"),
        notify=lambda m, k: notes.append((m, k)),
    )

    assert url is None
    assert notes == [("Upload failed", "error")]


def test_upload_success_returns_url():
    notes = []
    url = upload_with_feedback(lambda: "https://cdn/x.pdf", notify=lambda m, k: notes.append((m, k)))
    assert url == "https://cdn/x.pdf"
    assert notes == [("File added", "success")]


def test_upload_failure_shows_backend_message():
    notes = []

    def upload():
        raise UploadError("Bucket not found")

    assert upload_with_feedback(upload, notify=lambda m, k: notes.append((m, k))) is None
    assert notes == [("Bucket not found", "error")]


def test_upload_failure_without_message_uses_generic_text():
    notes = []

    def upload():
        raise UploadError()

    assert upload_with_feedback(upload, notify=lambda m, k: notes.append((m, k))) is None
    assert notes == [("Upload failed", "error")]
