import re

import httpx
import pytest
from supabase import PostgrestAPIError, StorageException

from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.data.models import Engagement
from crm_dashboard.data.mutations import delete_rows, insert_returning_id, insert_row, update_rows
from crm_dashboard.data.storage import object_path, upload_attachment
from crm_dashboard.errors import DataFetchError, MutationError, UploadError


def _api_error(message, code="PGRST116"):
    return PostgrestAPIError({"message": message, "code": code, "details": "none", "hint": None})


def test_fetch_rows_builds_query_and_validates(fake_client):
    client = fake_client
    client.tables["engagements"] = [{"id": 1, "name": "Smart Poles", "accounts": {"name": "Austin"}}]

    rows = fetch_rows(
        client,
        "engagements",
        columns="*, accounts(name)",
        order_by="start_date",
        filters={"status": "In Progress"},
        model=Engagement,
    )

    assert rows[0].id == "1"
    assert rows[0].account_name == "Austin"
    table, calls = client.executed[0]
    assert table == "engagements"
    assert calls == [
        ("select", "*, accounts(name)"),
        ("eq", "status", "In Progress"),
        ("order", "start_date", True),
    ]


def test_fetch_rows_without_model_returns_raw_dicts(fake_client):
    fake_client.tables["events"] = [{"id": "e1"}]
    assert fetch_rows(fake_client, "events") == [{"id": "e1"}]
    assert fake_client.executed[0][1] == [("select", "*")]


def test_fetch_rows_wraps_backend_errors(fake_client):
    fake_client.errors["events"] = _api_error("permission denied for table events", code="42501")

    with pytest.raises(DataFetchError) as info:
        fetch_rows(fake_client, "events")

    assert info.value.table == "events"
    assert info.value.code == "42501"
    assert "permission denied" in str(info.value)


def test_fetch_rows_rejects_unexpected_shapes(fake_client):
    fake_client.tables["engagements"] = [{"id": "x"}]
    with pytest.raises(DataFetchError, match="unexpected row shape"):
        fetch_rows(fake_client, "engagements", model=Engagement)


def test_insert_row(fake_client):
    insert_row(fake_client, "client_intake", {"organization_name": "Travis County"})
    assert fake_client.executed[0] == ("client_intake", [("insert", [{"organization_name": "Travis County"}])])


def test_update_rows_applies_match(fake_client):
    update_rows(fake_client, "vendor_inquiries", {"status": "Invited to Apply"}, {"id": "v1"})
    assert fake_client.executed[0][1] == [("update", {"status": "Invited to Apply"}), ("eq", "id", "v1")]


def test_update_rows_requires_match(fake_client):
    with pytest.raises(ValueError):
        update_rows(fake_client, "vendor_inquiries", {"status": "x"}, {})


def test_mutation_errors_are_wrapped(fake_client):
    fake_client.errors["events"] = _api_error("duplicate key")
    with pytest.raises(MutationError, match="duplicate key"):
        insert_row(fake_client, "events", {"name": "Demo Day"})


def test_object_path_format():
    path = object_path("Pitch Deck.PDF", now_ms=1718000000000)
    assert re.fullmatch(r"1718000000000-[0-9a-z]{7}\.PDF", path)
    assert object_path("README", now_ms=1).endswith(".bin")


def test_upload_returns_public_url(fake_client):
    url = upload_attachment(fake_client, "deck.pdf", b"%PDF", "crm-attachments", content_type="application/pdf")

    bucket, path, data, options = fake_client.storage.uploads[0]
    assert bucket == "crm-attachments"
    assert data == b"%PDF"
    assert options == {"upsert": "false", "content-type": "application/pdf"}
    assert url.endswith(f"/crm-attachments/{path}")


def test_upload_error_carries_backend_message(fake_client):
    fake_client.storage.error = StorageException({"message": "Bucket not found", "statusCode": 404})
    with pytest.raises(UploadError) as info:
        upload_attachment(fake_client, "deck.pdf", b"", "missing")
    assert info.value.message == "Bucket not found"
    assert fake_client.storage.uploads == []


def test_fetch_rows_wraps_connection_errors(fake_client):
    fake_client.errors["events"] = httpx.ConnectError("connection refused")

    with pytest.raises(DataFetchError, match="request failed: connection refused") as info:
        fetch_rows(fake_client, "events")
    assert info.value.code is None


def test_fetch_rows_applies_membership_filters(fake_client):
    fetch_rows(fake_client, "partners", in_filters={"vendor_status": ("Approved Innovation Partner",)})
    assert ("in", "vendor_status", ["Approved Innovation Partner"]) in fake_client.executed[0][1]


@pytest.mark.parametrize("error", [httpx.ReadTimeout("timed out"), httpx.ConnectError("refused")])
def test_mutation_transport_errors_are_wrapped(fake_client, error):
    fake_client.errors["engagements"] = error
    with pytest.raises(MutationError, match="request failed"):
        update_rows(fake_client, "engagements", {"status": "Complete"}, {"id": "e1"})
    with pytest.raises(MutationError, match="request failed"):
        delete_rows(fake_client, "engagements", {"id": "e1"})


def test_delete_rows_requires_match(fake_client):
    with pytest.raises(ValueError):
        delete_rows(fake_client, "engagements", {})
    assert fake_client.executed == []


def test_delete_rows_applies_match(fake_client):
    delete_rows(fake_client, "opportunities", {"id": "o1"})
    assert fake_client.executed[0] == ("opportunities", [("delete",), ("eq", "id", "o1")])


def test_insert_returning_id(fake_client):
    new_id = insert_returning_id(fake_client, "accounts", {"name": "Austin"})
    assert new_id == fake_client.tables["accounts"][0]["id"]


def test_upload_connection_error_has_no_backend_message(fake_client):
    fake_client.storage.error = httpx.ConnectError("connection refused")
    with pytest.raises(UploadError) as info:
        upload_attachment(fake_client, "deck.pdf", b"", "crm-attachments")
    assert info.value.message is None
    assert str(info.value) == "Upload failed"
