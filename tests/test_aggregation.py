from dataclasses import dataclass

import pytest

from crm_dashboard.data.aggregation import attach_counts, count_by_key, read_field, with_field
from crm_dashboard.data.models import EventRow, EventVendorLink


def test_counts_attach_to_matching_primary_rows_only():
    primary = [{"id": 1, "name": "A"}]
    secondary = [{"ref": 1}, {"ref": 1}, {"ref": 2}]

    rows = attach_counts(primary, secondary, foreign_key="ref", target="count")

    assert rows == [{"id": 1, "name": "A", "count": 2}]


def test_rows_without_matches_default_to_zero():
    primary = [{"id": "a"}, {"id": "b"}, {"id": "c"}]
    secondary = [{"ref": "a"}, {"ref": "c"}, {"ref": "c"}, {"ref": None}, {}]

    rows = attach_counts(primary, secondary, "ref", "n")

    assert [r["n"] for r in rows] == [1, 0, 2]


def test_inputs_are_not_mutated():
    primary = [{"id": 1}]
    secondary = [{"ref": 1}]
    attach_counts(primary, secondary, "ref", "count")
    assert primary == [{"id": 1}]
    assert secondary == [{"ref": 1}]


def test_pydantic_rows_are_copied_with_derived_field():
    events = [EventRow(id="e1", name="Expo"), EventRow(id="e2", name="Summit")]
    links = [EventVendorLink(event_id="e2"), EventVendorLink(event_id="e2"), EventVendorLink(event_id="zz")]

    rows = attach_counts(events, links, "event_id", "vendor_count")

    assert [(r.id, r.vendor_count) for r in rows] == [("e1", 0), ("e2", 2)]
    assert events[1].vendor_count == 0
    assert rows[1] is not events[1]


def test_dataclass_rows_use_replace():
    @dataclass(frozen=True)
    class Account:
        id: int
        contacts: int = 0

    rows = attach_counts([Account(5)], [{"account_id": 5}], "account_id", "contacts")
    assert rows == [Account(5, 1)]


def test_count_by_key_skips_missing_keys():
    assert count_by_key([{"k": "x"}, {"k": None}, {"other": 1}, {"k": "x"}], "k") == {"x": 2}
    assert count_by_key([], "k") == {}


def test_read_field_handles_mappings_and_attributes():
    assert read_field({"a": 1}, "a") == 1
    assert read_field(EventRow(id="1", name="n"), "name") == "n"
    assert read_field(object(), "missing", "dflt") == "dflt"


def test_with_field_rejects_unknown_row_types():
    with pytest.raises(TypeError):
        with_field(42, "x", 1)
