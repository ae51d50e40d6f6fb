from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from crm_dashboard.config import Settings
from crm_dashboard.ui.pages.context import PageContext


class FakeQuery:
    def __init__(self, client: "FakeClient", table: str):
        self.client = client
        self.table = table
        self.calls: List[tuple] = []
        self.inserted: Optional[List[Dict[str, Any]]] = None

    def select(self, columns: str) -> "FakeQuery":
        self.calls.append(("select", columns))
        return self

    def insert(self, rows: List[Dict[str, Any]]) -> "FakeQuery":
        self.calls.append(("insert", rows))
        self.inserted = rows
        return self

    def update(self, values: Dict[str, Any]) -> "FakeQuery":
        self.calls.append(("update", values))
        return self

    def delete(self) -> "FakeQuery":
        self.calls.append(("delete",))
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        self.calls.append(("in", column, values))
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.calls.append(("eq", column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.calls.append(("order", column, desc))
        return self

    def execute(self) -> SimpleNamespace:
        self.client.executed.append((self.table, list(self.calls)))
        error = self.client.errors.get(self.table)
        if error is not None:
            raise error
        if self.inserted is not None:
            stored = [{"id": f"{self.table}-{len(self.client.executed)}", **row} for row in self.inserted]
            self.client.tables.setdefault(self.table, []).extend(stored)
            return SimpleNamespace(data=stored)
        return SimpleNamespace(data=self.client.tables.get(self.table, []))


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path: str, data: bytes, file_options: Optional[Dict[str, str]] = None) -> None:
        if self.storage.error is not None:
            raise self.storage.error
        self.storage.uploads.append((self.name, path, data, file_options))

    def get_public_url(self, path: str) -> str:
        return f"https://example.supabase.co/storage/v1/object/public/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.uploads: List[tuple] = []
        self.error: Optional[Exception] = None

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeClient:
    """Chainable stand-in for ``supabase.Client`` backed by in-memory rows."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = tables or {}
        self.errors: Dict[str, Exception] = {}
        self.executed: List[tuple] = []
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def settings() -> Settings:
    return Settings(supabase_url="https://example.supabase.co", supabase_key="anon-key", fetch_workers=4)


@pytest.fixture
def streamlit_stub() -> MagicMock:
    """``st`` stand-in whose layout calls unpack and whose buttons start unpressed."""
    stub = MagicMock()
    stub.session_state = {}
    stub.columns.side_effect = lambda layout: [
        MagicMock() for _ in range(layout if isinstance(layout, int) else len(layout))
    ]
    stub.form_submit_button.return_value = False
    stub.button.return_value = False
    stub.checkbox.return_value = False
    return stub


@pytest.fixture
def context(fake_client, settings) -> PageContext:
    notes: List[tuple] = []
    ctx = PageContext(client=fake_client, settings=settings, notify=lambda m, k: notes.append((m, k)))
    ctx.notes = notes
    return ctx
