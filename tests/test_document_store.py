"""Tests for the document store adapters."""

from types import SimpleNamespace

import httpx
import pytest

from repository.document_store import InMemoryDocumentStore
from repository.errors import DocumentNotFound, StoreConflictError, StoreError, StoreTimeoutError
from repository.supabase_store import SupabaseDocumentStore


class TestInMemoryDocumentStore:

    @pytest.fixture
    def mem(self) -> InMemoryDocumentStore:
        return InMemoryDocumentStore()

    def test_create_starts_at_version_one(self, mem) -> None:
        doc = mem.create("bills", {"id": "b1", "status": "pending"})
        assert doc["version"] == 1

    def test_duplicate_id_conflicts(self, mem) -> None:
        mem.create("bills", {"id": "b1"})
        with pytest.raises(StoreConflictError):
            mem.create("bills", {"id": "b1"})

    def test_update_with_stale_version_conflicts(self, mem) -> None:
        mem.create("bills", {"id": "b1", "paid_amount": "0"})
        mem.update("bills", "b1", {"paid_amount": "100"}, expected_version=1)

        with pytest.raises(StoreConflictError) as exc:
            mem.update("bills", "b1", {"paid_amount": "200"}, expected_version=1)

        assert exc.value.details["actual_version"] == 2
        assert mem.get("bills", "b1")["paid_amount"] == "100"

    def test_missing_document(self, mem) -> None:
        with pytest.raises(DocumentNotFound):
            mem.get("bills", "nope")
        assert mem.find("bills", "nope") is None

    def test_query_filters_and_ordering(self, mem) -> None:
        mem.create("bills", {"id": "a", "status": "pending", "due_date": "2026-03-05"})
        mem.create("bills", {"id": "b", "status": "paid", "due_date": "2026-02-05"})
        mem.create("bills", {"id": "c", "status": "overdue", "due_date": None})

        docs = mem.query("bills", {"status": ["pending", "overdue"]}, order_by="due_date")

        assert [d["id"] for d in docs] == ["a", "c"]

    def test_returned_documents_are_copies(self, mem) -> None:
        mem.create("bills", {"id": "b1", "payments": []})
        mem.get("bills", "b1")["payments"].append("x")
        assert mem.get("bills", "b1")["payments"] == []


class FakeQuery:
    """Chainable stand-in for a PostgREST request builder."""

    def __init__(self, data=None, error=None):
        self.data = data if data is not None else []
        self.error = error
        self.calls = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args))
            return self
        return method

    def execute(self):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=self.data)


class FakeClient:

    def __init__(self, *queries):
        self.queries = list(queries)
        self.tables = []

    def table(self, name):
        self.tables.append(name)
        return self.queries.pop(0)


class UniqueViolation(Exception):
    code = "23505"


class TestSupabaseDocumentStore:

    def test_timeout_is_reported_not_retried(self) -> None:
        client = FakeClient(FakeQuery(error=httpx.ReadTimeout("slow")))

        with pytest.raises(StoreTimeoutError):
            SupabaseDocumentStore(client).get("bills", "b1")
        assert client.queries == []

    def test_unique_violation_maps_to_conflict(self) -> None:
        client = FakeClient(FakeQuery(error=UniqueViolation("duplicate key")))
        with pytest.raises(StoreConflictError):
            SupabaseDocumentStore(client).create("bills", {"id": "b1"})

    def test_other_client_errors_are_wrapped(self) -> None:
        client = FakeClient(FakeQuery(error=RuntimeError("boom")))
        with pytest.raises(StoreError) as exc:
            SupabaseDocumentStore(client).query("bills")
        assert isinstance(exc.value.__cause__, RuntimeError)

    def test_update_matches_on_version(self) -> None:
        update = FakeQuery(data=[{"id": "b1", "version": 4}])
        doc = SupabaseDocumentStore(FakeClient(update)).update("bills", "b1", {"status": "paid"}, expected_version=3)

        assert doc["version"] == 4
        assert ("update", ({"status": "paid", "version": 4},)) in update.calls
        assert ("eq", ("version", 3)) in update.calls

    def test_update_without_matching_row_is_a_conflict(self) -> None:
        client = FakeClient(FakeQuery(data=[]), FakeQuery(data=[{"id": "b1", "version": 5}]))
        with pytest.raises(StoreConflictError):
            SupabaseDocumentStore(client).update("bills", "b1", {"status": "paid"}, expected_version=3)

    def test_update_of_missing_document(self) -> None:
        client = FakeClient(FakeQuery(data=[]), FakeQuery(data=[]))
        with pytest.raises(DocumentNotFound):
            SupabaseDocumentStore(client).update("bills", "b1", {"status": "paid"}, expected_version=3)

    def test_query_translates_filters(self) -> None:
        query = FakeQuery(data=[{"id": "b1"}])
        SupabaseDocumentStore(FakeClient(query)).query(
            "bills",
            {"status": ["pending", "overdue"], "bill_id": None, "room_id": "room-201"},
            order_by="due_date",
            limit=10,
        )

        assert ("in_", ("status", ["pending", "overdue"])) in query.calls
        assert ("is_", ("bill_id", "null")) in query.calls
        assert ("eq", ("room_id", "room-201")) in query.calls
        assert ("limit", (10,)) in query.calls
