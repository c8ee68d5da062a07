"""Tests for payment application."""

from datetime import datetime
from decimal import Decimal

import pytest

from repository.document_store import InMemoryDocumentStore
from repository.errors import StoreConflictError, StoreTimeoutError
from services.billing_engine import BillingEngine
from services.errors import (
    BillCancelled,
    InvalidPaymentAmount,
    MissingReference,
    OverpaymentRejected,
)


class TestApplyPayment:

    def test_partial_then_full(self, engine, make_bill) -> None:
        bill_id = make_bill(total="1000")

        partial = engine.apply_payment(bill_id, 400, payment_id="p1")
        assert partial.status == "partially_paid"
        assert partial.remaining_amount == Decimal("600")

        full = engine.apply_payment(bill_id, 600, payment_id="p2")
        assert full.status == "paid"
        assert full.payment_ids == ["p1", "p2"]

    def test_same_payment_id_is_applied_once(self, engine, store, make_bill) -> None:
        bill_id = make_bill(total="1000")

        once = engine.apply_payment(bill_id, 400, payment_id="p1")
        twice = engine.apply_payment(bill_id, 400, payment_id="p1")

        assert twice.model_dump() == once.model_dump()
        assert twice.paid_amount == Decimal("400")
        assert len(store.query("payments", {"bill_id": bill_id})) == 1
        assert len(store.query("notification_events", {"bill_id": bill_id})) == 1

    def test_overpayment_leaves_bill_unchanged(self, engine, make_bill) -> None:
        bill_id = make_bill(total="1000")
        before = engine.get_bill(bill_id)

        with pytest.raises(OverpaymentRejected) as exc:
            engine.apply_payment(bill_id, 1200)

        assert exc.value.details["payment_amount"] == "1200"
        assert engine.get_bill(bill_id).model_dump() == before.model_dump()

    def test_overpayment_counts_existing_payments(self, engine, make_bill) -> None:
        bill_id = make_bill(total="1000")
        engine.apply_payment(bill_id, 700)

        with pytest.raises(OverpaymentRejected):
            engine.apply_payment(bill_id, 301)

    @pytest.mark.parametrize("amount", [0, -50])
    def test_non_positive_amount(self, engine, make_bill, amount) -> None:
        bill_id = make_bill()
        with pytest.raises(InvalidPaymentAmount):
            engine.apply_payment(bill_id, amount)

    @pytest.mark.parametrize("method", ["bank_transfer", "promptpay"])
    def test_reference_required_for_non_cash(self, engine, make_bill, method) -> None:
        bill_id = make_bill()

        with pytest.raises(MissingReference):
            engine.apply_payment(bill_id, 100, method=method)
        with pytest.raises(MissingReference):
            engine.apply_payment(bill_id, 100, method=method, reference="   ")

        bill = engine.apply_payment(bill_id, 100, method=method, reference="TX-001")
        assert bill.payments[0].reference == "TX-001"

    def test_cancelled_bill_rejects_payment(self, engine, make_bill) -> None:
        bill_id = make_bill()
        engine.cancel_bill(bill_id)

        with pytest.raises(BillCancelled):
            engine.apply_payment(bill_id, 100)

    def test_payment_record_is_stored(self, engine, make_bill) -> None:
        bill_id = make_bill()
        paid_at = datetime(2026, 3, 3, 14, 30)

        engine.apply_payment(bill_id, 250, method="bank_transfer", reference="TX-9",
                             paid_at=paid_at, payment_id="p-250")

        payments = engine.payment_service.get_payments(bill_id)
        assert len(payments) == 1
        assert payments[0].id == "p-250"
        assert payments[0].amount == Decimal("250")
        assert payments[0].tenant_id == "tenant-1"
        assert payments[0].paid_at == paid_at


class TestPaymentEvents:

    def test_subscriber_receives_event(self, engine, make_bill) -> None:
        received = []
        engine.subscribe_payments(received.append)
        bill_id = make_bill(total="1000")

        engine.apply_payment(bill_id, 1000, payment_id="p1")

        assert len(received) == 1
        assert received[0].bill_status == "paid"
        assert received[0].remaining_amount == Decimal("0")
        assert received[0].payment_id == "p1"

    def test_outbox_keeps_undelivered_events(self, engine, make_bill) -> None:
        bill_id = make_bill()
        engine.apply_payment(bill_id, 100)
        engine.apply_payment(bill_id, 200)

        pending = engine.publisher.pending_events("dorm-1")
        assert [e.amount for e in pending] == [Decimal("100"), Decimal("200")]

    def test_rejected_payment_emits_nothing(self, engine, store, make_bill) -> None:
        bill_id = make_bill(total="1000")
        with pytest.raises(OverpaymentRejected):
            engine.apply_payment(bill_id, 5000)
        assert store.query("notification_events") == []


class ConcurrentWriteStore(InMemoryDocumentStore):
    """Lets a competing writer touch the bill just before our own update lands."""

    def __init__(self, competing_writes: int):
        super().__init__()
        self.competing_writes = competing_writes
        self.competitor = None

    def update(self, collection, doc_id, patch, expected_version=None):
        if collection == "bills" and self.competing_writes > 0:
            self.competing_writes -= 1
            self.competitor()
        return super().update(collection, doc_id, patch, expected_version)


class TestConcurrentPayments:

    @pytest.fixture
    def racing_store(self, seed):
        def _make(competing_writes: int) -> ConcurrentWriteStore:
            store = ConcurrentWriteStore(competing_writes)
            seed(store)
            store.create("bills", {
                "id": "bill-1", "dormitory_id": "dorm-1", "room_id": "room-201", "tenant_id": "tenant-1",
                "month": 3, "year": 2026, "due_date": "2026-03-05", "status": "pending",
                "items": [{"type": "rent", "name": "房租", "amount": "1000", "room_type_id": "std"}],
                "total_amount": "1000", "paid_amount": "0", "remaining_amount": "1000", "payments": [],
            })
            return store
        return _make

    def test_conflicting_payment_is_retried_with_fresh_read(self, racing_store, settings) -> None:
        store = racing_store(1)
        store.competitor = lambda: InMemoryDocumentStore.update(store, "bills", "bill-1", {
            "payments": [{"id": "p-other", "amount": "300", "method": "cash",
                          "paid_at": "2026-03-02T10:00:00"}],
            "paid_amount": "300",
            "remaining_amount": "700",
            "status": "partially_paid",
        })
        engine = BillingEngine(store, settings)

        bill = engine.apply_payment("bill-1", 500, payment_id="p-mine")

        assert bill.payment_ids == ["p-other", "p-mine"]
        assert bill.paid_amount == Decimal("800")
        assert bill.remaining_amount == Decimal("200")
        assert bill.status == "partially_paid"

    def test_retry_revalidates_against_fresh_state(self, racing_store, settings) -> None:
        store = racing_store(1)
        store.competitor = lambda: InMemoryDocumentStore.update(store, "bills", "bill-1", {
            "payments": [{"id": "p-other", "amount": "800", "method": "cash",
                          "paid_at": "2026-03-02T10:00:00"}],
            "paid_amount": "800",
            "remaining_amount": "200",
            "status": "partially_paid",
        })
        engine = BillingEngine(store, settings)

        with pytest.raises(OverpaymentRejected):
            engine.apply_payment("bill-1", 500, payment_id="p-mine")

        assert engine.get_bill("bill-1").paid_amount == Decimal("800")

    def test_second_conflict_propagates(self, racing_store, settings) -> None:
        store = racing_store(2)
        store.competitor = lambda: InMemoryDocumentStore.update(
            store, "bills", "bill-1", {"updated_at": "2026-03-02T10:00:00"}
        )
        engine = BillingEngine(store, settings)

        with pytest.raises(StoreConflictError):
            engine.apply_payment("bill-1", 500, payment_id="p-mine")

        assert engine.get_bill("bill-1").paid_amount == Decimal("0")


class FlakyPaymentStore(InMemoryDocumentStore):
    """Times out on the first payment record write."""

    def __init__(self):
        super().__init__()
        self.payment_failures = 1

    def create(self, collection, doc):
        if collection == "payments" and self.payment_failures > 0:
            self.payment_failures -= 1
            raise StoreTimeoutError("payments insert timed out")
        return super().create(collection, doc)


class TestResendAfterFailure:

    @pytest.fixture
    def flaky_engine(self, seed, settings):
        store = FlakyPaymentStore()
        seed(store)
        store.create("bills", {
            "id": "bill-1", "dormitory_id": "dorm-1", "room_id": "room-201", "tenant_id": "tenant-1",
            "month": 3, "year": 2026, "due_date": "2026-03-05", "status": "pending",
            "items": [{"type": "rent", "name": "房租", "amount": "1000", "room_type_id": "std"}],
            "total_amount": "1000", "paid_amount": "0", "remaining_amount": "1000", "payments": [],
        })
        return BillingEngine(store, settings)

    def test_resend_writes_missing_record_and_event(self, flaky_engine) -> None:
        received = []
        flaky_engine.subscribe_payments(received.append)

        with pytest.raises(StoreTimeoutError):
            flaky_engine.apply_payment("bill-1", 1000, payment_id="p-1")
        assert flaky_engine.get_bill("bill-1").paid_amount == Decimal("1000")
        assert flaky_engine.payment_service.payment_repo.find("p-1") is None

        bill = flaky_engine.apply_payment("bill-1", 1000, payment_id="p-1")

        assert bill.paid_amount == Decimal("1000")
        assert bill.status == "paid"
        record = flaky_engine.payment_service.payment_repo.find("p-1")
        assert record is not None
        assert record.amount == Decimal("1000")
        events = flaky_engine.store.query("notification_events", {"bill_id": "bill-1"})
        assert [e["id"] for e in events] == ["bill-1_p-1"]
        assert [e.payment_id for e in received] == ["p-1"]

    def test_further_resends_do_not_duplicate(self, flaky_engine) -> None:
        received = []
        flaky_engine.subscribe_payments(received.append)

        with pytest.raises(StoreTimeoutError):
            flaky_engine.apply_payment("bill-1", 1000, payment_id="p-1")
        flaky_engine.apply_payment("bill-1", 1000, payment_id="p-1")
        flaky_engine.apply_payment("bill-1", 1000, payment_id="p-1")

        assert len(flaky_engine.payment_service.get_payments("bill-1")) == 1
        assert len(flaky_engine.store.query("notification_events", {"bill_id": "bill-1"})) == 1
        assert len(received) == 1
