"""Shared fixtures: an in-memory store seeded with one dormitory."""

import os

os.environ.setdefault("LOG_FILE", "")

from datetime import date, datetime
from decimal import Decimal

import pytest

from config.settings import Settings
from repository.document_store import InMemoryDocumentStore
from schemas.bill import Bill, RentItem
from services.billing_engine import BillingEngine

DORM_ID = "dorm-1"


def seed_store(store: InMemoryDocumentStore) -> None:
    store.create("dormitory_configs", {
        "id": DORM_ID,
        "room_types": {
            "std": {"name": "Standard", "base_price": 3000, "is_default": True},
            "deluxe": {"name": "Deluxe", "base_price": 4500, "is_default": False},
        },
        "additional_fees": {
            "items": [{"id": "wifi", "name": "Wi-Fi", "amount": 200}],
            "utilities": {"water": {"per_person": 100}, "electric": {"unit": 8}},
            "floor_rates": {"2": 200, "3": None},
        },
        "due_date": 5,
        "late_fee_per_day": 20,
    })
    store.create("rooms", {
        "id": "room-201",
        "dormitory_id": DORM_ID,
        "number": "201",
        "floor": 2,
        "room_type_id": "std",
        "status": "occupied",
        "initial_meter_reading": "1000",
    })
    store.create("rooms", {
        "id": "room-101",
        "dormitory_id": DORM_ID,
        "number": "101",
        "floor": 1,
        "room_type_id": "std",
        "status": "available",
        "initial_meter_reading": "0",
    })
    store.create("tenants", {
        "id": "tenant-1",
        "dormitory_id": DORM_ID,
        "room_id": "room-201",
        "room_number": "201",
        "name": "Somchai",
        "number_of_residents": 2,
        "special_items": [],
        "status": "active",
    })


@pytest.fixture
def seed():
    return seed_store


@pytest.fixture
def settings() -> Settings:
    return Settings(supabase_url=None, supabase_key=None, log_file=None)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    s = InMemoryDocumentStore()
    seed_store(s)
    return s


@pytest.fixture
def engine(store, settings) -> BillingEngine:
    return BillingEngine(store, settings)


@pytest.fixture
def make_bill(store):
    """Insert a bill with a single rent line directly into the store."""

    def _make(bill_id="bill-1", total="1000", due=date(2026, 3, 5), status="pending",
              month=3, year=2026, room_id="room-201"):
        amount = Decimal(total)
        bill = Bill(
            id=bill_id,
            dormitory_id=DORM_ID,
            room_id=room_id,
            room_number="201",
            tenant_id="tenant-1",
            month=month,
            year=year,
            items=[RentItem(name="房租 - Standard", amount=amount, room_type_id="std")],
            total_amount=amount,
            paid_amount=Decimal("0"),
            remaining_amount=amount,
            status=status,
            due_date=due,
            created_at=datetime(2026, 3, 1),
        )
        store.create("bills", bill.model_dump(mode="json", exclude={"version"}))
        return bill_id

    return _make
