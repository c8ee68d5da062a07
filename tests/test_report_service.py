"""Tests for billing and usage reports."""

from datetime import date
from decimal import Decimal


class TestBillingSummary:

    def test_counts_and_collection_rate(self, engine, make_bill) -> None:
        make_bill("bill-a", total="1000")
        make_bill("bill-b", total="1000")
        make_bill("bill-c", total="2000")
        make_bill("bill-d", total="500")
        engine.apply_payment("bill-a", 1000)
        engine.apply_payment("bill-b", 250)
        engine.mark_overdue_if_due("bill-c", date(2026, 3, 10))
        engine.cancel_bill("bill-d")

        summary = engine.billing_summary("dorm-1", 3, 2026)

        assert summary.period == "2026/03"
        assert summary.total_bills == 3
        assert summary.total_amount == Decimal("4000")
        assert summary.total_received == Decimal("1250")
        assert summary.paid_bills == 1
        assert summary.partially_paid_bills == 1
        assert summary.overdue_bills == 1
        assert summary.overdue_amount == Decimal("2000")
        assert summary.pending_bills == 0
        assert summary.collection_rate == 0.3125

    def test_empty_period(self, engine) -> None:
        summary = engine.billing_summary("dorm-1", 1, 2026)
        assert summary.total_bills == 0
        assert summary.collection_rate == 0.0


class TestUtilityUsageReport:

    def test_room_by_month_table(self, engine) -> None:
        engine.record_meter_reading("room-201", "electric", 1050, date(2026, 1, 31))
        engine.create_bill("room-201", 1, 2026)
        engine.record_meter_reading("room-201", "electric", 1130, date(2026, 2, 28))
        engine.record_meter_reading("room-101", "electric", 4, date(2026, 2, 28))

        report = engine.utility_usage_report("dorm-1", 2026)

        assert list(report.columns) == list(range(1, 13))
        assert report.loc["201", 1] == 50
        assert report.loc["201", 2] == 80
        assert report.loc["101", 2] == 4
        assert report.loc["101", 1] == 0

    def test_no_readings(self, engine) -> None:
        report = engine.utility_usage_report("dorm-1", 2025)
        assert report.empty
