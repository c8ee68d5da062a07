# services/report_service.py
"""
報表服務
職責：帳單收款摘要、房間用量月報（pandas 彙總）
"""
from decimal import Decimal
from typing import Optional

import pandas as pd

from repository.bill_repository import BillRepository
from repository.document_store import DocumentStore
from repository.meter_repository import MeterRepository
from repository.room_repository import RoomRepository
from schemas.bill import BillSummary
from services.base_service import BaseService
from utils.formatters import format_period

SUMMARY_STATUSES = ("pending", "partially_paid", "paid", "overdue")


def _decimal_sum(series: pd.Series) -> Decimal:
    return sum(series, Decimal("0"))


class ReportService(BaseService):

    def __init__(self, store: DocumentStore):
        super().__init__(store)
        self.bill_repo = BillRepository(store)
        self.meter_repo = MeterRepository(store)
        self.room_repo = RoomRepository(store)

    def billing_summary(self, dormitory_id: str, month: Optional[int] = None,
                        year: Optional[int] = None) -> BillSummary:
        """
        帳單摘要（已取消帳單不計）

        各狀態金額為該狀態帳單的總額；收繳率 = 已收 / 應收
        """
        period = format_period(month, year) if month and year else None
        bills = [
            b for b in self.bill_repo.get_bills(dormitory_id, month, year)
            if b.status != "cancelled"
        ]
        summary = {"dormitory_id": dormitory_id, "period": period}

        if not bills:
            return BillSummary(**summary)

        df = pd.DataFrame([
            {
                "status": b.status,
                "total_amount": b.total_amount,
                "paid_amount": b.paid_amount,
            }
            for b in bills
        ])

        by_status = df.groupby("status").agg(
            bills=("total_amount", "size"),
            amount=("total_amount", _decimal_sum),
        )

        for status in SUMMARY_STATUSES:
            if status in by_status.index:
                summary[f"{status}_bills"] = int(by_status.loc[status, "bills"])
                summary[f"{status}_amount"] = by_status.loc[status, "amount"]

        total_amount = _decimal_sum(df["total_amount"])
        total_received = _decimal_sum(df["paid_amount"])
        summary.update(
            total_bills=len(df),
            total_amount=total_amount,
            total_received=total_received,
            collection_rate=round(float(total_received / total_amount), 4) if total_amount else 0.0,
        )

        self.logger.info(
            f"帳單摘要 {dormitory_id} {period or '全部'}: {len(df)} 筆, 收繳率 {summary['collection_rate']:.1%}"
        )
        return BillSummary(**summary)

    def utility_usage_report(self, dormitory_id: str, year: int,
                             utility_type: str = "electric") -> pd.DataFrame:
        """
        房間 × 月份 用量表

        Returns:
            index 為房號，欄位為 1-12 月，值為當月抄表度數加總（無資料為 0）
        """
        readings = [
            r for r in self.meter_repo.get_readings_by_dormitory(dormitory_id, utility_type)
            if r.reading_date.year == year
        ]
        columns = list(range(1, 13))

        if not readings:
            return pd.DataFrame(columns=columns, dtype=float)

        room_numbers = {room.id: room.number for room in self.room_repo.get_rooms_by_dormitory(dormitory_id)}
        df = pd.DataFrame([
            {
                "room": room_numbers.get(r.room_id, r.room_id),
                "month": r.reading_date.month,
                "units_used": float(r.units_used),
            }
            for r in readings
        ])

        report = df.pivot_table(
            index="room",
            columns="month",
            values="units_used",
            aggfunc="sum",
            fill_value=0,
        ).reindex(columns=columns, fill_value=0)
        report.columns.name = None

        self.logger.debug(f"用量報表 {dormitory_id} {year} {utility_type}: {len(report)} 房")
        return report
