# repository/bill_repository.py
"""
帳單資料存取層
職責：純 CRUD，狀態轉換一律由 BillService 決定
"""
from typing import List, Optional, Sequence

from repository.document_store import DocumentStore
from schemas.bill import Bill


class BillRepository:
    """帳單資料存取物件（Repository Pattern）"""

    COLLECTION = "bills"

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_bill(self, bill_id: str) -> Bill:
        return Bill.model_validate(self.store.get(self.COLLECTION, bill_id))

    def get_bills_for_period(self, room_id: str, month: int, year: int) -> List[Bill]:
        """某房某期的所有帳單（含已取消）"""
        docs = self.store.query(
            self.COLLECTION,
            {"room_id": room_id, "month": month, "year": year},
        )
        return [Bill.model_validate(d) for d in docs]

    def find_active_bill(self, room_id: str, month: int, year: int) -> Optional[Bill]:
        """某房某期未取消的帳單"""
        for bill in self.get_bills_for_period(room_id, month, year):
            if bill.status != "cancelled":
                return bill
        return None

    def get_bills(self, dormitory_id: str, month: Optional[int] = None,
                  year: Optional[int] = None) -> List[Bill]:
        filters = {"dormitory_id": dormitory_id}
        if month:
            filters["month"] = month
        if year:
            filters["year"] = year
        docs = self.store.query(self.COLLECTION, filters, order_by="due_date")
        return [Bill.model_validate(d) for d in docs]

    def get_by_status(self, dormitory_id: str, statuses: Sequence[str]) -> List[Bill]:
        docs = self.store.query(
            self.COLLECTION,
            {"dormitory_id": dormitory_id, "status": list(statuses)},
            order_by="due_date",
        )
        return [Bill.model_validate(d) for d in docs]

    def create_bill(self, bill: Bill) -> Bill:
        doc = self.store.create(self.COLLECTION, bill.model_dump(mode="json", exclude={"version"}))
        return Bill.model_validate(doc)

    def save_bill(self, bill: Bill) -> Bill:
        """以 bill.version 做 CAS 整筆寫回"""
        doc = self.store.update(
            self.COLLECTION,
            bill.id,
            bill.model_dump(mode="json", exclude={"id", "version"}),
            expected_version=bill.version,
        )
        return Bill.model_validate(doc)
