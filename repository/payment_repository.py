# repository/payment_repository.py
"""
付款資料存取層
"""
from typing import List, Optional

from repository.document_store import DocumentStore
from schemas.payment import Payment


class PaymentRepository:
    """付款資料存取物件（付款只新增、不修改）"""

    COLLECTION = "payments"

    def __init__(self, store: DocumentStore):
        self.store = store

    def find(self, payment_id: str) -> Optional[Payment]:
        doc = self.store.find(self.COLLECTION, payment_id)
        return Payment.model_validate(doc) if doc else None

    def create(self, payment: Payment) -> Payment:
        doc = self.store.create(self.COLLECTION, payment.model_dump(mode="json"))
        return Payment.model_validate(doc)

    def get_by_bill(self, bill_id: str) -> List[Payment]:
        docs = self.store.query(self.COLLECTION, {"bill_id": bill_id}, order_by="paid_at")
        return [Payment.model_validate(d) for d in docs]
