# repository/notification_repository.py
"""
通知事件 outbox 資料存取層
下游通知服務（LINE / Email）讀取 delivered = false 的事件後自行發送
✅ 事件 ID 由呼叫端決定，同一事件重複寫入會被擋下
"""
from typing import List

from repository.document_store import DocumentStore
from repository.errors import StoreConflictError
from schemas.payment import PaymentRecordedEvent


class NotificationRepository:

    COLLECTION = "notification_events"

    def __init__(self, store: DocumentStore):
        self.store = store

    def add_event(self, event: PaymentRecordedEvent) -> bool:
        """
        寫入 outbox

        Returns:
            True 表示新寫入；False 表示同 ID 事件已存在
        """
        doc = event.model_dump(mode="json")
        doc["delivered"] = False
        try:
            self.store.create(self.COLLECTION, doc)
        except StoreConflictError:
            return False
        return True

    def get_pending(self, dormitory_id: str) -> List[PaymentRecordedEvent]:
        docs = self.store.query(
            self.COLLECTION,
            {"dormitory_id": dormitory_id, "delivered": False},
            order_by="occurred_at",
        )
        return [PaymentRecordedEvent.model_validate(d) for d in docs]
