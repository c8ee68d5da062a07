# services/event_service.py
"""
付款事件發布
職責：把「已入帳」事件寫入 notification_events outbox，並通知行程內訂閱者
✅ 只發布事件，不負責發送 LINE / Email
"""
from typing import Callable, List

from repository.document_store import DocumentStore
from repository.notification_repository import NotificationRepository
from schemas.payment import PaymentRecordedEvent
from services.base_service import BaseService

Subscriber = Callable[[PaymentRecordedEvent], None]


class PaymentEventPublisher(BaseService):

    def __init__(self, store: DocumentStore):
        super().__init__(store)
        self.notification_repo = NotificationRepository(store)
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def publish(self, event: PaymentRecordedEvent) -> bool:
        """
        寫入 outbox 後依序呼叫訂閱者

        同一事件 ID 已在 outbox 時不再通知訂閱者，回傳 False。
        訂閱者的例外會往上拋給呼叫端；outbox 寫入已完成，事件不會遺失。
        """
        if not self.notification_repo.add_event(event):
            self.logger.info(f"付款事件 {event.id} 已發布，略過")
            return False

        self.logger.info(
            f"📨 付款事件: {event.bill_id} - {event.amount} ({event.method}) → {event.bill_status}"
        )

        for callback in self._subscribers:
            callback(event)
        return True

    def pending_events(self, dormitory_id: str) -> List[PaymentRecordedEvent]:
        return self.notification_repo.get_pending(dormitory_id)
