# repository/room_repository.py
"""
房間資料存取層
"""
from typing import List

from repository.document_store import DocumentStore
from schemas.room import Room


class RoomRepository:
    """房間資料存取物件"""

    COLLECTION = "rooms"

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_room(self, room_id: str) -> Room:
        """依 ID 查詢，不存在丟 DocumentNotFound"""
        return Room.model_validate(self.store.get(self.COLLECTION, room_id))

    def get_rooms_by_dormitory(self, dormitory_id: str) -> List[Room]:
        docs = self.store.query(self.COLLECTION, {"dormitory_id": dormitory_id}, order_by="number")
        return [Room.model_validate(d) for d in docs]
