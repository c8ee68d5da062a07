# repository/config_repository.py
"""
宿舍費率設定資料存取層
"""
from typing import Dict, List, Optional

from repository.document_store import DocumentStore


class ConfigRepository:
    """費率設定資料存取物件"""

    COLLECTION = "dormitory_configs"
    ROOM_TYPES = "room_types"

    def __init__(self, store: DocumentStore):
        self.store = store

    def find_config(self, dormitory_id: str) -> Optional[Dict]:
        """設定文件以宿舍 ID 為文件 ID"""
        return self.store.find(self.COLLECTION, dormitory_id)

    def get_room_types(self, dormitory_id: str) -> List[Dict]:
        return self.store.query(
            self.ROOM_TYPES,
            {"dormitory_id": dormitory_id},
            order_by="name",
        )
