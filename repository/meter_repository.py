# repository/meter_repository.py
"""
抄表資料存取層
職責：純 CRUD，不含驗證與異常判斷
"""
from typing import Dict, List, Optional

from repository.document_store import DocumentStore
from schemas.meter import MeterReading


class MeterRepository:
    """抄表資料存取物件"""

    COLLECTION = "meter_readings"

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_reading(self, reading_id: str) -> MeterReading:
        return MeterReading.model_validate(self.store.get(self.COLLECTION, reading_id))

    def _latest(self, room_id: str, utility_type: str, is_billed: bool) -> Optional[MeterReading]:
        docs = self.store.query(
            self.COLLECTION,
            {"room_id": room_id, "type": utility_type, "is_billed": is_billed},
        )
        if not docs:
            return None
        readings = [MeterReading.model_validate(d) for d in docs]
        return max(readings, key=lambda r: (r.reading_date, r.current_reading))

    def find_unbilled(self, room_id: str, utility_type: str) -> Optional[MeterReading]:
        """未計費讀數（每房每種類最多一筆）"""
        return self._latest(room_id, utility_type, False)

    def find_latest_billed(self, room_id: str, utility_type: str) -> Optional[MeterReading]:
        """最近一筆已計費讀數（下一期的上期讀數來源）"""
        return self._latest(room_id, utility_type, True)

    def count_readings(self, room_id: str, utility_type: str) -> int:
        return len(self.store.query(self.COLLECTION, {"room_id": room_id, "type": utility_type}))

    def get_unbilled_for_room(self, room_id: str) -> List[MeterReading]:
        docs = self.store.query(self.COLLECTION, {"room_id": room_id, "is_billed": False})
        return [MeterReading.model_validate(d) for d in docs]

    def get_readings_by_dormitory(self, dormitory_id: str, utility_type: str) -> List[MeterReading]:
        docs = self.store.query(
            self.COLLECTION,
            {"dormitory_id": dormitory_id, "type": utility_type},
            order_by="reading_date",
        )
        return [MeterReading.model_validate(d) for d in docs]

    def create_reading(self, reading: MeterReading) -> MeterReading:
        doc = self.store.create(self.COLLECTION, reading.model_dump(mode="json", exclude={"version"}))
        return MeterReading.model_validate(doc)

    def update_reading(self, reading_id: str, patch: Dict, expected_version: Optional[int] = None) -> MeterReading:
        doc = self.store.update(self.COLLECTION, reading_id, patch, expected_version=expected_version)
        return MeterReading.model_validate(doc)
