# services/rate_config_service.py
"""
費率設定解析服務
職責：把宿舍設定文件組成唯讀的 RateConfig 值物件，計費時明確傳入，不做全域查找

設定文件格式（dormitory_configs/{dormitory_id}）：
    {
        "room_types": {"std": {"id": "std", "name": "Standard", "base_price": 3000, "is_default": true}},
        "additional_fees": {
            "items": [{"id": "wifi", "name": "Wi-Fi", "amount": 200}],
            "utilities": {"water": {"per_person": 100}, "electric": {"unit": 8}},
            "floor_rates": {"2": 200, "3": null}
        },
        "due_date": 5,
        "late_fee_per_day": 20
    }
"""
from typing import Dict, List

from pydantic import ValidationError

from repository.config_repository import ConfigRepository
from repository.document_store import DocumentStore
from schemas.rate_config import RateConfig, RoomType
from schemas.room import Room
from services.base_service import BaseService
from services.errors import ConfigInvalid, ConfigMissing, UnknownRoomType


class RateConfigService(BaseService):
    """費率設定解析（RateConfig Resolver）"""

    def __init__(self, store: DocumentStore):
        super().__init__(store)
        self.config_repo = ConfigRepository(store)

    def resolve(self, dormitory_id: str) -> RateConfig:
        """
        取得宿舍目前生效的費率設定

        Args:
            dormitory_id: 宿舍 ID

        Returns:
            RateConfig

        Raises:
            ConfigMissing: 沒有設定文件
            ConfigInvalid: 設定文件無法解析（例如多個預設房型）
        """
        doc = self.config_repo.find_config(dormitory_id)
        if doc is None:
            self.logger.warning(f"⚠️ 宿舍 {dormitory_id} 尚未設定費率")
            raise ConfigMissing(
                f"宿舍 {dormitory_id} 尚未設定費率",
                details={"dormitory_id": dormitory_id},
            )

        room_types = self._collect_room_types(dormitory_id, doc.get("room_types"))
        fees = doc.get("additional_fees") or {}
        utilities = fees.get("utilities") or {}
        electric = utilities.get("electric") or {}
        water = utilities.get("water") or {}

        payload = {
            "dormitory_id": dormitory_id,
            "room_types": room_types,
            "floor_rates": fees.get("floor_rates") or {},
            "fee_items": fees.get("items") or [],
            "utilities": {
                "water": {"per_person": water.get("per_person")},
                "electric": {"unit_price": electric.get("unit_price", electric.get("unit"))},
            },
            "late_fee_per_day": doc.get("late_fee_per_day"),
        }
        if doc.get("due_date") is not None:
            payload["due_day"] = doc["due_date"]

        try:
            config = RateConfig.model_validate(payload)
        except ValidationError as e:
            self.logger.error(f"❌ 宿舍 {dormitory_id} 費率設定格式錯誤: {e}")
            raise ConfigInvalid(
                f"宿舍 {dormitory_id} 費率設定格式錯誤",
                details={"dormitory_id": dormitory_id, "errors": [err["msg"] for err in e.errors()]},
            ) from e

        self.logger.debug(
            f"費率設定: {dormitory_id} - {len(config.room_types)} 房型, "
            f"{len(config.fee_items)} 額外服務, {len(config.floor_rates)} 樓層加價"
        )
        return config

    def _collect_room_types(self, dormitory_id: str, embedded) -> Dict[str, Dict]:
        """設定文件內的房型優先；沒有時改讀 room_types collection"""
        if isinstance(embedded, dict) and embedded:
            return {
                key: {**value, "id": value.get("id", key)}
                for key, value in embedded.items()
            }

        rows: List[Dict] = embedded if isinstance(embedded, list) and embedded \
            else self.config_repo.get_room_types(dormitory_id)
        return {row["id"]: row for row in rows}

    @staticmethod
    def room_type_for(config: RateConfig, room: Room) -> RoomType:
        """取得房間的房型，不在目錄中丟 UnknownRoomType"""
        room_type = config.room_type(room.room_type_id)
        if room_type is None:
            raise UnknownRoomType(
                f"房間 {room.number} 的房型 {room.room_type_id} 不存在",
                details={"room_id": room.id, "room_type_id": room.room_type_id},
            )
        return room_type
