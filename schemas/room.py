"""
房間 (Room) 資料模型
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

RoomStatus = Literal["available", "occupied", "maintenance", "pending_payment", "moving_out"]


class Room(BaseModel):
    """房間（同一宿舍內房號唯一，不論狀態）"""
    id: str
    dormitory_id: str
    number: str = Field(..., min_length=1, description="房號，例如：101、A1")
    floor: int = Field(..., description="樓層")
    room_type_id: str = Field(..., description="房型 ID")
    status: RoomStatus = Field(default="available", description="狀態")
    additional_service_ids: List[str] = Field(default_factory=list, description="已選額外服務")
    initial_meter_reading: Decimal = Field(default=Decimal("0"), ge=0, description="初始電表讀數")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
