"""
費率設定 Pydantic Schema
✅ 空值 (None) 代表「不收費」，不可視為 0
✅ 樓層加價可為負數（折扣）
✅ 每間宿舍最多一個預設房型
"""
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class RoomType(BaseModel):
    """房型與基本月租"""
    id: str = Field(..., min_length=1, description="房型 ID")
    name: str = Field(..., description="房型名稱", examples=["Standard"])
    base_price: Decimal = Field(..., ge=0, description="基本月租", examples=["3000"])
    is_default: bool = Field(default=False, description="是否為預設房型")


class FeeItem(BaseModel):
    """額外服務費目錄項目"""
    id: str
    name: str
    amount: Decimal


class WaterRate(BaseModel):
    per_person: Optional[Decimal] = Field(None, description="每人每月水費（固定，不抄表）")


class ElectricRate(BaseModel):
    unit_price: Optional[Decimal] = Field(None, description="每度電價")


class UtilityRates(BaseModel):
    water: WaterRate = Field(default_factory=WaterRate)
    electric: ElectricRate = Field(default_factory=ElectricRate)


class RateConfig(BaseModel):
    """某宿舍目前生效的完整費率設定（引擎唯讀）"""
    dormitory_id: str
    room_types: Dict[str, RoomType] = Field(default_factory=dict)
    floor_rates: Dict[str, Optional[Decimal]] = Field(default_factory=dict, description="樓層 → 加價")
    fee_items: List[FeeItem] = Field(default_factory=list)
    utilities: UtilityRates = Field(default_factory=UtilityRates)
    due_day: Optional[int] = Field(None, ge=1, le=31, description="每月繳費日（None 使用環境設定）")
    late_fee_per_day: Optional[Decimal] = Field(None, ge=0, description="逾期每日罰款")

    @field_validator('floor_rates', mode='before')
    @classmethod
    def normalize_floor_keys(cls, v):
        """樓層 key 一律轉字串（JSON 文件的 key 本來就是字串）"""
        if isinstance(v, dict):
            return {str(k): val for k, val in v.items()}
        return v

    @model_validator(mode='after')
    def check_single_default(self):
        defaults = [rt.id for rt in self.room_types.values() if rt.is_default]
        if len(defaults) > 1:
            raise ValueError(f'預設房型只能有一個，目前有: {", ".join(defaults)}')
        return self

    def room_type(self, room_type_id: str) -> Optional[RoomType]:
        return self.room_types.get(room_type_id)

    def default_room_type(self) -> Optional[RoomType]:
        return next((rt for rt in self.room_types.values() if rt.is_default), None)

    def floor_rate(self, floor: int) -> Optional[Decimal]:
        return self.floor_rates.get(str(floor))

    def fee_item(self, fee_item_id: str) -> Optional[FeeItem]:
        return next((item for item in self.fee_items if item.id == fee_item_id), None)
