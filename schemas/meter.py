"""
抄表 Pydantic Schema
✅ current_reading >= previous_reading
✅ units_used = current_reading - previous_reading
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

UtilityType = Literal["electric", "water"]
AlertType = Literal["vacant", "high"]


class MeterReading(BaseModel):
    """電表 / 水表讀數"""
    id: str
    dormitory_id: str
    room_id: str
    type: UtilityType
    previous_reading: Decimal = Field(..., ge=0)
    current_reading: Decimal = Field(..., ge=0)
    units_used: Decimal = Field(..., ge=0)
    reading_date: date
    is_billed: bool = False
    bill_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    @model_validator(mode='after')
    def check_units(self):
        if self.current_reading < self.previous_reading:
            raise ValueError('本期讀數不可小於上期讀數')
        if self.units_used != self.current_reading - self.previous_reading:
            raise ValueError('使用度數必須等於本期讀數減上期讀數')
        return self

    @property
    def is_pending_reconciliation(self) -> bool:
        """已掛上帳單但尚未標記為已計費"""
        return self.bill_id is not None and not self.is_billed


class AnomalyThresholds(BaseModel):
    """異常用量門檻"""
    vacant_room_threshold: Decimal = Field(default=Decimal("10"), ge=0)
    high_usage_threshold: Decimal = Field(default=Decimal("200"), ge=0)


class UsageAlert(BaseModel):
    """異常用量提醒（僅供參考，不阻擋儲存）"""
    room_id: str
    rule_type: AlertType
    units_used: Decimal
    threshold: Decimal
    date: date


class ReadingResult(BaseModel):
    reading: MeterReading
    alerts: List[UsageAlert] = Field(default_factory=list)
