"""
帳單 Pydantic Schema
✅ 帳單項目依 type 區分（rent / floor_rate / additional_fee / utility / other）
✅ total_amount = Σ items.amount
✅ remaining_amount = total_amount - paid_amount，paid_amount 不可超過 total_amount
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from schemas.meter import UtilityType
from schemas.payment import PaymentMethod

BillStatus = Literal["pending", "partially_paid", "paid", "overdue", "cancelled"]


class BillPeriod(BaseModel):
    """帳期（月、年）"""
    month: int = Field(..., ge=1, le=12, description="帳單月份", examples=[2])
    year: int = Field(..., ge=2000, le=2100, description="帳單年份", examples=[2026])

    @property
    def label(self) -> str:
        return f"{self.year}/{self.month:02d}"


# ==================== 帳單項目 ====================

class _BillItemBase(BaseModel):
    name: str
    amount: Decimal


class RentItem(_BillItemBase):
    type: Literal["rent"] = "rent"
    room_type_id: str


class FloorRateItem(_BillItemBase):
    type: Literal["floor_rate"] = "floor_rate"
    floor: int


class AdditionalFeeItem(_BillItemBase):
    type: Literal["additional_fee"] = "additional_fee"
    fee_item_id: str


class UtilityReadingSnapshot(BaseModel):
    """計費當下的讀數快照"""
    reading_id: str
    previous_reading: Decimal
    current_reading: Decimal
    units_used: Decimal


class UtilityItem(_BillItemBase):
    type: Literal["utility"] = "utility"
    utility: UtilityType
    quantity: Decimal
    unit_price: Decimal
    utility_reading: Optional[UtilityReadingSnapshot] = None


class OtherItem(_BillItemBase):
    type: Literal["other"] = "other"
    special_item_id: Optional[str] = None


BillItem = Annotated[
    Union[RentItem, FloorRateItem, AdditionalFeeItem, UtilityItem, OtherItem],
    Field(discriminator="type"),
]


class ChargeBreakdown(BaseModel):
    """費用明細計算結果"""
    dormitory_id: str
    room_id: str
    tenant_id: str
    period: BillPeriod
    items: List[BillItem] = Field(default_factory=list)
    total_amount: Decimal
    consumed_reading_ids: List[str] = Field(default_factory=list)
    consumed_reading_versions: Dict[str, int] = Field(default_factory=dict, description="計費當下的讀數版本（結帳時 CAS 用）")
    consumed_special_item_ids: List[str] = Field(default_factory=list)


# ==================== 帳單 ====================

class PaymentRef(BaseModel):
    """帳單內嵌的付款摘要"""
    id: str
    amount: Decimal
    method: PaymentMethod
    reference: Optional[str] = None
    paid_at: datetime


class Bill(BaseModel):
    """帳單（不變量於建構時檢查）"""
    id: str
    dormitory_id: str
    room_id: str
    room_number: Optional[str] = None
    tenant_id: str
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    items: List[BillItem] = Field(default_factory=list)
    total_amount: Decimal
    paid_amount: Decimal = Decimal("0")
    remaining_amount: Decimal
    status: BillStatus = "pending"
    due_date: date
    payments: List[PaymentRef] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    version: int = 0

    @field_validator('payments')
    @classmethod
    def unique_payment_ids(cls, v):
        ids = [p.id for p in v]
        if len(ids) != len(set(ids)):
            raise ValueError('付款記錄 ID 重複')
        return v

    @model_validator(mode='after')
    def check_balance(self):
        if self.total_amount != sum((item.amount for item in self.items), Decimal("0")):
            raise ValueError('帳單總額必須等於項目金額加總')
        if self.paid_amount < 0 or self.paid_amount > self.total_amount:
            raise ValueError('已付金額必須介於 0 與帳單總額之間')
        if self.remaining_amount != self.total_amount - self.paid_amount:
            raise ValueError('未付金額必須等於總額減已付金額')
        return self

    @property
    def period(self) -> BillPeriod:
        return BillPeriod(month=self.month, year=self.year)

    @property
    def payment_ids(self) -> List[str]:
        return [p.id for p in self.payments]


class BillSummary(BaseModel):
    """帳單摘要統計"""
    dormitory_id: str
    period: Optional[str] = Field(None, description="帳期，例: 2026/01；None 表示全部")
    total_bills: int = 0
    total_amount: Decimal = Decimal("0")
    total_received: Decimal = Decimal("0")
    pending_bills: int = 0
    pending_amount: Decimal = Decimal("0")
    partially_paid_bills: int = 0
    partially_paid_amount: Decimal = Decimal("0")
    paid_bills: int = 0
    paid_amount: Decimal = Decimal("0")
    overdue_bills: int = 0
    overdue_amount: Decimal = Decimal("0")
    collection_rate: float = Field(0.0, ge=0, le=1, description="收繳率")
