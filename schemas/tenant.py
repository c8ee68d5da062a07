"""
房客 Pydantic Schema
✅ special_items：一次性或多期的個別加收項目
"""
from datetime import date
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

TenantStatus = Literal["active", "moving_out", "moved_out"]


class SpecialItem(BaseModel):
    """房客個別加收項目"""
    id: str
    name: str
    amount: Decimal
    duration: Union[Literal["once"], Annotated[int, Field(ge=1)]] = Field(
        ...,
        description='"once" 或收費期數',
        examples=["once", 3],
    )
    start_date: Optional[date] = None
    remaining_billing_cycles: Optional[int] = Field(None, ge=0, description="剩餘期數")

    @model_validator(mode='after')
    def default_remaining_cycles(self):
        """多期項目未設定剩餘期數時，等於總期數"""
        if self.duration != "once" and self.remaining_billing_cycles is None:
            self.remaining_billing_cycles = self.duration
        return self

    @property
    def is_once(self) -> bool:
        return self.duration == "once"

    def is_active(self) -> bool:
        """
        本期是否收費

        一次性項目：尚未被任何帳單消耗（remaining_billing_cycles 不為 0）
        多期項目：remaining_billing_cycles > 0
        """
        if self.is_once:
            return self.remaining_billing_cycles != 0
        return (self.remaining_billing_cycles or 0) > 0


class Tenant(BaseModel):
    """房客"""
    id: str
    dormitory_id: str
    room_id: str
    room_number: Optional[str] = None
    name: Optional[str] = None
    number_of_residents: int = Field(default=1, ge=1, description="入住人數")
    special_items: List[SpecialItem] = Field(default_factory=list)
    status: TenantStatus = "active"
    version: int = 0
