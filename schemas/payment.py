"""
收款 Pydantic Schema
✅ Payment 建立後不可變（frozen）；更正以新付款或沖銷表示
✅ 非現金付款必須附參考編號（由 PaymentService 驗證，回傳 MissingReference）
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PaymentMethod = Literal["cash", "bank_transfer", "promptpay"]


class PaymentCreate(BaseModel):
    """收款請求（引擎內部與 API 共用）"""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="付款 ID（冪等鍵）")
    amount: Decimal = Field(..., description="繳款金額", examples=["1000"])
    method: PaymentMethod = Field(default="cash", description="繳費方式")
    reference: Optional[str] = Field(None, max_length=100, description="轉帳 / PromptPay 參考編號")
    paid_at: datetime = Field(default_factory=datetime.now, description="繳款時間")
    note: Optional[str] = Field(None, max_length=500)


class Payment(BaseModel):
    """已入帳的付款記錄"""
    model_config = ConfigDict(frozen=True)

    id: str
    bill_id: str
    dormitory_id: str
    tenant_id: str
    amount: Decimal
    method: PaymentMethod
    reference: Optional[str] = None
    paid_at: datetime
    status: Literal["completed"] = "completed"
    note: Optional[str] = None
    created_at: Optional[datetime] = None


class PaymentRecordedEvent(BaseModel):
    """「已入帳」事件，交給下游通知服務處理"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="事件 ID（付款事件為 {bill_id}_{payment_id}）")
    event_type: Literal["payment_recorded"] = "payment_recorded"
    dormitory_id: str
    bill_id: str
    tenant_id: str
    payment_id: str
    amount: Decimal
    method: PaymentMethod
    bill_status: str
    remaining_amount: Decimal
    occurred_at: datetime = Field(default_factory=datetime.now)
