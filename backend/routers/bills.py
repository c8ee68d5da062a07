"""
Bills Router
帳單試算、建立、逾期、取消、項目修改
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from backend.dependencies import get_engine
from schemas.bill import Bill, BillItem, ChargeBreakdown
from services.billing_engine import BillingEngine

router = APIRouter(prefix="/api/bills", tags=["bills"])


class BillCreateRequest(BaseModel):
    room_id: str
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    due_date: Optional[date] = None


class MonthlyBillsRequest(BaseModel):
    dormitory_id: str
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class OverdueRequest(BaseModel):
    now: Optional[datetime] = None


class OverdueSweepRequest(OverdueRequest):
    dormitory_id: str


class ReplaceItemsRequest(BaseModel):
    items: List[BillItem]


@router.get("/charges", response_model=ChargeBreakdown)
def compute_charges(
    room_id: str,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    engine: BillingEngine = Depends(get_engine),
):
    """試算費用明細（不建立帳單）"""
    return engine.compute_charges(room_id, month, year)


@router.post("", response_model=Bill, status_code=status.HTTP_201_CREATED)
def create_bill(request: BillCreateRequest, engine: BillingEngine = Depends(get_engine)):
    return engine.create_bill(request.room_id, request.month, request.year, request.due_date)


@router.post("/monthly")
def create_monthly_bills(request: MonthlyBillsRequest, engine: BillingEngine = Depends(get_engine)) -> Dict:
    """整棟宿舍批量建帳"""
    return engine.create_monthly_bills(request.dormitory_id, request.month, request.year)


@router.post("/overdue-sweep")
def mark_overdue_bills(request: OverdueSweepRequest, engine: BillingEngine = Depends(get_engine)) -> Dict:
    return engine.mark_overdue_bills(request.dormitory_id, request.now or datetime.now())


@router.get("/{bill_id}", response_model=Bill)
def get_bill(bill_id: str, engine: BillingEngine = Depends(get_engine)):
    return engine.get_bill(bill_id)


@router.post("/{bill_id}/overdue", response_model=Bill)
def mark_overdue_if_due(
    bill_id: str,
    request: Optional[OverdueRequest] = None,
    engine: BillingEngine = Depends(get_engine),
):
    now = request.now if request and request.now else datetime.now()
    return engine.mark_overdue_if_due(bill_id, now)


@router.post("/{bill_id}/cancel", response_model=Bill)
def cancel_bill(bill_id: str, engine: BillingEngine = Depends(get_engine)):
    return engine.cancel_bill(bill_id)


@router.put("/{bill_id}/items", response_model=Bill)
def replace_bill_items(bill_id: str, request: ReplaceItemsRequest,
                       engine: BillingEngine = Depends(get_engine)):
    """重設帳單項目（已有付款的帳單會回傳 BillLocked）"""
    return engine.replace_bill_items(bill_id, request.items)


@router.get("/{bill_id}/late-fee")
def calculate_late_fee(
    bill_id: str,
    on: Optional[date] = None,
    engine: BillingEngine = Depends(get_engine),
) -> Dict:
    """逾期罰款試算"""
    as_of = on or date.today()
    fee: Decimal = engine.calculate_late_fee(bill_id, as_of)
    return {"bill_id": bill_id, "as_of": as_of.isoformat(), "late_fee": str(fee)}
