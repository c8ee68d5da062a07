"""
Payments Router
帳單收款（以付款 ID 做冪等，重送不會重複入帳）
"""
from typing import List

from fastapi import APIRouter, Depends

from backend.dependencies import get_engine
from schemas.bill import Bill
from schemas.payment import Payment, PaymentCreate
from services.billing_engine import BillingEngine

router = APIRouter(prefix="/api/bills", tags=["payments"])


@router.post("/{bill_id}/payments", response_model=Bill)
def apply_payment(bill_id: str, request: PaymentCreate, engine: BillingEngine = Depends(get_engine)):
    return engine.apply_payment(
        bill_id,
        request.amount,
        method=request.method,
        reference=request.reference,
        paid_at=request.paid_at,
        payment_id=request.id,
        note=request.note,
    )


@router.get("/{bill_id}/payments", response_model=List[Payment])
def list_payments(bill_id: str, engine: BillingEngine = Depends(get_engine)):
    return engine.payment_service.get_payments(bill_id)
