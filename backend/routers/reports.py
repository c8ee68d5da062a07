"""
Reports Router
收款摘要與用量月報
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from backend.dependencies import get_engine
from schemas.bill import BillSummary
from schemas.meter import UtilityType
from services.billing_engine import BillingEngine

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/summary", response_model=BillSummary)
def billing_summary(
    dormitory_id: str,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    engine: BillingEngine = Depends(get_engine),
):
    return engine.billing_summary(dormitory_id, month, year)


@router.get("/utility-usage")
def utility_usage(
    dormitory_id: str,
    year: int = Query(..., ge=2000, le=2100),
    utility_type: UtilityType = "electric",
    engine: BillingEngine = Depends(get_engine),
) -> Dict:
    report = engine.utility_usage_report(dormitory_id, year, utility_type)
    rows = [
        {"room": room, "months": {str(month): float(units) for month, units in values.items()}}
        for room, values in report.iterrows()
    ]
    return {"dormitory_id": dormitory_id, "year": year, "type": utility_type, "rooms": rows}
