"""
Meter Readings Router
抄表登錄，回傳讀數與異常用量提醒
"""
from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from backend.dependencies import get_engine
from schemas.meter import ReadingResult, UtilityType
from services.billing_engine import BillingEngine

router = APIRouter(prefix="/api/meter-readings", tags=["meter-readings"])


class MeterReadingRequest(BaseModel):
    room_id: str
    type: UtilityType = "electric"
    current_reading: Decimal = Field(..., ge=0)
    reading_date: date


@router.post("", response_model=ReadingResult, status_code=status.HTTP_201_CREATED)
def record_meter_reading(request: MeterReadingRequest, engine: BillingEngine = Depends(get_engine)):
    """
    登錄讀數
    讀數小於上期時回傳 NonMonotonicReading；異常用量只列在 alerts，不阻擋儲存
    """
    return engine.record_meter_reading(
        request.room_id,
        request.type,
        request.current_reading,
        request.reading_date,
    )
