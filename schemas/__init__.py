"""
Pydantic Schemas 統一匯出
"""

from .rate_config import (
    RoomType,
    FeeItem,
    WaterRate,
    ElectricRate,
    UtilityRates,
    RateConfig,
)

from .room import Room, RoomStatus
from .tenant import SpecialItem, Tenant, TenantStatus

from .meter import (
    UtilityType,
    AlertType,
    MeterReading,
    AnomalyThresholds,
    UsageAlert,
    ReadingResult,
)

from .payment import (
    PaymentMethod,
    PaymentCreate,
    Payment,
    PaymentRecordedEvent,
)

from .bill import (
    BillStatus,
    BillPeriod,
    RentItem,
    FloorRateItem,
    AdditionalFeeItem,
    UtilityReadingSnapshot,
    UtilityItem,
    OtherItem,
    BillItem,
    ChargeBreakdown,
    PaymentRef,
    Bill,
    BillSummary,
)

__all__ = [
    # Rate config
    "RoomType",
    "FeeItem",
    "WaterRate",
    "ElectricRate",
    "UtilityRates",
    "RateConfig",

    # Room / Tenant
    "Room",
    "RoomStatus",
    "SpecialItem",
    "Tenant",
    "TenantStatus",

    # Meter
    "UtilityType",
    "AlertType",
    "MeterReading",
    "AnomalyThresholds",
    "UsageAlert",
    "ReadingResult",

    # Payment
    "PaymentMethod",
    "PaymentCreate",
    "Payment",
    "PaymentRecordedEvent",

    # Bill
    "BillStatus",
    "BillPeriod",
    "RentItem",
    "FloorRateItem",
    "AdditionalFeeItem",
    "UtilityReadingSnapshot",
    "UtilityItem",
    "OtherItem",
    "BillItem",
    "ChargeBreakdown",
    "PaymentRef",
    "Bill",
    "BillSummary",
]
