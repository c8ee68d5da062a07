# services/charge_calculator.py
"""
費用計算（核心演算法）
職責：Room + Tenant + RateConfig + 抄表 → 逐項費用明細
✅ 純函數：相同輸入必得相同輸出，不讀寫任何儲存
✅ 只決定 special item 是否收費，不扣減期數（由 BillService 建帳時處理）
"""
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from schemas.bill import (
    AdditionalFeeItem,
    BillPeriod,
    ChargeBreakdown,
    FloorRateItem,
    OtherItem,
    RentItem,
    UtilityItem,
    UtilityReadingSnapshot,
)
from schemas.meter import MeterReading
from schemas.rate_config import RateConfig
from schemas.room import Room
from schemas.tenant import Tenant
from services.errors import UtilityRateMissing
from services.rate_config_service import RateConfigService
from utils.formatters import to_money
from utils.logger import logger


class ChargeCalculator:
    """費用計算器（無狀態）"""

    def compute_charges(
        self,
        room: Room,
        tenant: Tenant,
        rate_config: RateConfig,
        period: BillPeriod,
        utility_usage: Sequence[MeterReading] = (),
    ) -> ChargeBreakdown:
        """
        計算指定帳期的費用明細

        計算順序（影響顯示順序，不影響總額）：
        1. 房租 = 房型基本月租
        2. 樓層加價：有設定且不為 0 才列出
        3. 額外服務：目錄中已刪除的服務直接略過
        4. 房客個別加收項目：僅列出本期有效者
        5. 水費（每人固定）、電費（單價 × 最新未計費讀數的度數）

        Args:
            room: 房間
            tenant: 房客
            rate_config: 已解析的費率設定
            period: 帳期
            utility_usage: 房間的抄表讀數（只取未計費的電表讀數）

        Returns:
            ChargeBreakdown

        Raises:
            UnknownRoomType: 房型不存在
            UtilityRateMissing: 有電表讀數但未設定電價
        """
        items: List = []
        consumed_reading_ids: List[str] = []
        consumed_reading_versions: Dict[str, int] = {}
        consumed_special_item_ids: List[str] = []

        # === 1. 房租 ===
        room_type = RateConfigService.room_type_for(rate_config, room)
        items.append(RentItem(
            name=f"房租 - {room_type.name}",
            amount=to_money(room_type.base_price),
            room_type_id=room_type.id,
        ))

        # === 2. 樓層加價 ===
        floor_rate = rate_config.floor_rate(room.floor)
        if floor_rate:
            items.append(FloorRateItem(
                name=f"樓層加價 ({room.floor}F)",
                amount=to_money(floor_rate),
                floor=room.floor,
            ))

        # === 3. 額外服務 ===
        for service_id in room.additional_service_ids:
            fee_item = rate_config.fee_item(service_id)
            if fee_item is None:
                logger.debug(f"略過已刪除的額外服務: {room.number} - {service_id}")
                continue
            items.append(AdditionalFeeItem(
                name=fee_item.name,
                amount=to_money(fee_item.amount),
                fee_item_id=fee_item.id,
            ))

        # === 4. 房客個別加收項目 ===
        for special in tenant.special_items:
            if not special.is_active():
                continue
            items.append(OtherItem(
                name=special.name,
                amount=to_money(special.amount),
                special_item_id=special.id,
            ))
            consumed_special_item_ids.append(special.id)

        # === 5. 水電 ===
        per_person = rate_config.utilities.water.per_person
        if per_person:
            residents = Decimal(tenant.number_of_residents)
            items.append(UtilityItem(
                name="水費",
                amount=to_money(per_person * residents),
                utility="water",
                quantity=residents,
                unit_price=per_person,
            ))

        electric_reading = self.latest_unbilled_reading(utility_usage, room.id, "electric")
        if electric_reading is not None:
            unit_price = rate_config.utilities.electric.unit_price
            if unit_price is None:
                raise UtilityRateMissing(
                    f"房間 {room.number} 有電表讀數但宿舍未設定電價",
                    details={"room_id": room.id, "utility": "electric"},
                )
            items.append(UtilityItem(
                name="電費",
                amount=to_money(unit_price * electric_reading.units_used),
                utility="electric",
                quantity=electric_reading.units_used,
                unit_price=unit_price,
                utility_reading=UtilityReadingSnapshot(
                    reading_id=electric_reading.id,
                    previous_reading=electric_reading.previous_reading,
                    current_reading=electric_reading.current_reading,
                    units_used=electric_reading.units_used,
                ),
            ))
            consumed_reading_ids.append(electric_reading.id)
            consumed_reading_versions[electric_reading.id] = electric_reading.version

        total = sum((item.amount for item in items), Decimal("0"))

        logger.debug(
            f"費用計算: {room.number} {period.label} - {len(items)} 項, 總計 {total}"
        )

        return ChargeBreakdown(
            dormitory_id=room.dormitory_id,
            room_id=room.id,
            tenant_id=tenant.id,
            period=period,
            items=items,
            total_amount=total,
            consumed_reading_ids=consumed_reading_ids,
            consumed_reading_versions=consumed_reading_versions,
            consumed_special_item_ids=consumed_special_item_ids,
        )

    @staticmethod
    def latest_unbilled_reading(
        readings: Sequence[MeterReading],
        room_id: str,
        utility_type: str,
    ) -> Optional[MeterReading]:
        candidates = [
            r for r in readings
            if r.room_id == room_id and r.type == utility_type and not r.is_billed
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda r: (r.reading_date, r.current_reading))
