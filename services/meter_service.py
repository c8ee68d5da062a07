"""
抄表服務 - 讀數驗證與異常用量偵測
✅ 上期讀數 = 最近一筆已計費讀數；沒有則用房間初始讀數
✅ 每房每種類最多一筆未計費讀數，重抄時原地覆寫（沿用同一個上期讀數）
✅ 空房用電 / 用量過高 兩條規則獨立判斷，只提醒、不阻擋儲存
✅ 文件 ID = {room_id}_{type}_{序號}，同時新增兩筆時第二筆會衝突後重試
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from config.settings import get_settings
from repository.document_store import DocumentStore
from repository.meter_repository import MeterRepository
from schemas.meter import AnomalyThresholds, MeterReading, ReadingResult, UsageAlert
from schemas.room import Room
from services.base_service import BaseService
from services.errors import NonMonotonicReading, ReadingLocked


class MeterService(BaseService):
    """抄表服務（Meter Reading Validator & Anomaly Detector）"""

    def __init__(self, store: DocumentStore, thresholds: Optional[AnomalyThresholds] = None):
        super().__init__(store)
        self.meter_repo = MeterRepository(store)
        if thresholds is None:
            settings = get_settings()
            thresholds = AnomalyThresholds(
                vacant_room_threshold=settings.vacant_room_threshold,
                high_usage_threshold=settings.high_usage_threshold,
            )
        self.thresholds = thresholds

    # ==================== 讀數 ====================

    def record_reading(
        self,
        room: Room,
        utility_type: str,
        current_reading: Decimal,
        reading_date: date,
        thresholds: Optional[AnomalyThresholds] = None,
    ) -> ReadingResult:
        """
        儲存讀數並回傳異常提醒

        Args:
            room: 房間
            utility_type: "electric" / "water"
            current_reading: 本期讀數
            reading_date: 抄表日期
            thresholds: 本次使用的門檻（None 使用設定值）

        Returns:
            ReadingResult(reading, alerts)

        Raises:
            NonMonotonicReading: 本期讀數小於上期讀數
            ReadingLocked: 未計費讀數已掛帳單等待對帳
        """
        current_reading = Decimal(str(current_reading))

        def attempt() -> MeterReading:
            pending = self.meter_repo.find_unbilled(room.id, utility_type)

            if pending is not None and pending.is_pending_reconciliation:
                self.logger.warning(
                    f"⚠️ 讀數等待對帳中，拒絕覆寫: {room.number} {utility_type} (bill {pending.bill_id})"
                )
                raise ReadingLocked(
                    f"房間 {room.number} 的讀數已掛在帳單 {pending.bill_id}，不可覆寫",
                    details={"room_id": room.id, "reading_id": pending.id, "bill_id": pending.bill_id},
                )

            previous_reading = self.previous_reading_for(room, utility_type, pending)

            if current_reading < previous_reading:
                self.logger.warning(
                    f"⚠️ 讀數倒退: {room.number} {utility_type} - 上期 {previous_reading}, 本期 {current_reading}"
                )
                raise NonMonotonicReading(
                    f"本期讀數 {current_reading} 小於上期讀數 {previous_reading}",
                    details={
                        "room_id": room.id,
                        "type": utility_type,
                        "previous_reading": str(previous_reading),
                        "current_reading": str(current_reading),
                    },
                )

            units_used = current_reading - previous_reading
            now = datetime.now()

            if pending is not None:
                saved = self.meter_repo.update_reading(
                    pending.id,
                    {
                        "current_reading": str(current_reading),
                        "units_used": str(units_used),
                        "reading_date": reading_date.isoformat(),
                        "updated_at": now.isoformat(),
                    },
                    expected_version=pending.version,
                )
                self.logger.info(f"✅ 覆寫讀數: {room.number} {utility_type} - {units_used} 度")
                return saved

            sequence = self.meter_repo.count_readings(room.id, utility_type) + 1
            saved = self.meter_repo.create_reading(MeterReading(
                id=f"{room.id}_{utility_type}_{sequence}",
                dormitory_id=room.dormitory_id,
                room_id=room.id,
                type=utility_type,
                previous_reading=previous_reading,
                current_reading=current_reading,
                units_used=units_used,
                reading_date=reading_date,
                created_at=now,
                updated_at=now,
            ))
            self.logger.info(f"✅ 新增讀數: {room.number} {utility_type} - {units_used} 度")
            return saved

        reading = self.retry_on_conflict(attempt)
        alerts = self.detect_anomalies(room, reading.units_used, reading_date, thresholds)
        return ReadingResult(reading=reading, alerts=alerts)

    def previous_reading_for(
        self,
        room: Room,
        utility_type: str,
        pending: Optional[MeterReading] = None,
    ) -> Decimal:
        """重抄時沿用被覆寫讀數的上期讀數，否則取最近已計費讀數或初始讀數"""
        if pending is not None:
            return pending.previous_reading

        latest_billed = self.meter_repo.find_latest_billed(room.id, utility_type)
        if latest_billed is not None:
            return latest_billed.current_reading
        return room.initial_meter_reading

    # ==================== 異常偵測 ====================

    def detect_anomalies(
        self,
        room: Room,
        units_used: Decimal,
        reading_date: date,
        thresholds: Optional[AnomalyThresholds] = None,
    ) -> List[UsageAlert]:
        """空房用電與用量過高兩條規則，可同時觸發"""
        thresholds = thresholds or self.thresholds
        alerts: List[UsageAlert] = []

        if room.status == "available" and units_used > thresholds.vacant_room_threshold:
            alerts.append(UsageAlert(
                room_id=room.id,
                rule_type="vacant",
                units_used=units_used,
                threshold=thresholds.vacant_room_threshold,
                date=reading_date,
            ))

        if units_used > thresholds.high_usage_threshold:
            alerts.append(UsageAlert(
                room_id=room.id,
                rule_type="high",
                units_used=units_used,
                threshold=thresholds.high_usage_threshold,
                date=reading_date,
            ))

        for alert in alerts:
            self.logger.warning(
                f"⚠️ 異常用量 [{alert.rule_type}]: {room.number} - {units_used} 度 (門檻 {alert.threshold})"
            )
        return alerts
