# services/billing_engine.py
"""
帳單引擎（對外唯一入口）
職責：依 ID 載入 Room / Tenant / RateConfig / 讀數，再交給各服務處理
✅ 無狀態：所有狀態都在 DocumentStore
✅ 錯誤一律往上拋（BillingError / StoreError），由 API 層轉成結構化回應
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from config.settings import Settings, get_settings
from repository.document_store import DocumentStore
from repository.errors import StoreError
from repository.meter_repository import MeterRepository
from repository.room_repository import RoomRepository
from repository.tenant_repository import TenantRepository
from schemas.bill import Bill, BillPeriod, BillSummary, ChargeBreakdown
from schemas.meter import AnomalyThresholds, ReadingResult
from schemas.payment import PaymentCreate
from schemas.rate_config import RateConfig
from schemas.room import Room
from schemas.tenant import Tenant
from services.base_service import BaseService
from services.bill_service import BillService
from services.charge_calculator import ChargeCalculator
from services.errors import BillingError, DuplicateBillPeriod, NoActiveTenant
from services.event_service import PaymentEventPublisher
from services.meter_service import MeterService
from services.payment_service import PaymentService
from services.rate_config_service import RateConfigService
from services.report_service import ReportService


class BillingEngine(BaseService):
    """宿舍帳單與抄表引擎"""

    def __init__(self, store: DocumentStore, settings: Optional[Settings] = None):
        super().__init__(store)
        self.settings = settings or get_settings()

        self.room_repo = RoomRepository(store)
        self.tenant_repo = TenantRepository(store)
        self.meter_repo = MeterRepository(store)

        self.rate_config_service = RateConfigService(store)
        self.calculator = ChargeCalculator()
        self.meter_service = MeterService(store, AnomalyThresholds(
            vacant_room_threshold=self.settings.vacant_room_threshold,
            high_usage_threshold=self.settings.high_usage_threshold,
        ))
        self.bill_service = BillService(store)
        self.publisher = PaymentEventPublisher(store)
        self.payment_service = PaymentService(store, self.bill_service, self.publisher)
        self.report_service = ReportService(store)

    # ==================== 計費 ====================

    def compute_charges(self, room_id: str, month: int, year: int) -> ChargeBreakdown:
        """試算費用明細（不寫入任何資料）"""
        _, _, _, breakdown = self._prepare(room_id, BillPeriod(month=month, year=year))
        return breakdown

    def create_bill(self, room_id: str, month: int, year: int,
                    due_date: Optional[date] = None) -> Bill:
        """
        建立帳單

        Args:
            room_id: 房間 ID
            month, year: 帳期
            due_date: 繳費期限（None 時取宿舍設定的每月繳費日）

        Raises:
            DuplicateBillPeriod: 同房同期已有未取消帳單
            NoActiveTenant: 房間沒有房客
            ConfigMissing / UnknownRoomType / UtilityRateMissing: 設定不完整
        """
        period = BillPeriod(month=month, year=year)
        room, _, config, breakdown = self._prepare(room_id, period)

        if due_date is None:
            due_day = config.due_day or self.settings.default_due_day
            due_date = self.bill_service.default_due_date(period, due_day)

        return self.bill_service.create_bill(breakdown, due_date, room_number=room.number)

    def create_monthly_bills(self, dormitory_id: str, month: int, year: int) -> Dict:
        """
        批量建立每月帳單（單一房間失敗不影響其他房間）

        Returns:
            {'created': 5, 'skipped': 2, 'errors': 1, 'failures': [...]}
        """
        results = {'created': 0, 'skipped': 0, 'errors': 0, 'failures': []}
        period = BillPeriod(month=month, year=year)

        self.logger.info(f"開始建立 {dormitory_id} {period.label} 帳單")

        for room in self.room_repo.get_rooms_by_dormitory(dormitory_id):
            try:
                if self.tenant_repo.get_active_by_room(room.id) is None:
                    continue

                if self.bill_service.bill_repo.find_active_bill(room.id, month, year):
                    results['skipped'] += 1
                    continue

                self.create_bill(room.id, month, year)
                results['created'] += 1

            except DuplicateBillPeriod:
                results['skipped'] += 1

            except (BillingError, StoreError) as e:
                results['errors'] += 1
                results['failures'].append({
                    'room_id': room.id,
                    'room_number': room.number,
                    'error_code': e.error_code,
                    'message': e.message,
                })
                self.logger.error(f"❌ 建立帳單失敗: {room.number} - {e.message}")

        self.logger.info(
            f"✅ 帳單建立完成 {period.label}: 新增 {results['created']}, "
            f"跳過 {results['skipped']}, 錯誤 {results['errors']}"
        )
        return results

    def _prepare(self, room_id: str, period: BillPeriod) -> Tuple[Room, Tenant, RateConfig, ChargeBreakdown]:
        room = self.room_repo.get_room(room_id)

        tenant = self.tenant_repo.get_active_by_room(room.id)
        if tenant is None:
            raise NoActiveTenant(
                f"房間 {room.number} 目前沒有房客",
                details={"room_id": room.id},
            )

        config = self.rate_config_service.resolve(room.dormitory_id)
        readings = [
            r for r in self.meter_repo.get_unbilled_for_room(room.id)
            if not r.is_pending_reconciliation
        ]
        breakdown = self.calculator.compute_charges(room, tenant, config, period, readings)
        return room, tenant, config, breakdown

    # ==================== 抄表 ====================

    def record_meter_reading(self, room_id: str, utility_type: str,
                             current_reading: Union[Decimal, int, str],
                             reading_date: date) -> ReadingResult:
        room = self.room_repo.get_room(room_id)
        return self.meter_service.record_reading(room, utility_type, Decimal(str(current_reading)), reading_date)

    # ==================== 收款 ====================

    def apply_payment(
        self,
        bill_id: str,
        amount: Union[Decimal, int, str],
        method: str = "cash",
        reference: Optional[str] = None,
        paid_at: Optional[datetime] = None,
        payment_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Bill:
        """
        入帳

        payment_id 為冪等鍵；呼叫端重送時應帶同一個 ID
        """
        fields = {"amount": Decimal(str(amount)), "method": method, "reference": reference, "note": note}
        if paid_at is not None:
            fields["paid_at"] = paid_at
        if payment_id is not None:
            fields["id"] = payment_id
        return self.payment_service.apply_payment(bill_id, PaymentCreate(**fields))

    def subscribe_payments(self, callback) -> None:
        """註冊付款事件訂閱者（例如通知服務）"""
        self.publisher.subscribe(callback)

    # ==================== 帳單生命週期 ====================

    def get_bill(self, bill_id: str) -> Bill:
        return self.bill_service.get_bill(bill_id)

    def mark_overdue_if_due(self, bill_id: str, now: Union[date, datetime]) -> Bill:
        return self.bill_service.mark_overdue_if_due(bill_id, now)

    def mark_overdue_bills(self, dormitory_id: str, now: Union[date, datetime]) -> Dict[str, int]:
        return self.bill_service.mark_overdue_bills(dormitory_id, now)

    def cancel_bill(self, bill_id: str) -> Bill:
        return self.bill_service.cancel_bill(bill_id)

    def replace_bill_items(self, bill_id: str, items: List) -> Bill:
        return self.bill_service.replace_items(bill_id, items)

    def calculate_late_fee(self, bill_id: str, now: Union[date, datetime]) -> Decimal:
        """逾期罰款試算：宿舍有設定每日罰款時優先使用，否則使用環境設定"""
        bill = self.bill_service.get_bill(bill_id)
        config = self.rate_config_service.resolve(bill.dormitory_id)
        per_day = config.late_fee_per_day
        if per_day is None:
            per_day = self.settings.late_fee_per_day
        return self.bill_service.calculate_late_fee(bill, now, per_day)

    # ==================== 報表 ====================

    def billing_summary(self, dormitory_id: str, month: Optional[int] = None,
                        year: Optional[int] = None) -> BillSummary:
        return self.report_service.billing_summary(dormitory_id, month, year)

    def utility_usage_report(self, dormitory_id: str, year: int,
                             utility_type: str = "electric") -> pd.DataFrame:
        return self.report_service.utility_usage_report(dormitory_id, year, utility_type)
