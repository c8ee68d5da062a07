# services/bill_service.py
"""
帳單生命週期服務
職責：建帳、帳單狀態機（唯一可以改變 Bill.status 的地方）、逾期、取消

狀態轉換：
    pending ──部分付款──▶ partially_paid ──結清──▶ paid
    pending ──────────────結清──────────────▶ paid
    pending / partially_paid ──過繳費日──▶ overdue
    overdue ──部分付款──▶ overdue（不會變回 partially_paid）
    overdue ──結清──▶ paid
    pending / overdue（無付款）──取消──▶ cancelled
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Union

from dateutil.relativedelta import relativedelta

from config.settings import get_settings
from repository.bill_repository import BillRepository
from repository.document_store import DocumentStore
from repository.errors import StoreConflictError, StoreError
from repository.meter_repository import MeterRepository
from repository.tenant_repository import TenantRepository
from schemas.bill import Bill, BillPeriod, ChargeBreakdown, PaymentRef, UtilityItem
from schemas.payment import Payment
from services.base_service import BaseService
from services.errors import BillCancelled, BillLocked, DuplicateBillPeriod, OverpaymentRejected
from utils.formatters import format_currency

OVERDUE_CANDIDATES = ("pending", "partially_paid")


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


class BillService(BaseService):
    """帳單生命週期管理（Bill Lifecycle Manager）"""

    def __init__(self, store: DocumentStore):
        super().__init__(store)
        self.bill_repo = BillRepository(store)
        self.meter_repo = MeterRepository(store)
        self.tenant_repo = TenantRepository(store)

    def get_bill(self, bill_id: str) -> Bill:
        return self.bill_repo.get_bill(bill_id)

    # ==================== 狀態機 ====================

    @staticmethod
    def next_status_after_payment(current_status: str, paid_amount: Decimal,
                                  total_amount: Decimal) -> str:
        """
        付款後的新狀態

        逾期帳單的部分付款不解除逾期，只有結清才轉為 paid；
        這條規則必須是明確分支，不能只用已付比例推算狀態。
        """
        if current_status == "cancelled":
            raise BillCancelled("帳單已取消，不可付款")

        if paid_amount >= total_amount:
            return "paid"

        if current_status == "overdue":
            return "overdue"

        if paid_amount > 0:
            return "partially_paid"

        return current_status

    def apply_payment_transition(self, bill: Bill, payment: Payment) -> Bill:
        """
        把一筆付款套用到帳單（不寫入儲存）

        已付金額 = 不重複付款 ID 的金額加總；超過總額丟 OverpaymentRejected。
        """
        payments = list(bill.payments)
        if payment.id not in bill.payment_ids:
            payments.append(PaymentRef(
                id=payment.id,
                amount=payment.amount,
                method=payment.method,
                reference=payment.reference,
                paid_at=payment.paid_at,
            ))

        unique = {p.id: p.amount for p in payments}
        paid_amount = sum(unique.values(), Decimal("0"))

        if paid_amount > bill.total_amount:
            raise OverpaymentRejected(
                f"付款後已付金額 {paid_amount} 超過帳單總額 {bill.total_amount}",
                details={
                    "bill_id": bill.id,
                    "total_amount": str(bill.total_amount),
                    "paid_amount": str(bill.paid_amount),
                    "payment_amount": str(payment.amount),
                },
            )

        new_status = self.next_status_after_payment(bill.status, paid_amount, bill.total_amount)
        if new_status != bill.status:
            self.logger.info(f"帳單 {bill.id} 狀態: {bill.status} → {new_status}")

        return self._rebuild(
            bill,
            payments=payments,
            paid_amount=paid_amount,
            remaining_amount=bill.total_amount - paid_amount,
            status=new_status,
            updated_at=datetime.now(),
        )

    @staticmethod
    def is_due(bill: Bill, now: Union[date, datetime]) -> bool:
        """已過繳費日且尚未結清"""
        return bill.status in OVERDUE_CANDIDATES and _as_date(now) > bill.due_date

    def mark_overdue_if_due(self, bill_id: str, now: Union[date, datetime]) -> Bill:
        """
        逾期檢查（排程呼叫，可重複執行）

        Returns:
            最新的帳單；未到期或已是 paid / overdue / cancelled 時原樣回傳
        """
        def attempt() -> Bill:
            bill = self.bill_repo.get_bill(bill_id)
            if not self.is_due(bill, now):
                return bill

            overdue = self._rebuild(bill, status="overdue", updated_at=datetime.now())
            saved = self.bill_repo.save_bill(overdue)
            self.logger.info(f"✅ 標記逾期: {bill.id} ({bill.status} → overdue, 到期日 {bill.due_date})")
            return saved

        return self.retry_on_conflict(attempt)

    def mark_overdue_bills(self, dormitory_id: str, now: Union[date, datetime]) -> Dict[str, int]:
        """
        批量逾期檢查（定時任務用）

        Returns:
            {'updated': 3, 'errors': 0}
        """
        results = {'updated': 0, 'errors': 0}

        for bill in self.bill_repo.get_by_status(dormitory_id, OVERDUE_CANDIDATES):
            if not self.is_due(bill, now):
                continue
            try:
                if self.mark_overdue_if_due(bill.id, now).status == "overdue":
                    results['updated'] += 1
            except StoreError as e:
                results['errors'] += 1
                self.logger.error(f"❌ 標記逾期失敗: {bill.id} - {e.message}", exc_info=True)

        self.logger.info(f"更新逾期狀態 {dormitory_id}: {results}")
        return results

    # ==================== 建帳 ====================

    @staticmethod
    def default_due_date(period: BillPeriod, due_day: int) -> date:
        """帳期當月的繳費日（超過月底時取月底）"""
        return date(period.year, period.month, 1) + relativedelta(day=due_day)

    def create_bill(self, breakdown: ChargeBreakdown, due_date: date,
                    room_number: Optional[str] = None) -> Bill:
        """
        由費用明細建立帳單並完成結帳

        1. 同房同期已有未取消帳單 → DuplicateBillPeriod
        2. 建立 pending 帳單（ID = {room_id}_{YYYYMM}_{序號}，並發建立時第二筆衝突）
        3. 使用到的讀數標記為已計費，房客多期項目扣減一期
        4. 第 3 步失敗時帳單轉為 cancelled，錯誤往上拋
        """
        period = breakdown.period
        existing = self.bill_repo.find_active_bill(breakdown.room_id, period.month, period.year)
        if existing is not None:
            self.logger.warning(f"⚠️ 重複帳期: {breakdown.room_id} {period.label} 已有帳單 {existing.id}")
            raise DuplicateBillPeriod(
                f"房間 {room_number or breakdown.room_id} 在 {period.label} 已有帳單",
                details={"room_id": breakdown.room_id, "bill_id": existing.id, "period": period.label},
            )

        sequence = len(self.bill_repo.get_bills_for_period(breakdown.room_id, period.month, period.year)) + 1
        now = datetime.now()
        bill = Bill(
            id=f"{breakdown.room_id}_{period.year}{period.month:02d}_{sequence}",
            dormitory_id=breakdown.dormitory_id,
            room_id=breakdown.room_id,
            room_number=room_number,
            tenant_id=breakdown.tenant_id,
            month=period.month,
            year=period.year,
            items=breakdown.items,
            total_amount=breakdown.total_amount,
            paid_amount=Decimal("0"),
            remaining_amount=breakdown.total_amount,
            status="pending",
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )

        try:
            created = self.bill_repo.create_bill(bill)
        except StoreConflictError as e:
            raise DuplicateBillPeriod(
                f"房間 {room_number or breakdown.room_id} 在 {period.label} 已有帳單",
                details={"room_id": breakdown.room_id, "period": period.label},
            ) from e

        self._finalize(created, breakdown)
        self.logger.info(
            f"✅ 建立帳單: {created.id} - {period.label} - {format_currency(created.total_amount)} (到期 {due_date})"
        )
        return created

    def _finalize(self, bill: Bill, breakdown: ChargeBreakdown) -> None:
        """
        結帳：讀數標記已計費、房客多期項目扣減

        讀數以計費當下的版本 CAS 更新；計費後讀數被重抄、或房客項目連續衝突時，
        撤銷剛建立的帳單並往上拋，呼叫端重新計費即可。
        """
        try:
            for reading_id in breakdown.consumed_reading_ids:
                self.meter_repo.update_reading(
                    reading_id,
                    {"is_billed": True, "bill_id": bill.id, "updated_at": datetime.now().isoformat()},
                    expected_version=breakdown.consumed_reading_versions.get(reading_id),
                )

            if breakdown.consumed_special_item_ids:
                self._adjust_special_items(breakdown.tenant_id, breakdown.consumed_special_item_ids, step=-1)
        except StoreError as e:
            self.logger.error(f"❌ 結帳失敗，撤銷帳單 {bill.id}: {e.message}")
            self._revoke(bill, breakdown.consumed_reading_ids)
            raise

    def _revoke(self, bill: Bill, reading_ids: Sequence[str]) -> None:
        """取消結帳失敗的帳單，並釋放已掛在它名下的讀數（逾時的寫入可能已生效，逐筆重讀確認）"""
        for reading_id in reading_ids:
            reading = self.meter_repo.get_reading(reading_id)
            if reading.bill_id != bill.id:
                continue
            self.meter_repo.update_reading(
                reading.id,
                {"is_billed": False, "bill_id": None, "updated_at": datetime.now().isoformat()},
                expected_version=reading.version,
            )

        now = datetime.now()
        self.bill_repo.save_bill(self._rebuild(bill, status="cancelled", cancelled_at=now, updated_at=now))
        self.logger.warning(f"⚠️ 已撤銷帳單: {bill.id}")

    def _adjust_special_items(self, tenant_id: str, item_ids: Sequence[str], step: int) -> None:
        """step=-1 扣減一期（一次性項目歸零）；step=+1 取消帳單時還原"""
        def attempt():
            tenant = self.tenant_repo.get_tenant(tenant_id)
            updated = []
            for item in tenant.special_items:
                if item.id not in item_ids:
                    updated.append(item)
                elif item.is_once:
                    updated.append(item.model_copy(update={
                        "remaining_billing_cycles": 0 if step < 0 else None,
                    }))
                else:
                    remaining = max((item.remaining_billing_cycles or 0) + step, 0)
                    updated.append(item.model_copy(update={"remaining_billing_cycles": remaining}))
            return self.tenant_repo.update_special_items(tenant, updated)

        self.retry_on_conflict(attempt)

    # ==================== 修改 / 取消 ====================

    def replace_items(self, bill_id: str, items: List) -> Bill:
        """重設帳單項目（只限尚未有任何付款的帳單）"""
        def attempt() -> Bill:
            bill = self.bill_repo.get_bill(bill_id)
            self._ensure_editable(bill)
            total = sum((Decimal(str(self._item_amount(i))) for i in items), Decimal("0"))
            updated = self._rebuild(
                bill,
                items=items,
                total_amount=total,
                remaining_amount=total,
                updated_at=datetime.now(),
            )
            return self.bill_repo.save_bill(updated)

        saved = self.retry_on_conflict(attempt)
        self.logger.info(f"✅ 更新帳單項目: {bill_id} - 總計 {saved.total_amount}")
        return saved

    def cancel_bill(self, bill_id: str) -> Bill:
        """
        取消帳單（只限尚未有任何付款的帳單）

        取消後釋放已計費讀數（若該房已有新的未計費讀數則保留）並還原房客項目期數。
        """
        state = {"changed": False}

        def attempt() -> Bill:
            bill = self.bill_repo.get_bill(bill_id)
            if bill.status == "cancelled":
                state["changed"] = False
                return bill
            self._ensure_editable(bill)
            now = datetime.now()
            state["changed"] = True
            return self.bill_repo.save_bill(
                self._rebuild(bill, status="cancelled", cancelled_at=now, updated_at=now)
            )

        cancelled = self.retry_on_conflict(attempt)
        if not state["changed"]:
            return cancelled

        self._release_readings(cancelled)
        special_ids = [
            item.special_item_id for item in cancelled.items
            if item.type == "other" and item.special_item_id
        ]
        if special_ids:
            self._adjust_special_items(cancelled.tenant_id, special_ids, step=+1)

        self.logger.info(f"✅ 取消帳單: {cancelled.id}")
        return cancelled

    def _release_readings(self, bill: Bill) -> None:
        for item in bill.items:
            if not isinstance(item, UtilityItem) or item.utility_reading is None:
                continue
            reading = self.meter_repo.get_reading(item.utility_reading.reading_id)
            if reading.bill_id != bill.id:
                continue
            if self.meter_repo.find_unbilled(reading.room_id, reading.type) is not None:
                self.logger.warning(
                    f"⚠️ 房間已有新的未計費讀數，保留 {reading.id} 為已計費"
                )
                continue
            self.meter_repo.update_reading(
                reading.id,
                {"is_billed": False, "bill_id": None, "updated_at": datetime.now().isoformat()},
                expected_version=reading.version,
            )

    @staticmethod
    def _ensure_editable(bill: Bill) -> None:
        if bill.status == "cancelled":
            raise BillCancelled(f"帳單 {bill.id} 已取消", details={"bill_id": bill.id})
        if bill.payments:
            raise BillLocked(
                f"帳單 {bill.id} 已有付款記錄，不可修改",
                details={"bill_id": bill.id, "payments": len(bill.payments)},
            )

    # ==================== 逾期罰款 ====================

    @staticmethod
    def calculate_late_fee(bill: Bill, now: Union[date, datetime], per_day: Optional[Decimal] = None) -> Decimal:
        """
        逾期罰款試算（不寫入帳單項目）

        Returns:
            逾期天數 × 每日罰款；非逾期帳單為 0
        """
        if bill.status != "overdue":
            return Decimal("0")

        if per_day is None:
            per_day = get_settings().late_fee_per_day

        days = (_as_date(now) - bill.due_date).days
        return Decimal(max(days, 0)) * per_day

    # ==================== helpers ====================

    @staticmethod
    def _item_amount(item) -> Decimal:
        return item["amount"] if isinstance(item, dict) else item.amount

    @staticmethod
    def _rebuild(bill: Bill, **changes) -> Bill:
        """重新驗證整筆帳單（餘額不變量在 Bill 建構時檢查）"""
        return Bill.model_validate({**bill.model_dump(), **changes})
