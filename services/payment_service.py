# services/payment_service.py
"""
收款服務層
職責：付款驗證、入帳、事件發布
✅ 以 payment.id 做冪等：重複送出同一筆付款不會重複入帳
✅ 帳單以 CAS 寫回，兩筆同時付款時後到者重新讀取再套用
✅ 狀態轉換交給 BillService，本層不直接決定 Bill.status
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from repository.bill_repository import BillRepository
from repository.document_store import DocumentStore
from repository.errors import StoreConflictError
from repository.payment_repository import PaymentRepository
from schemas.bill import Bill
from schemas.payment import Payment, PaymentCreate, PaymentRecordedEvent
from services.base_service import BaseService
from services.bill_service import BillService
from services.errors import BillCancelled, InvalidPaymentAmount, MissingReference, OverpaymentRejected
from services.event_service import PaymentEventPublisher
from utils.formatters import format_currency


class PaymentService(BaseService):
    """收款服務（Payment Applier）"""

    def __init__(self, store: DocumentStore,
                 bill_service: Optional[BillService] = None,
                 publisher: Optional[PaymentEventPublisher] = None):
        super().__init__(store)
        self.bill_repo = BillRepository(store)
        self.payment_repo = PaymentRepository(store)
        self.bill_service = bill_service or BillService(store)
        self.publisher = publisher or PaymentEventPublisher(store)

    def apply_payment(self, bill_id: str, request: PaymentCreate) -> Bill:
        """
        套用一筆付款

        帳單寫回後才寫付款記錄與事件；重送同一個 request.id 時會補齊
        先前沒寫成功的付款記錄與事件（兩者都以 ID 去重）。

        Args:
            bill_id: 帳單 ID
            request: 付款內容（request.id 為冪等鍵）

        Returns:
            更新後的帳單；重複付款時為原帳單

        Raises:
            BillCancelled: 帳單已取消
            InvalidPaymentAmount: 金額 <= 0
            OverpaymentRejected: 已付 + 本次 > 總額
            MissingReference: 非現金付款沒有參考編號
        """
        state = {"applied": False}

        def attempt() -> Bill:
            bill = self.bill_repo.get_bill(bill_id)

            if request.id in bill.payment_ids:
                self.logger.info(f"付款 {request.id} 已入帳於 {bill.id}，略過")
                state["applied"] = False
                return bill

            self.validate_payment(bill, request)

            payment = self._to_payment(bill, request)
            updated = self.bill_service.apply_payment_transition(bill, payment)
            saved = self.bill_repo.save_bill(updated)
            state["applied"] = True
            return saved

        saved = self.retry_on_conflict(attempt)

        if state["applied"]:
            payment = self._record_payment(self._to_payment(saved, request))
            self.logger.info(
                f"✅ 入帳: {saved.id} - {format_currency(request.amount)} ({request.method}) "
                f"已付 {format_currency(saved.paid_amount)}/{format_currency(saved.total_amount)} [{saved.status}]"
            )
        else:
            payment = self._record_payment(self._from_ref(saved, request))

        self.publisher.publish(PaymentRecordedEvent(
            id=f"{saved.id}_{payment.id}",
            dormitory_id=saved.dormitory_id,
            bill_id=saved.id,
            tenant_id=saved.tenant_id,
            payment_id=payment.id,
            amount=payment.amount,
            method=payment.method,
            bill_status=saved.status,
            remaining_amount=saved.remaining_amount,
        ))
        return saved

    def validate_payment(self, bill: Bill, request: PaymentCreate) -> None:
        """付款前檢查，任何一項不通過帳單都不會被修改"""
        if bill.status == "cancelled":
            self.logger.warning(f"⚠️ 拒絕付款: {bill.id} 已取消")
            raise BillCancelled(f"帳單 {bill.id} 已取消", details={"bill_id": bill.id})

        if request.amount <= 0:
            raise InvalidPaymentAmount(
                f"付款金額必須大於 0（收到 {request.amount}）",
                details={"bill_id": bill.id, "amount": str(request.amount)},
            )

        if request.amount + bill.paid_amount > bill.total_amount:
            self.logger.warning(
                f"⚠️ 溢繳: {bill.id} - 總額 {bill.total_amount}, 已付 {bill.paid_amount}, 本次 {request.amount}"
            )
            raise OverpaymentRejected(
                f"付款金額 {request.amount} 超過未付金額 {bill.remaining_amount}",
                details={
                    "bill_id": bill.id,
                    "total_amount": str(bill.total_amount),
                    "paid_amount": str(bill.paid_amount),
                    "remaining_amount": str(bill.remaining_amount),
                    "payment_amount": str(request.amount),
                },
            )

        if request.method != "cash" and not (request.reference or "").strip():
            raise MissingReference(
                f"{request.method} 付款必須填寫參考編號",
                details={"bill_id": bill.id, "method": request.method},
            )

    def get_payments(self, bill_id: str):
        return self.payment_repo.get_by_bill(bill_id)

    @staticmethod
    def _to_payment(bill: Bill, request: PaymentCreate) -> Payment:
        return Payment(
            id=request.id,
            bill_id=bill.id,
            dormitory_id=bill.dormitory_id,
            tenant_id=bill.tenant_id,
            amount=Decimal(request.amount),
            method=request.method,
            reference=request.reference,
            paid_at=request.paid_at,
            note=request.note,
            created_at=datetime.now(),
        )

    @staticmethod
    def _from_ref(bill: Bill, request: PaymentCreate) -> Payment:
        """以帳單內已入帳的付款摘要重建付款記錄（重送時金額以帳單為準）"""
        ref = next(p for p in bill.payments if p.id == request.id)
        return Payment(
            id=ref.id,
            bill_id=bill.id,
            dormitory_id=bill.dormitory_id,
            tenant_id=bill.tenant_id,
            amount=ref.amount,
            method=ref.method,
            reference=ref.reference,
            paid_at=ref.paid_at,
            note=request.note,
            created_at=datetime.now(),
        )

    def _record_payment(self, payment: Payment) -> Payment:
        """付款記錄只新增；同一 ID 已存在時沿用既有記錄"""
        existing = self.payment_repo.find(payment.id)
        if existing is not None:
            return existing
        try:
            return self.payment_repo.create(payment)
        except StoreConflictError:
            return self.payment_repo.find(payment.id)
