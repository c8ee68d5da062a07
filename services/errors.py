"""
帳單引擎例外體系

驗證錯誤（呼叫端輸入不正確，不自動重試）：
    NonMonotonicReading, MissingReference, OverpaymentRejected, DuplicateBillPeriod,
    InvalidPaymentAmount, BillCancelled, BillLocked, ReadingLocked, NoActiveTenant

設定錯誤（資料不一致，阻擋建帳，需由管理者修正設定）：
    ConfigMissing, ConfigInvalid, UnknownRoomType, UtilityRateMissing

儲存錯誤由 repository.errors 定義，於此重新匯出。
"""
from typing import Any, Dict, Optional

from repository.errors import DocumentNotFound, StoreConflictError, StoreError, StoreTimeoutError


class BillingError(Exception):
    """帳單引擎錯誤基底類別"""

    category = "validation"
    http_status = 400

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "category": self.category,
            "message": self.message,
            "details": self.details,
        }


# ============================================================================
# Validation errors
# ============================================================================

class BillingValidationError(BillingError):
    category = "validation"
    http_status = 422


class NonMonotonicReading(BillingValidationError):
    """本期讀數小於上期讀數"""


class MissingReference(BillingValidationError):
    """非現金付款缺少參考編號"""


class OverpaymentRejected(BillingValidationError):
    """付款後已付金額將超過帳單總額"""


class InvalidPaymentAmount(BillingValidationError):
    """付款金額必須大於 0"""


class DuplicateBillPeriod(BillingValidationError):
    """同房同期已有未取消的帳單"""
    http_status = 409


class BillCancelled(BillingValidationError):
    """帳單已取消"""
    http_status = 409


class BillLocked(BillingValidationError):
    """帳單已有付款，不可修改項目或取消"""
    http_status = 409


class ReadingLocked(BillingValidationError):
    """未計費讀數已掛在帳單上等待對帳，不可覆寫"""
    http_status = 409


class NoActiveTenant(BillingValidationError):
    """房間目前沒有房客"""


# ============================================================================
# Configuration errors
# ============================================================================

class ConfigurationError(BillingError):
    category = "configuration"
    http_status = 424


class ConfigMissing(ConfigurationError):
    """宿舍沒有費率設定文件"""


class ConfigInvalid(ConfigurationError):
    """費率設定文件格式錯誤"""


class UnknownRoomType(ConfigurationError):
    """房間的房型不在房型目錄中"""


class UtilityRateMissing(ConfigurationError):
    """有抄表讀數但未設定單價"""


__all__ = [
    "BillingError",
    "BillingValidationError",
    "NonMonotonicReading",
    "MissingReference",
    "OverpaymentRejected",
    "InvalidPaymentAmount",
    "DuplicateBillPeriod",
    "BillCancelled",
    "BillLocked",
    "ReadingLocked",
    "NoActiveTenant",
    "ConfigurationError",
    "ConfigMissing",
    "ConfigInvalid",
    "UnknownRoomType",
    "UtilityRateMissing",
    "StoreError",
    "StoreTimeoutError",
    "StoreConflictError",
    "DocumentNotFound",
]
