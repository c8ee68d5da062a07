"""
文件儲存層例外
StoreTimeoutError、StoreConflictError 由服務層決定是否重試；DocumentNotFound 直接往上拋
"""
from typing import Any, Dict, Optional


class StoreError(Exception):
    """儲存層錯誤基底類別，引擎原樣往上拋"""

    category = "store"
    http_status = 503

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class StoreTimeoutError(StoreError):
    """呼叫逾時（視為失敗，本層不自動重試）"""
    http_status = 504


class StoreConflictError(StoreError):
    """版本衝突或文件 ID 已存在"""
    http_status = 409


class DocumentNotFound(StoreError):
    """文件不存在"""
    http_status = 404

    def __init__(self, collection: str, doc_id: str):
        super().__init__(
            f"找不到文件 {collection}/{doc_id}",
            details={"collection": collection, "id": doc_id},
        )
