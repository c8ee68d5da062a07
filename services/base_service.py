"""
基礎服務 - 所有引擎服務的父類
✅ 共用同一個 DocumentStore
✅ 版本衝突時以新讀取重試一次；逾時與永久錯誤直接往上拋
"""
from typing import Any, Callable

from repository.document_store import DocumentStore
from repository.errors import StoreConflictError
from utils.logger import logger


class BaseService:
    """基礎服務類"""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.logger = logger

    def retry_on_conflict(self, func: Callable[[], Any], max_retries: int = 1) -> Any:
        """
        重試機制 - 處理 compare-and-swap 版本衝突

        func 每次執行都必須重新讀取文件，重試才有意義。

        Args:
            func: 要執行的函數（讀取 → 計算 → 條件寫入）
            max_retries: 衝突後最多重試次數

        Returns:
            func 的返回值
        """
        for attempt in range(max_retries + 1):
            try:
                return func()

            except StoreConflictError as e:
                if attempt == max_retries:
                    logger.error(f"❌ 重試 {max_retries} 次後仍衝突: {e.message}")
                    raise

                logger.warning(
                    f"⚠️ 第 {attempt + 1}/{max_retries + 1} 次寫入衝突，重新讀取後重試..."
                )
