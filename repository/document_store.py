# repository/document_store.py
"""
文件儲存介面
職責：get / query / create / update 四種操作，不含業務邏輯
✅ expected_version：compare-and-swap，版本不符丟 StoreConflictError
✅ filters 值為 list/tuple 時代表 IN 查詢
"""
import copy
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from repository.errors import DocumentNotFound, StoreConflictError
from utils.logger import log_store_operation


class DocumentStore(ABC):
    """文件儲存抽象介面（所有 Repository 的唯一依賴）"""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        """取得單一文件，不存在丟 DocumentNotFound"""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """依欄位等值查詢"""

    @abstractmethod
    def create(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        """新增文件（version 從 1 開始），ID 重複丟 StoreConflictError"""

    @abstractmethod
    def update(
        self,
        collection: str,
        doc_id: str,
        patch: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """部分更新，成功後 version + 1"""

    def find(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """取得單一文件，不存在回傳 None"""
        try:
            return self.get(collection, doc_id)
        except DocumentNotFound:
            return None


def _matches(doc: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for field, expected in filters.items():
        value = doc.get(field)
        if isinstance(expected, (list, tuple, set)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class InMemoryDocumentStore(DocumentStore):
    """記憶體版文件儲存（測試、本機開發用），單一鎖保證 CAS 原子性"""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            if doc is None:
                raise DocumentNotFound(collection, doc_id)
            return copy.deepcopy(doc)

    def query(self, collection, filters=None, order_by=None, descending=False, limit=None):
        with self._lock:
            docs = [
                copy.deepcopy(doc)
                for doc in self._collection(collection).values()
                if _matches(doc, filters or {})
            ]

        if order_by:
            docs.sort(key=lambda d: (d.get(order_by) is None, d.get(order_by)), reverse=descending)
        if limit is not None:
            docs = docs[:limit]

        log_store_operation("QUERY", collection, True, len(docs))
        return docs

    def create(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        new_doc = copy.deepcopy(doc)
        new_doc["id"] = new_doc.get("id") or uuid.uuid4().hex
        new_doc["version"] = 1

        with self._lock:
            docs = self._collection(collection)
            if new_doc["id"] in docs:
                log_store_operation("CREATE", collection, False, error="duplicate id")
                raise StoreConflictError(
                    f"文件已存在: {collection}/{new_doc['id']}",
                    details={"collection": collection, "id": new_doc["id"]},
                )
            docs[new_doc["id"]] = new_doc

        log_store_operation("CREATE", collection, True, 1)
        return copy.deepcopy(new_doc)

    def update(self, collection, doc_id, patch, expected_version=None):
        with self._lock:
            docs = self._collection(collection)
            current = docs.get(doc_id)
            if current is None:
                raise DocumentNotFound(collection, doc_id)

            if expected_version is not None and current.get("version") != expected_version:
                log_store_operation("UPDATE", collection, False, error="version mismatch")
                raise StoreConflictError(
                    f"版本衝突: {collection}/{doc_id}",
                    details={
                        "collection": collection,
                        "id": doc_id,
                        "expected_version": expected_version,
                        "actual_version": current.get("version"),
                    },
                )

            updated = {**current, **copy.deepcopy(patch)}
            updated["id"] = doc_id
            updated["version"] = current.get("version", 0) + 1
            docs[doc_id] = updated

        log_store_operation("UPDATE", collection, True, 1)
        return copy.deepcopy(updated)
