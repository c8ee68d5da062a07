# repository/supabase_store.py
"""
Supabase 文件儲存 - 正式環境用
✅ 每個 collection 對應一張同名資料表（id text primary key, version int）
✅ expected_version → UPDATE ... WHERE id = ? AND version = ?，無資料列即衝突
✅ httpx 逾時 → StoreTimeoutError（不重試）
"""
from typing import Any, Dict, List, Optional
import uuid

import httpx
from supabase import Client

from repository.document_store import DocumentStore
from repository.errors import DocumentNotFound, StoreConflictError, StoreError, StoreTimeoutError
from utils.logger import logger, log_store_operation

UNIQUE_VIOLATION = "23505"


class SupabaseDocumentStore(DocumentStore):
    """以 Supabase (PostgREST) 資料表實作的文件儲存"""

    def __init__(self, client: Client):
        self.client = client

    def _execute(self, operation: str, collection: str, builder):
        try:
            response = builder.execute()
        except StoreError:
            raise
        except httpx.TimeoutException as e:
            log_store_operation(operation, collection, False, error="timeout")
            raise StoreTimeoutError(
                f"{operation} {collection} 逾時",
                details={"collection": collection},
            ) from e
        except Exception as e:
            log_store_operation(operation, collection, False, error=str(e))
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                raise StoreConflictError(
                    f"{collection} 資料重複",
                    details={"collection": collection},
                ) from e
            raise StoreError(f"{operation} {collection} 失敗: {e}") from e

        rows = response.data or []
        log_store_operation(operation, collection, True, len(rows))
        return rows

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        rows = self._execute(
            "GET", collection,
            self.client.table(collection).select("*").eq("id", doc_id).limit(1),
        )
        if not rows:
            raise DocumentNotFound(collection, doc_id)
        return rows[0]

    def query(self, collection, filters=None, order_by=None, descending=False, limit=None):
        builder = self.client.table(collection).select("*")
        for field, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set)):
                builder = builder.in_(field, list(value))
            elif value is None:
                builder = builder.is_(field, "null")
            else:
                builder = builder.eq(field, value)
        if order_by:
            builder = builder.order(order_by, desc=descending)
        if limit is not None:
            builder = builder.limit(limit)
        return self._execute("QUERY", collection, builder)

    def create(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        new_doc = {**doc, "id": doc.get("id") or uuid.uuid4().hex, "version": 1}
        rows = self._execute("CREATE", collection, self.client.table(collection).insert(new_doc))
        return rows[0] if rows else new_doc

    def update(self, collection, doc_id, patch, expected_version=None):
        if expected_version is None:
            expected_version = self.get(collection, doc_id).get("version", 0)

        payload = {**patch, "version": expected_version + 1}
        payload.pop("id", None)
        rows = self._execute(
            "UPDATE", collection,
            self.client.table(collection)
            .update(payload)
            .eq("id", doc_id)
            .eq("version", expected_version),
        )
        if rows:
            return rows[0]

        # 沒有資料列被更新：文件不存在或版本已被他人改動
        self.get(collection, doc_id)
        logger.warning(f"⚠️ 版本衝突: {collection}/{doc_id} (expected v{expected_version})")
        raise StoreConflictError(
            f"版本衝突: {collection}/{doc_id}",
            details={"collection": collection, "id": doc_id, "expected_version": expected_version},
        )
