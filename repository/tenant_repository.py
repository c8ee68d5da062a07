# repository/tenant_repository.py
"""
房客資料存取層
"""
from typing import List, Optional

from repository.document_store import DocumentStore
from schemas.tenant import SpecialItem, Tenant


class TenantRepository:
    """房客資料存取物件"""

    COLLECTION = "tenants"

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_tenant(self, tenant_id: str) -> Tenant:
        return Tenant.model_validate(self.store.get(self.COLLECTION, tenant_id))

    def get_active_by_room(self, room_id: str) -> Optional[Tenant]:
        """依房間查詢目前入住的房客（含申請退租中）"""
        docs = self.store.query(
            self.COLLECTION,
            {"room_id": room_id, "status": ["active", "moving_out"]},
        )
        return Tenant.model_validate(docs[0]) if docs else None

    def update_special_items(self, tenant: Tenant, items: List[SpecialItem]) -> Tenant:
        """以 tenant.version 做 CAS 更新 special_items"""
        doc = self.store.update(
            self.COLLECTION,
            tenant.id,
            {"special_items": [item.model_dump(mode="json") for item in items]},
            expected_version=tenant.version,
        )
        return Tenant.model_validate(doc)
