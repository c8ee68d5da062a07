"""
FastAPI 共用依賴
"""
from functools import lru_cache

from backend.config.supabase import get_supabase
from repository.supabase_store import SupabaseDocumentStore
from services.billing_engine import BillingEngine


@lru_cache(maxsize=1)
def get_engine() -> BillingEngine:
    """正式環境的帳單引擎（測試以 app.dependency_overrides 替換）"""
    return BillingEngine(SupabaseDocumentStore(get_supabase()))
