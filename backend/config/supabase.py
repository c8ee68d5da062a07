"""
Supabase Client Configuration
統一管理 Supabase 連線（第一次使用時才建立）
"""
from functools import lru_cache

from supabase import Client, ClientOptions, create_client

from config.settings import get_settings


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    取得 Supabase 客戶端實例
    用於 FastAPI Dependency Injection
    """
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError("請在 .env 檔案中設定 SUPABASE_URL 和 SUPABASE_KEY")

    return create_client(
        settings.supabase_url,
        settings.supabase_key,
        options=ClientOptions(postgrest_client_timeout=settings.store_timeout_seconds),
    )
