"""
引擎設定
統一從 .env / 環境變數讀取，其餘模組一律透過 get_settings() 取得
"""
import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_decimal(name: str, default: str) -> Decimal:
    return Decimal(os.getenv(name, default))


@dataclass(frozen=True)
class Settings:
    """執行期設定值物件"""
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    store_timeout_seconds: float = 10.0
    vacant_room_threshold: Decimal = Decimal("10")
    high_usage_threshold: Decimal = Decimal("200")
    default_due_day: int = 5
    late_fee_per_day: Decimal = Decimal("20")
    log_level: str = "INFO"
    log_file: Optional[str] = "logs/app.log"

    @classmethod
    def from_env(cls) -> "Settings":
        log_file = os.getenv("LOG_FILE", "logs/app.log")
        return cls(
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY"),
            store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "10")),
            vacant_room_threshold=_env_decimal("VACANT_ROOM_THRESHOLD", "10"),
            high_usage_threshold=_env_decimal("HIGH_USAGE_THRESHOLD", "200"),
            default_due_day=int(os.getenv("DEFAULT_DUE_DAY", "5")),
            late_fee_per_day=_env_decimal("LATE_FEE_PER_DAY", "20"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=log_file or None,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """取得全域設定（只讀取一次環境變數）"""
    return Settings.from_env()
