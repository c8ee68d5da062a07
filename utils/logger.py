# utils/logger.py
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from config.settings import get_settings


class AppLogger:
    """統一日誌管理系統"""

    _loggers = {}

    @classmethod
    def get_logger(cls, name: str = "dorm_billing") -> logging.Logger:
        """取得或建立 logger 實例"""
        if name in cls._loggers:
            return cls._loggers[name]

        settings = get_settings()
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

        # 避免重複添加 handler
        if logger.handlers:
            return logger

        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        # File Handler（自動輪轉，最多保留 5 個檔案，每個 10MB）；LOG_FILE 為空則不寫檔
        if settings.log_file:
            log_dir = os.path.dirname(settings.log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                settings.log_file,
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        cls._loggers[name] = logger
        return logger


# 建立全域 logger
logger = AppLogger.get_logger()


def log_store_operation(operation: str, collection: str, success: bool,
                        count: Optional[int] = None, error: Optional[str] = None):
    """記錄文件儲存操作"""
    if success:
        msg = f"Store操作成功: {operation} on {collection}"
        if count is not None:
            msg += f" ({count} docs)"
        logger.debug(msg)
    else:
        logger.error(f"Store操作失敗: {operation} on {collection} - {error}")
