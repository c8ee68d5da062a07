from .formatters import to_money, format_currency, format_period
from .logger import logger, log_store_operation

__all__ = [
    "to_money",
    "format_currency",
    "format_period",
    "logger",
    "log_store_operation",
]
