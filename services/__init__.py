"""
Services Package
統一管理帳單引擎的服務層邏輯
"""

from services.base_service import BaseService
from services.rate_config_service import RateConfigService
from services.charge_calculator import ChargeCalculator
from services.meter_service import MeterService
from services.bill_service import BillService
from services.event_service import PaymentEventPublisher
from services.payment_service import PaymentService
from services.report_service import ReportService
from services.billing_engine import BillingEngine

__all__ = [
    'BaseService',
    'RateConfigService',
    'ChargeCalculator',
    'MeterService',
    'BillService',
    'PaymentEventPublisher',
    'PaymentService',
    'ReportService',
    'BillingEngine',
]
