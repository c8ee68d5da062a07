"""
Repository Package
文件儲存存取層（get / query / create / update）
"""

from repository.errors import StoreError, StoreTimeoutError, StoreConflictError, DocumentNotFound
from repository.document_store import DocumentStore, InMemoryDocumentStore
from repository.config_repository import ConfigRepository
from repository.room_repository import RoomRepository
from repository.tenant_repository import TenantRepository
from repository.meter_repository import MeterRepository
from repository.bill_repository import BillRepository
from repository.payment_repository import PaymentRepository
from repository.notification_repository import NotificationRepository

__all__ = [
    'StoreError',
    'StoreTimeoutError',
    'StoreConflictError',
    'DocumentNotFound',
    'DocumentStore',
    'InMemoryDocumentStore',
    'ConfigRepository',
    'RoomRepository',
    'TenantRepository',
    'MeterRepository',
    'BillRepository',
    'PaymentRepository',
    'NotificationRepository',
]
