"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The local JSON document is the default backend; Google Sheets and an
in-memory store implement the same interface.
"""

from crediflow.services.storage.interface import (
    AuditStorageInterface,
    BillingStorageInterface,
    ConnectionError,
    NotFoundError,
    StorageError,
)
from crediflow.services.storage.json_file import JsonFileBillingStorage
from crediflow.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBillingStorage,
)
from crediflow.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBillingStorage,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BillingStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Local implementations
    "InMemoryAuditStorage",
    "InMemoryBillingStorage",
    "JsonFileBillingStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillingStorage",
    "GoogleSheetsClient",
]
