"""Services package."""

from crediflow.services.storage import (
    AuditStorageInterface,
    BillingStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillingStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBillingStorage,
    JsonFileBillingStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "BillingStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillingStorage",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryBillingStorage",
    "JsonFileBillingStorage",
    "NotFoundError",
    "StorageError",
]
