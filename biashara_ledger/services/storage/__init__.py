"""
Storage Services Package

Abstract interfaces for the persistence, blob and audit collaborators,
plus Google Sheets and in-memory implementations.
"""

from biashara_ledger.services.storage.interface import (
    AuditStorageInterface,
    BlobStorageInterface,
    TransactionStorageInterface,
)
from biashara_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBlobStorage,
    InMemoryTransactionStorage,
    default_categories,
)
from biashara_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BlobStorageInterface",
    "TransactionStorageInterface",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBlobStorage",
    "InMemoryTransactionStorage",
    "default_categories",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
]
