"""
In-Memory Storage

Used when no backend is configured and throughout the test suite.
Behaves like the real collaborators: defaults follow user categories,
uploads return stable URLs, audit events keep their order.
"""

from typing import Optional
from urllib.parse import quote
from uuid import UUID, uuid4

from biashara_ledger.errors import UploadError
from biashara_ledger.models.audit import AuditEvent
from biashara_ledger.models.transaction import (
    DEFAULT_CATEGORIES,
    CanonicalTransaction,
    Category,
)
from biashara_ledger.services.storage.interface import (
    AuditStorageInterface,
    BlobStorageInterface,
    TransactionStorageInterface,
)


def default_categories() -> list[Category]:
    """The shared categories every user starts with."""
    return [
        Category(name=name, type=transaction_type.value)
        for transaction_type, names in DEFAULT_CATEGORIES.items()
        for name in names
    ]


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Keeps transactions per user in a dict."""

    def __init__(self, user_categories: Optional[dict[str, list[Category]]] = None):
        self._transactions: dict[str, list[tuple[str, CanonicalTransaction]]] = {}
        self._user_categories = user_categories or {}

    async def save_transaction(
        self,
        transaction: CanonicalTransaction,
        user_id: str,
    ) -> str:
        transaction_id = str(uuid4())
        self._transactions.setdefault(user_id, []).append((transaction_id, transaction))
        return transaction_id

    async def list_categories(self, user_id: str) -> list[Category]:
        return list(self._user_categories.get(user_id, [])) + default_categories()

    def transactions_for(self, user_id: str) -> list[CanonicalTransaction]:
        return [tx for _, tx in self._transactions.get(user_id, [])]


class InMemoryBlobStorage(BlobStorageInterface):
    """Stores blobs in a dict and hands out memory:// URLs."""

    def __init__(self, base_url: str = "memory://receipts"):
        self._base_url = base_url.rstrip("/")
        self.blobs: dict[str, bytes] = {}

    async def upload(self, data: bytes, path: str, mime_type: str) -> str:
        if not data:
            raise UploadError("Refusing to upload an empty image")
        self.blobs[path] = data
        return f"{self._base_url}/{quote(path)}"


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self.events if e.correlation_id == correlation_id]
