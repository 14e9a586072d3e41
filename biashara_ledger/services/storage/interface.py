"""
Abstract Storage Interfaces

DESIGN DECISION: Persistence, blob storage and the audit log are external
collaborators. The pipeline only talks to these interfaces, so we can:
1. Swap Google Sheets / Cloudinary for a hosted backend later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation
"""

from abc import ABC, abstractmethod
from uuid import UUID

from biashara_ledger.models.audit import AuditEvent
from biashara_ledger.models.transaction import CanonicalTransaction, Category


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction persistence.

    Any storage implementation (Google Sheets, PostgreSQL, a hosted
    backend, etc.) must implement these methods.
    """

    @abstractmethod
    async def save_transaction(
        self,
        transaction: CanonicalTransaction,
        user_id: str,
    ) -> str:
        """
        Save a canonical transaction for a user.

        Returns:
            The stored transaction's identifier

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def list_categories(self, user_id: str) -> list[Category]:
        """
        List the categories available to a user.

        Returns:
            User categories first, then the shared defaults, in order
        """
        pass


class BlobStorageInterface(ABC):
    """Abstract interface for receipt image storage."""

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        path: str,
        mime_type: str,
    ) -> str:
        """
        Store image bytes under a path.

        Returns:
            A publicly resolvable URL

        Raises:
            UploadError: If the upload fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one capture attempt).

        Returns:
            List of related events in chronological order
        """
        pass
