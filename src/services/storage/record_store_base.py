"""
Abstract base class for invoice record stores.

Defines the interface every persistence backend implements, so the pipeline
and API can be wired to Cosmos DB, SQLite, or memory interchangeably.
"""

from abc import ABC, abstractmethod
from ...models.invoice import InvoiceRecord


class RecordStoreBase(ABC):
    """
    Abstract base class for invoice record persistence.

    Records are partitioned by vendor ID. Implementations can use:
    - In-memory storage (for testing/demo)
    - SQLite (for single-instance deployments)
    - Cosmos DB (for cloud-native Azure deployments)
    """

    @abstractmethod
    def put(self, record: InvoiceRecord, partition_key: str) -> InvoiceRecord:
        """
        Persist a new invoice record.

        Args:
            record: Fully assembled invoice record
            partition_key: Vendor ID the record is stored under

        Returns:
            The record as stored

        Raises:
            UpstreamServiceError: if the backend rejects the write
        """
        pass

    @abstractmethod
    def query_all(self) -> list[InvoiceRecord]:
        """
        List every stored record.

        Returns:
            Records ordered by upload date, most recent first
        """
        pass

    @abstractmethod
    def get(self, record_id: str, partition_key: str) -> InvoiceRecord:
        """
        Fetch one record.

        Args:
            record_id: Invoice record ID
            partition_key: Vendor ID the record was stored under

        Returns:
            The stored record

        Raises:
            NotFoundError: if no record exists under that ID and partition
        """
        pass
