"""
In-memory record storage (for tests and local demos).
In production, use Cosmos DB or SQLite.
"""
from .record_store_base import RecordStoreBase
from ...core.errors import NotFoundError, UpstreamServiceError
from ...models.invoice import InvoiceRecord


class InMemoryRecordStore(RecordStoreBase):
    def __init__(self):
        self._records: dict[tuple[str, str], InvoiceRecord] = {}

    def put(self, record: InvoiceRecord, partition_key: str) -> InvoiceRecord:
        """Store a record under (partition_key, id); IDs are never overwritten"""
        key = (partition_key, record.id)
        if key in self._records:
            raise UpstreamServiceError("Failed to save invoice", details=f"Record {record.id} already exists", service="records")
        self._records[key] = record
        return record

    def query_all(self) -> list[InvoiceRecord]:
        return sorted(self._records.values(), key=lambda r: r.upload_date, reverse=True)

    def get(self, record_id: str, partition_key: str) -> InvoiceRecord:
        record = self._records.get((partition_key, record_id))
        if record is None:
            raise NotFoundError("Invoice not found", details=f"id={record_id}, vendorId={partition_key}")
        return record

    def clear(self) -> None:
        self._records.clear()
