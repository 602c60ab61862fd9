"""
Azure Cosmos DB record storage.

Each invoice is one item in the container, partitioned by ``/vendorId``.
"""

from loguru import logger
from azure.cosmos import CosmosClient
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError
from .record_store_base import RecordStoreBase
from ...core.errors import NotFoundError, UpstreamServiceError
from ...models.invoice import InvoiceRecord


class CosmosRecordStore(RecordStoreBase):
    def __init__(
        self,
        endpoint: str | None = None,
        key: str | None = None,
        database_name: str = "InvoiceDB",
        container_name: str = "Invoices",
        container=None,
    ):
        """
        Args:
            endpoint: Cosmos DB account endpoint
            key: Cosmos DB account key
            database_name: Database holding the invoices container
            container_name: Container partitioned by /vendorId
            container: Pre-built ContainerProxy (tests inject a mock here)
        """
        if container is None:
            client = CosmosClient(endpoint, credential=key)
            container = client.get_database_client(database_name).get_container_client(container_name)
        self._container = container

    def put(self, record: InvoiceRecord, partition_key: str) -> InvoiceRecord:
        logger.info("Saving invoice to Cosmos DB", invoice_id=record.id, vendor_id=partition_key)
        try:
            stored = self._container.create_item(body=record.to_document())
        except CosmosHttpResponseError as e:
            logger.error("Error saving invoice to Cosmos DB", invoice_id=record.id, error=str(e))
            raise UpstreamServiceError("Failed to save invoice", details=str(e), service="cosmos") from e
        return InvoiceRecord.model_validate(stored)

    def query_all(self) -> list[InvoiceRecord]:
        try:
            items = self._container.query_items(
                query="SELECT * FROM c ORDER BY c.uploadDate DESC",
                enable_cross_partition_query=True,
            )
            records = [InvoiceRecord.model_validate(item) for item in items]
        except CosmosHttpResponseError as e:
            logger.error("Error retrieving invoices from Cosmos DB", error=str(e))
            raise UpstreamServiceError("Failed to list invoices", details=str(e), service="cosmos") from e

        logger.info("Invoices retrieved from Cosmos DB", count=len(records))
        return records

    def get(self, record_id: str, partition_key: str) -> InvoiceRecord:
        try:
            item = self._container.read_item(item=record_id, partition_key=partition_key)
        except CosmosResourceNotFoundError as e:
            logger.warning("Invoice not found", invoice_id=record_id, vendor_id=partition_key)
            raise NotFoundError("Invoice not found", details=f"id={record_id}, vendorId={partition_key}") from e
        except CosmosHttpResponseError as e:
            logger.error("Error retrieving invoice from Cosmos DB", invoice_id=record_id, error=str(e))
            raise UpstreamServiceError("Failed to read invoice", details=str(e), service="cosmos") from e
        return InvoiceRecord.model_validate(item)
