"""
Backend selection for blob and record storage.

Azure services are used when their settings are present; otherwise the app
falls back to an in-memory blob store and a local SQLite record store.
"""

from loguru import logger
from .blobs import AzureBlobStore, BlobStoreBase, InMemoryBlobStore
from .record_store_base import RecordStoreBase
from .records_cosmos import CosmosRecordStore
from .records_sqlite import SQLiteRecordStore
from ...core.config import settings

_blob_store: BlobStoreBase | None = None
_record_store: RecordStoreBase | None = None


def get_blob_store() -> BlobStoreBase:
    global _blob_store
    if _blob_store is None:
        if settings.azure_storage_connection_string:
            logger.info("Using Azure Blob Storage", container=settings.azure_storage_container_name)
            _blob_store = AzureBlobStore(
                settings.azure_storage_connection_string,
                settings.azure_storage_container_name,
            )
        else:
            logger.warning(
                "Azure Blob Storage not configured - files are kept in memory. "
                "Set AZURE_STORAGE_CONNECTION_STRING to persist uploads."
            )
            _blob_store = InMemoryBlobStore(settings.azure_storage_container_name)
    return _blob_store


def get_record_store() -> RecordStoreBase:
    global _record_store
    if _record_store is None:
        if settings.cosmos_endpoint and settings.cosmos_key:
            logger.info(
                "Using Cosmos DB record store",
                database=settings.cosmos_database_name,
                container=settings.cosmos_container_name,
            )
            _record_store = CosmosRecordStore(
                settings.cosmos_endpoint,
                settings.cosmos_key,
                settings.cosmos_database_name,
                settings.cosmos_container_name,
            )
        else:
            logger.warning("Cosmos DB not configured - using SQLite record store", db_path=settings.records_db_path)
            _record_store = SQLiteRecordStore(settings.records_db_path)
    return _record_store
