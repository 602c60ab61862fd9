"""
SQLite-based invoice record storage.

Used when Cosmos DB is not configured. Keeps the vendor partition key as part
of the primary key so lookups behave like the Cosmos backend.
"""

import json
import sqlite3
from loguru import logger
from .record_store_base import RecordStoreBase
from ...core.errors import NotFoundError, UpstreamServiceError
from ...models.invoice import InvoiceRecord


class SQLiteRecordStore(RecordStoreBase):
    """
    SQLite-backed record store with persistent storage.

    Features:
    - Persistent storage across application restarts
    - Records stored as the same camelCase JSON documents Cosmos DB holds
    - Newest-first listing via an upload timestamp index
    """

    def __init__(self, db_path: str = "invoices.db"):
        """
        Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (default: invoices.db)
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self):
        """Create invoices table if it doesn't exist"""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS invoices (
                id TEXT NOT NULL,
                vendor_id TEXT NOT NULL,
                upload_ts REAL NOT NULL,
                record TEXT NOT NULL,
                PRIMARY KEY (vendor_id, id)
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_upload_ts
            ON invoices(upload_ts)
        """)

        conn.commit()
        conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def put(self, record: InvoiceRecord, partition_key: str) -> InvoiceRecord:
        document = record.to_document()

        conn = self._get_connection()
        try:
            conn.execute("""
                INSERT INTO invoices (id, vendor_id, upload_ts, record)
                VALUES (?, ?, ?, ?)
            """, (record.id, partition_key, record.upload_date.timestamp(), json.dumps(document)))
            conn.commit()
        except sqlite3.Error as e:
            logger.error("Failed to save invoice to SQLite", invoice_id=record.id, error=str(e))
            raise UpstreamServiceError("Failed to save invoice", details=str(e), service="records") from e
        finally:
            conn.close()

        logger.info("Invoice saved", invoice_id=record.id, vendor_id=partition_key, db_path=self.db_path)
        return record

    def query_all(self) -> list[InvoiceRecord]:
        conn = self._get_connection()
        try:
            rows = conn.execute("""
                SELECT record FROM invoices
                ORDER BY upload_ts DESC
            """).fetchall()
        except sqlite3.Error as e:
            raise UpstreamServiceError("Failed to list invoices", details=str(e), service="records") from e
        finally:
            conn.close()

        return [InvoiceRecord.model_validate(json.loads(row["record"])) for row in rows]

    def get(self, record_id: str, partition_key: str) -> InvoiceRecord:
        conn = self._get_connection()
        try:
            row = conn.execute("""
                SELECT record FROM invoices
                WHERE id = ? AND vendor_id = ?
            """, (record_id, partition_key)).fetchone()
        except sqlite3.Error as e:
            raise UpstreamServiceError("Failed to read invoice", details=str(e), service="records") from e
        finally:
            conn.close()

        if row is None:
            logger.warning("Invoice not found", invoice_id=record_id, vendor_id=partition_key)
            raise NotFoundError("Invoice not found", details=f"id={record_id}, vendorId={partition_key}")

        return InvoiceRecord.model_validate(json.loads(row["record"]))
