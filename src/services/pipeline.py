"""
Upload-to-record pipeline.

One call to ``PipelineOrchestrator.process`` takes an uploaded file through
upload -> extraction -> classification -> persistence and returns the stored
record. All state lives in the call, so concurrent uploads share nothing.

Validation, upload, extraction, and persistence errors propagate unchanged.
Classification cannot fail: the classifier resolves its own failures.
"""

import os
import re
import time
from datetime import datetime, UTC
from enum import Enum
from typing import Callable
from loguru import logger
from .classifier import ClassificationEngine
from .events.event_publisher import EventPublisher, InvoiceProcessedEvent
from .field_mapper import map_extracted_data
from .invoice_types import AnalyzedDocument
from .storage.blobs import BlobStoreBase, content_type_for
from .storage.record_store_base import RecordStoreBase
from ..core.errors import ValidationError
from ..models.invoice import InvoiceRecord, ProcessingMetadata

DEFAULT_ALLOWED_EXTENSIONS = (".pdf", ".png", ".jpg", ".jpeg", ".tiff", ".bmp")

_VENDOR_STRIP = re.compile(r"['\".,]")
_WHITESPACE = re.compile(r"\s+")


class PipelineStage(str, Enum):
    RECEIVED = "received"
    UPLOADED = "uploaded"
    EXTRACTED = "extracted"
    CLASSIFIED = "classified"
    PERSISTED = "persisted"
    RETURNED = "returned"
    FAILED = "failed"


def normalize_vendor_id(vendor: str | None) -> str:
    """
    Partition-key slug for a vendor name.

    "Joe's Plumbing, Inc." -> "joes-plumbing-inc"; blank -> "unknown".
    Idempotent: normalizing a slug returns it unchanged.
    """
    if vendor is None or not vendor.strip():
        return "unknown"

    normalized = _VENDOR_STRIP.sub("", vendor.lower()).strip()
    normalized = _WHITESPACE.sub(" ", normalized)
    normalized = normalized.replace(" ", "-")
    return normalized or "unknown"


def validate_upload(file_bytes: bytes, file_name: str, allowed_extensions=DEFAULT_ALLOWED_EXTENSIONS) -> str:
    """Check name and content before any external call; returns the lower-cased extension"""
    if not file_name or not file_name.strip():
        raise ValidationError("File name is required")

    extension = os.path.splitext(file_name)[1].lower()
    if extension not in allowed_extensions:
        logger.warning("Invalid file type", extension=extension, file_name=file_name)
        raise ValidationError(f"Invalid file type. Allowed types: {', '.join(allowed_extensions)}")

    if not file_bytes:
        raise ValidationError("No file content provided")
    return extension


class PipelineOrchestrator:
    def __init__(
        self,
        blob_store: BlobStoreBase,
        record_store: RecordStoreBase,
        classifier: ClassificationEngine,
        analyze: Callable[[bytes], AnalyzedDocument],
        event_publisher: EventPublisher | None = None,
        allowed_extensions=DEFAULT_ALLOWED_EXTENSIONS,
    ):
        self.blob_store = blob_store
        self.record_store = record_store
        self.classifier = classifier
        self.analyze = analyze
        self.event_publisher = event_publisher
        self.allowed_extensions = tuple(allowed_extensions)

    def process(self, file_bytes: bytes, file_name: str) -> InvoiceRecord:
        stage = PipelineStage.RECEIVED
        logger.info("Processing invoice upload", file_name=file_name, size=len(file_bytes or b""))
        started_at = datetime.now(UTC)
        started = time.monotonic()

        try:
            validate_upload(file_bytes, file_name, self.allowed_extensions)

            blob_url = self.blob_store.put(file_bytes, file_name, content_type_for(file_name))
            stage = PipelineStage.UPLOADED
            logger.info("File uploaded", stage=stage.value, blob_url=blob_url)

            document = self.analyze(file_bytes)
            extracted = map_extracted_data(document)
            stage = PipelineStage.EXTRACTED
            logger.info(
                "Invoice data extracted",
                stage=stage.value,
                vendor=extracted.vendor,
                amount=extracted.total_amount,
            )
        except Exception as e:
            logger.error("Invoice processing failed", stage=stage.value, next_stage=PipelineStage.FAILED.value, error=str(e))
            raise

        classification = self.classifier.classify(extracted)
        stage = PipelineStage.CLASSIFIED
        finished_at = datetime.now(UTC)
        elapsed = time.monotonic() - started

        record = InvoiceRecord(
            vendor_id=normalize_vendor_id(extracted.vendor),
            file_name=file_name,
            blob_url=blob_url,
            upload_date=finished_at,
            extracted_data=extracted,
            classification=classification,
            processing_metadata=ProcessingMetadata(
                processing_time=elapsed,
                document_confidence=document.confidence,
                status="completed",
                start_time=started_at,
                end_time=finished_at,
            ),
        )

        try:
            stored = self.record_store.put(record, record.vendor_id)
            stage = PipelineStage.PERSISTED
            logger.info("Invoice saved", stage=stage.value, invoice_id=stored.id, vendor_id=stored.vendor_id)
        except Exception as e:
            logger.error("Invoice processing failed", stage=stage.value, next_stage=PipelineStage.FAILED.value, error=str(e))
            raise

        self._publish(stored)

        stage = PipelineStage.RETURNED
        logger.info(
            "Invoice processed successfully",
            stage=stage.value,
            invoice_id=stored.id,
            category=stored.classification.category,
            seconds=round(elapsed, 2),
        )
        return stored

    def _publish(self, record: InvoiceRecord) -> None:
        if self.event_publisher is None:
            return
        try:
            self.event_publisher.publish_invoice_processed(InvoiceProcessedEvent.from_record(record))
        except Exception as e:
            # Don't fail the upload if event publishing fails
            logger.warning("Failed to publish event", invoice_id=record.id, error=str(e))
