from fastapi import Depends
from pydantic import BaseModel
from ..core.config import settings
from ..services.classifier import ClassificationEngine
from ..services.events.event_publisher import EventPublisher, get_event_publisher
from ..services.form_recognizer import analyze_document
from ..services.llm import AzureOpenAITextGenerator, SamplingConfig
from ..services.pipeline import PipelineOrchestrator
from ..services.storage.blobs import BlobStoreBase
from ..services.storage.factory import get_blob_store, get_record_store
from ..services.storage.record_store_base import RecordStoreBase


class InvoiceListResponse(BaseModel):
    invoices: list[dict]
    count: int


class SasUrlResponse(BaseModel):
    sasUrl: str
    expiresInMinutes: int


def get_document_analyzer():
    return analyze_document


_classifier: ClassificationEngine | None = None


def get_classifier() -> ClassificationEngine:
    """One engine (and one Azure OpenAI client) for the process"""
    global _classifier
    if _classifier is None:
        _classifier = ClassificationEngine(AzureOpenAITextGenerator(), SamplingConfig.from_settings())
    return _classifier


def get_publisher() -> EventPublisher:
    return get_event_publisher()


def get_pipeline(
    blob_store: BlobStoreBase = Depends(get_blob_store),
    record_store: RecordStoreBase = Depends(get_record_store),
    classifier: ClassificationEngine = Depends(get_classifier),
    analyze=Depends(get_document_analyzer),
    publisher: EventPublisher = Depends(get_publisher),
) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        blob_store=blob_store,
        record_store=record_store,
        classifier=classifier,
        analyze=analyze,
        event_publisher=publisher,
        allowed_extensions=settings.allowed_extension_list,
    )
