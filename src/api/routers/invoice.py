import uuid
from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from loguru import logger
from ..deps import InvoiceListResponse, SasUrlResponse, get_pipeline
from ...core.config import settings
from ...core.errors import ValidationError
from ...services.pipeline import PipelineOrchestrator
from ...services.storage.blobs import BlobStoreBase, blob_name_from_url
from ...services.storage.factory import get_blob_store, get_record_store
from ...services.storage.record_store_base import RecordStoreBase

router = APIRouter(tags=["invoices"])


@router.post("/upload")
async def upload_invoice(
    request: Request,
    x_file_name: str | None = Header(default=None),
    pipeline: PipelineOrchestrator = Depends(get_pipeline),
):
    """
    Upload and process an invoice.

    The raw file is the request body; its name comes from the X-File-Name
    header. Returns the stored invoice record:

    {
        "id": "...",
        "vendorId": "acme-corp",
        "extractedData": {"vendor": "Acme Corp", "totalAmount": 500.0, "currency": "USD", ...},
        "classification": {"category": "Office Supplies", "confidence": 0.92, "reasoning": "..."},
        "processingMetadata": {"status": "completed", "processingTime": 3.4, ...}
    }
    """
    file_name = x_file_name or f"invoice-{uuid.uuid4()}.pdf"
    content = await request.body()
    if not content:
        raise ValidationError("No file provided in request body")

    record = await run_in_threadpool(pipeline.process, content, file_name)
    return record.to_document()


@router.get("/invoices", response_model=InvoiceListResponse)
def list_invoices(record_store: RecordStoreBase = Depends(get_record_store)):
    """All invoices, most recent upload first"""
    records = record_store.query_all()
    return InvoiceListResponse(invoices=[r.to_document() for r in records], count=len(records))


@router.get("/invoice/{invoice_id}")
def get_invoice(
    invoice_id: str,
    vendor_id: str | None = Query(default=None, alias="vendorId"),
    record_store: RecordStoreBase = Depends(get_record_store),
):
    if not vendor_id:
        raise ValidationError("vendorId query parameter is required")
    logger.info("Retrieving invoice", invoice_id=invoice_id, vendor_id=vendor_id)
    return record_store.get(invoice_id, vendor_id).to_document()


@router.get("/blob/sas", response_model=SasUrlResponse)
def get_blob_sas_url(
    blob_url: str | None = Query(default=None, alias="blobUrl"),
    blob_store: BlobStoreBase = Depends(get_blob_store),
):
    if not blob_url:
        raise ValidationError("Missing blobUrl parameter")
    ttl = settings.blob_sas_ttl_minutes
    return SasUrlResponse(sasUrl=blob_store.sas_url(blob_url, ttl), expiresInMinutes=ttl)


@router.get("/invoice/blob/{invoice_id}")
def get_invoice_blob(
    invoice_id: str,
    vendor_id: str | None = Query(default=None, alias="vendorId"),
    blob_url: str | None = Query(default=None, alias="blobUrl"),
    record_store: RecordStoreBase = Depends(get_record_store),
    blob_store: BlobStoreBase = Depends(get_blob_store),
):
    """Stream the original uploaded file with its stored content type"""
    if not vendor_id:
        raise ValidationError("Missing id or vendorId parameter")

    if blob_url:
        file_name = blob_name_from_url(blob_url).rsplit("/", 1)[-1]
    else:
        record = record_store.get(invoice_id, vendor_id)
        blob_url = record.blob_url
        file_name = record.file_name

    data, content_type = blob_store.get(blob_url)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Content-Disposition": f'inline; filename="{file_name}"'},
    )
