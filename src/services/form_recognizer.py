from loguru import logger
from azure.ai.documentintelligence import DocumentIntelligenceClient
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError
from .invoice_types import (
    AnalyzedDocument,
    DictField,
    DocumentTable,
    FieldValue,
    ListField,
    NumberField,
    PageLayout,
    TableCell,
    TextField,
)
from ..core.config import settings
from ..core.errors import UpstreamServiceError


def _convert_field(field) -> FieldValue:
    """Turn an SDK DocumentField into one of the closed field-bag shapes"""
    field_type = getattr(field, "type", None)
    content = getattr(field, "content", None)

    if field_type == "array":
        items = getattr(field, "value_array", None) or []
        return ListField(content=content, items=[_convert_field(item) for item in items])

    if field_type == "object":
        entries = getattr(field, "value_object", None) or {}
        return DictField(content=content, entries={k: _convert_field(v) for k, v in entries.items()})

    if field_type in ("number", "integer", "currency"):
        value = getattr(field, "value_number", None)
        if value is None:
            value = getattr(field, "value_integer", None)
        currency = getattr(field, "value_currency", None)
        if value is None and currency is not None:
            value = getattr(currency, "amount", None)
        return NumberField(content=content, value=value)

    value = getattr(field, "value_string", None)
    if value is None:
        for attr in ("value_date", "value_phone_number", "value_country_region"):
            raw = getattr(field, attr, None)
            if raw is not None:
                value = str(raw)
                break
    return TextField(content=content, value=value)


def _document_from_result(result) -> AnalyzedDocument:
    fields = {}
    confidence = 0.0
    if result.documents:
        doc = result.documents[0]
        raw_fields = doc.fields if hasattr(doc, "fields") and doc.fields else {}
        fields = {name: _convert_field(field) for name, field in raw_fields.items()}
        confidence = doc.confidence if hasattr(doc, "confidence") and doc.confidence else 0.0

        # prebuilt-invoice reports the currency on the total rather than as its own field
        total = raw_fields.get("InvoiceTotal")
        currency_value = getattr(total, "value_currency", None) if total is not None else None
        currency_code = getattr(currency_value, "currency_code", None) if currency_value is not None else None
        if "CurrencyCode" not in fields and currency_code:
            fields["CurrencyCode"] = TextField(value=currency_code)
    else:
        logger.warning(
            "Document model found no structured invoice data. "
            "Falling back to layout heuristics."
        )

    pages = [
        PageLayout(
            page_number=getattr(page, "page_number", index + 1),
            lines=[line.content for line in (getattr(page, "lines", None) or [])],
        )
        for index, page in enumerate(getattr(result, "pages", None) or [])
    ]

    tables = [
        DocumentTable(
            row_count=table.row_count,
            column_count=table.column_count,
            cells=[
                TableCell(row_index=cell.row_index, column_index=cell.column_index, content=cell.content or "")
                for cell in (table.cells or [])
            ],
        )
        for table in (getattr(result, "tables", None) or [])
    ]

    return AnalyzedDocument(
        fields=fields,
        pages=pages,
        tables=tables,
        full_text=getattr(result, "content", None) or "",
        confidence=confidence,
    )


def _mock_document(file_bytes: bytes) -> AnalyzedDocument:
    text_len = len(file_bytes or b"")
    lines = [
        "INVOICE",
        "Contoso Pty Ltd",
        "Invoice #: INV-10023",
        "Date: 2025-09-30",
        "Bill To: Fabrikam Inc",
        "Total: AUD 385.00",
    ]
    return AnalyzedDocument(
        fields={
            "VendorName": TextField(content="Contoso Pty Ltd", value="Contoso Pty Ltd"),
            "InvoiceId": TextField(content="INV-10023", value="INV-10023"),
            "InvoiceDate": TextField(content="2025-09-30", value="2025-09-30"),
            "InvoiceTotal": NumberField(content="AUD 385.00", value=385.00),
        },
        pages=[PageLayout(page_number=1, lines=lines)],
        tables=[
            DocumentTable(
                row_count=3,
                column_count=4,
                cells=[
                    TableCell(row_index=r, column_index=c, content=value)
                    for r, row in enumerate([
                        ["Description", "Qty", "Rate", "Amount"],
                        ["Cloud hosting (monthly)", "1", "350.00", "350.00"],
                        ["Tax (GST 10%)", "", "", "35.00"],
                    ])
                    for c, value in enumerate(row)
                ],
            )
        ],
        full_text="\n".join(lines),
        confidence=0.92 if text_len > 0 else 0.0,
    )


def analyze_document(file_bytes: bytes) -> AnalyzedDocument:
    # Check if Azure Document Intelligence is configured
    if settings.az_di_endpoint and settings.az_di_api_key:
        logger.info(
            "Using Azure Document Intelligence for invoice extraction",
            endpoint=settings.az_di_endpoint[:50] + "..." if len(settings.az_di_endpoint) > 50 else settings.az_di_endpoint
        )

        try:
            client = DocumentIntelligenceClient(
                endpoint=settings.az_di_endpoint,
                credential=AzureKeyCredential(settings.az_di_api_key)
            )

            logger.info(f"Analyzing document of size {len(file_bytes)} bytes")

            poller = client.begin_analyze_document(
                settings.az_di_model_id,
                body=file_bytes,
                content_type="application/octet-stream"
            )
            result = poller.result()
        except AzureError as e:
            logger.error(f"Azure DI extraction failed: {str(e)}")
            raise UpstreamServiceError("Invoice extraction failed", details=str(e), service="document-intelligence") from e

        document = _document_from_result(result)
        logger.info(
            "Document analyzed",
            fields=len(document.fields),
            pages=len(document.pages),
            tables=len(document.tables),
            confidence=document.confidence,
        )
        return document

    logger.warning(
        "Azure Document Intelligence not configured - using MOCK data. "
        "Set AZ_DI_ENDPOINT and AZ_DI_API_KEY to use real extraction."
    )
    return _mock_document(file_bytes)
