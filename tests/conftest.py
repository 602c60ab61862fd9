"""
Pytest configuration and shared fixtures.

Registers the integration marker / --run-integration option and provides
in-memory collaborators for pipeline and API tests.
"""

import pytest
from datetime import datetime, UTC
from src.models.invoice import Classification, ExtractedData, InvoiceRecord, ProcessingMetadata
from src.services.classifier import ClassificationEngine
from src.services.invoice_types import AnalyzedDocument, NumberField, PageLayout, TextField
from src.services.storage.blobs import InMemoryBlobStore
from src.services.storage.records_memory import InMemoryRecordStore


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against real Azure resources"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring real Azure resources"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


class ScriptedGenerator:
    """Text generator returning a canned response (or raising a canned error)"""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    def complete(self, prompt, sampling, system_prompt=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


def make_record(vendor="Acme Corp", vendor_id="acme-corp", uploaded=None, **kwargs):
    """A stored-looking invoice record for storage tests"""
    return InvoiceRecord(
        vendor_id=vendor_id,
        file_name="invoice.pdf",
        blob_url="memory://localhost/invoices/2025/10/abc-invoice.pdf",
        upload_date=uploaded or datetime.now(UTC),
        extracted_data=ExtractedData(vendor=vendor, total_amount=500.0),
        classification=Classification(category="Office Supplies", confidence=0.9),
        processing_metadata=ProcessingMetadata(status="completed"),
        **kwargs,
    )


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def generator():
    return ScriptedGenerator(
        response='{"category": "Office Supplies", "confidence": 0.91, "reasoning": "Paper and toner"}'
    )


@pytest.fixture
def classifier(generator):
    return ClassificationEngine(generator)


@pytest.fixture
def acme_document():
    """Analysis result for a plain Acme Corp invoice with no currency code"""
    return AnalyzedDocument(
        fields={
            "VendorName": TextField(content="Acme Corp"),
            "InvoiceId": TextField(content="INV-001"),
            "InvoiceDate": TextField(content="2025-10-01"),
            "InvoiceTotal": NumberField(content="$500.00", value=500.0),
        },
        pages=[PageLayout(lines=["INVOICE", "Acme Corp", "Total: $500.00"])],
        full_text="INVOICE\nAcme Corp\nTotal: $500.00",
        confidence=0.95,
    )
