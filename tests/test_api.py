"""
HTTP surface tests.

Storage, document analysis, and classification are swapped for in-memory
collaborators through FastAPI dependency overrides.
"""

import pytest
from unittest.mock import Mock
from fastapi.testclient import TestClient
from src.api import deps
from src.api.main import app
from src.core.errors import UpstreamServiceError
from src.services.events.event_publisher import EventPublisher
from src.services.storage import factory


@pytest.fixture
def client(blob_store, record_store, classifier, acme_document):
    app.dependency_overrides[factory.get_blob_store] = lambda: blob_store
    app.dependency_overrides[factory.get_record_store] = lambda: record_store
    app.dependency_overrides[deps.get_classifier] = lambda: classifier
    app.dependency_overrides[deps.get_document_analyzer] = lambda: (lambda file_bytes: acme_document)
    app.dependency_overrides[deps.get_publisher] = lambda: EventPublisher(service_bus_sender=None)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def upload(client, content=b"%PDF-1.4 acme invoice", file_name="acme.pdf"):
    return client.post("/upload", content=content, headers={"X-File-Name": file_name})


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


class TestUpload:
    def test_returns_camel_case_record(self, client):
        r = upload(client)
        assert r.status_code == 200

        data = r.json()
        assert data["vendorId"] == "acme-corp"
        assert data["fileName"] == "acme.pdf"
        assert data["extractedData"]["vendor"] == "Acme Corp"
        assert data["extractedData"]["totalAmount"] == 500.0
        assert data["extractedData"]["currency"] == "USD"
        assert data["classification"]["category"] == "Office Supplies"
        assert data["processingMetadata"]["status"] == "completed"
        assert data["blobUrl"]

    def test_invalid_file_type_is_400(self, client, record_store):
        r = upload(client, file_name="invoice.docx")
        assert r.status_code == 400
        body = r.json()
        assert "Invalid file type" in body["error"]
        assert "details" in body
        assert record_store.query_all() == []

    def test_empty_body_is_400(self, client):
        r = upload(client, content=b"")
        assert r.status_code == 400
        assert r.json()["error"] == "No file provided in request body"

    def test_extraction_failure_is_500(self, client):
        failing = Mock(side_effect=UpstreamServiceError("Invoice extraction failed", details="503 Service Unavailable"))
        app.dependency_overrides[deps.get_document_analyzer] = lambda: failing

        r = upload(client)
        assert r.status_code == 500
        assert r.json() == {"error": "Invoice extraction failed", "details": "503 Service Unavailable"}


class TestInvoiceQueries:
    def test_list_newest_first(self, client):
        first = upload(client, file_name="first.pdf").json()
        second = upload(client, file_name="second.pdf").json()

        r = client.get("/invoices")
        assert r.status_code == 200
        data = r.json()
        assert data["count"] == 2
        assert [i["id"] for i in data["invoices"]] == [second["id"], first["id"]]

    def test_list_empty(self, client):
        assert client.get("/invoices").json() == {"invoices": [], "count": 0}

    def test_get_by_id_and_vendor(self, client):
        created = upload(client).json()

        r = client.get(f"/invoice/{created['id']}", params={"vendorId": "acme-corp"})
        assert r.status_code == 200
        assert r.json() == created

    def test_get_requires_vendor_id(self, client):
        created = upload(client).json()
        r = client.get(f"/invoice/{created['id']}")
        assert r.status_code == 400

    def test_get_wrong_partition_is_404(self, client):
        created = upload(client).json()
        r = client.get(f"/invoice/{created['id']}", params={"vendorId": "globex"})
        assert r.status_code == 404
        assert r.json()["error"] == "Invoice not found"


class TestBlobAccess:
    def test_sas_url(self, client):
        created = upload(client).json()

        r = client.get("/blob/sas", params={"blobUrl": created["blobUrl"]})
        assert r.status_code == 200
        data = r.json()
        assert data["sasUrl"].startswith(created["blobUrl"])
        assert data["expiresInMinutes"] == 60

    def test_sas_requires_blob_url(self, client):
        assert client.get("/blob/sas").status_code == 400

    def test_sas_unknown_blob_is_404(self, client):
        r = client.get("/blob/sas", params={"blobUrl": "memory://localhost/invoices/2025/01/missing.pdf"})
        assert r.status_code == 404

    def test_download_original_file(self, client):
        created = upload(client, content=b"%PDF-1.4 original bytes").json()

        r = client.get(f"/invoice/blob/{created['id']}", params={"vendorId": "acme-corp"})
        assert r.status_code == 200
        assert r.content == b"%PDF-1.4 original bytes"
        assert r.headers["content-type"] == "application/pdf"
        assert 'filename="acme.pdf"' in r.headers["content-disposition"]

    def test_download_by_blob_url(self, client):
        created = upload(client, content=b"png bytes", file_name="scan.png").json()

        r = client.get(
            f"/invoice/blob/{created['id']}",
            params={"vendorId": "acme-corp", "blobUrl": created["blobUrl"]},
        )
        assert r.status_code == 200
        assert r.content == b"png bytes"
        assert r.headers["content-type"] == "image/png"

    def test_download_missing_record_is_404(self, client):
        r = client.get("/invoice/blob/does-not-exist", params={"vendorId": "acme-corp"})
        assert r.status_code == 404


def test_classifier_is_built_once(monkeypatch):
    monkeypatch.setattr(deps, "_classifier", None)

    first = deps.get_classifier()
    assert deps.get_classifier() is first
    assert first.generator is deps.get_classifier().generator
