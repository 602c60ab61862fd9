"""
Blob storage for uploaded invoice files.

Azure Blob Storage in deployed environments, an in-memory store otherwise.
Blob URLs are the durable handle kept on each invoice record.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, UTC
from urllib.parse import quote, unquote, urlparse
from loguru import logger
from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobSasPermissions, BlobServiceClient, ContentSettings, generate_blob_sas
from ...core.errors import NotFoundError, UpstreamServiceError, ValidationError

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".tiff": "image/tiff",
    ".bmp": "image/bmp",
}


def content_type_for(file_name: str) -> str:
    suffix = ""
    if "." in file_name:
        suffix = "." + file_name.rsplit(".", 1)[1].lower()
    return CONTENT_TYPES.get(suffix, "application/octet-stream")


def unique_blob_name(file_name: str, now: datetime | None = None) -> str:
    """Date-partitioned, collision-free name: YYYY/MM/<uuid>-<file_name>"""
    now = now or datetime.now(UTC)
    return f"{now:%Y/%m}/{uuid.uuid4()}-{file_name}"


def blob_name_from_url(blob_url: str) -> str:
    """
    Extract the blob name from a blob URL.

    URL format: https://<account>.blob.core.windows.net/<container>/<blob name>
    The first path segment is the container; the rest (URL-decoded) is the name.
    """
    segments = [unquote(s) for s in urlparse(blob_url).path.split("/") if s]
    blob_name = "/".join(segments[1:])
    if not blob_name:
        raise ValidationError("Invalid blob URL", details=blob_url)
    return blob_name


class BlobStoreBase(ABC):
    @abstractmethod
    def put(self, data: bytes, file_name: str, content_type: str) -> str:
        """Upload bytes and return the blob URL"""
        pass

    @abstractmethod
    def get(self, blob_url: str) -> tuple[bytes, str]:
        """Download a blob; returns (bytes, content type). Raises NotFoundError."""
        pass

    @abstractmethod
    def sas_url(self, blob_url: str, ttl_minutes: int = 60) -> str:
        """Time-limited read-only URL for a blob. Raises NotFoundError."""
        pass


class InMemoryBlobStore(BlobStoreBase):
    def __init__(self, container_name: str = "invoices"):
        self.container_name = container_name
        self._blobs: dict[str, tuple[bytes, str]] = {}

    def _url(self, blob_name: str) -> str:
        return f"memory://localhost/{self.container_name}/{quote(blob_name)}"

    def put(self, data: bytes, file_name: str, content_type: str) -> str:
        blob_name = unique_blob_name(file_name)
        self._blobs[blob_name] = (bytes(data), content_type)
        logger.info("File stored in memory", blob_name=blob_name, size=len(data))
        return self._url(blob_name)

    def get(self, blob_url: str) -> tuple[bytes, str]:
        blob_name = blob_name_from_url(blob_url)
        if blob_name not in self._blobs:
            raise NotFoundError("File not found", details=blob_name)
        return self._blobs[blob_name]

    def sas_url(self, blob_url: str, ttl_minutes: int = 60) -> str:
        blob_name = blob_name_from_url(blob_url)
        if blob_name not in self._blobs:
            raise NotFoundError("File not found", details=blob_name)
        expires = datetime.now(UTC) + timedelta(minutes=ttl_minutes)
        return f"{self._url(blob_name)}?se={expires:%Y-%m-%dT%H:%M:%SZ}&sp=r"


class AzureBlobStore(BlobStoreBase):
    def __init__(self, connection_string: str | None = None, container_name: str = "invoices", service_client=None):
        self.service_client = service_client or BlobServiceClient.from_connection_string(connection_string)
        self.container_client = self.service_client.get_container_client(container_name)
        try:
            self.container_client.create_container()
        except ResourceExistsError:
            pass

    def put(self, data: bytes, file_name: str, content_type: str) -> str:
        blob_name = unique_blob_name(file_name)
        blob_client = self.container_client.get_blob_client(blob_name)

        logger.info("Uploading file to blob storage", blob_name=blob_name, size=len(data))
        try:
            blob_client.upload_blob(data, content_settings=ContentSettings(content_type=content_type))
        except AzureError as e:
            logger.error("Error uploading file to blob storage", file_name=file_name, error=str(e))
            raise UpstreamServiceError("Failed to upload file", details=str(e), service="blob") from e

        logger.info("File uploaded successfully", blob_url=blob_client.url)
        return blob_client.url

    def get(self, blob_url: str) -> tuple[bytes, str]:
        blob_name = blob_name_from_url(blob_url)
        blob_client = self.container_client.get_blob_client(blob_name)
        try:
            downloader = blob_client.download_blob()
            data = downloader.readall()
        except ResourceNotFoundError as e:
            raise NotFoundError("File not found", details=blob_name) from e
        except AzureError as e:
            logger.error("Error downloading blob", blob_url=blob_url, error=str(e))
            raise UpstreamServiceError("Failed to download file", details=str(e), service="blob") from e

        content_type = downloader.properties.content_settings.content_type or content_type_for(blob_name)
        logger.info("Blob downloaded", blob_name=blob_name, content_type=content_type)
        return data, content_type

    def sas_url(self, blob_url: str, ttl_minutes: int = 60) -> str:
        blob_name = blob_name_from_url(blob_url)
        blob_client = self.container_client.get_blob_client(blob_name)

        try:
            exists = blob_client.exists()
        except AzureError as e:
            raise UpstreamServiceError("Failed to generate SAS URL", details=str(e), service="blob") from e
        if not exists:
            logger.warning("Blob not found", blob_name=blob_name)
            raise NotFoundError("File not found", details=blob_name)

        credential = self.service_client.credential
        account_key = getattr(credential, "account_key", None)
        if not account_key:
            raise UpstreamServiceError(
                "Cannot generate SAS token",
                details="Blob storage must use account key authentication",
                service="blob",
            )

        now = datetime.now(UTC)
        token = generate_blob_sas(
            account_name=self.service_client.account_name,
            container_name=self.container_client.container_name,
            blob_name=blob_name,
            account_key=account_key,
            permission=BlobSasPermissions(read=True),
            start=now - timedelta(minutes=5),  # clock skew
            expiry=now + timedelta(minutes=ttl_minutes),
        )
        logger.info("Generated SAS URL", blob_name=blob_name, expires_in_minutes=ttl_minutes)
        return f"{blob_client.url}?{token}"
