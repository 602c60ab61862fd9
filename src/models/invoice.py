import uuid
from datetime import datetime, UTC
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Stored and served with camelCase keys, constructed with snake_case names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Spending taxonomy (closed set)
MARKETING_ADVERTISING = "Marketing & Advertising"
IT_SERVICES_SOFTWARE = "IT Services & Software"
OFFICE_SUPPLIES = "Office Supplies"
UTILITIES = "Utilities"
PROFESSIONAL_SERVICES = "Professional Services"
TRAVEL_ENTERTAINMENT = "Travel & Entertainment"
EQUIPMENT_HARDWARE = "Equipment & Hardware"
MAINTENANCE_REPAIRS = "Maintenance & Repairs"
OTHER = "Other"

CATEGORIES: tuple[str, ...] = (
    MARKETING_ADVERTISING,
    IT_SERVICES_SOFTWARE,
    OFFICE_SUPPLIES,
    UTILITIES,
    PROFESSIONAL_SERVICES,
    TRAVEL_ENTERTAINMENT,
    EQUIPMENT_HARDWARE,
    MAINTENANCE_REPAIRS,
    OTHER,
)

Category = Literal[
    "Marketing & Advertising",
    "IT Services & Software",
    "Office Supplies",
    "Utilities",
    "Professional Services",
    "Travel & Entertainment",
    "Equipment & Hardware",
    "Maintenance & Repairs",
    "Other",
]

ProcessingStatus = Literal["pending", "processing", "completed", "failed"]


class LineItem(CamelModel):
    description: str = ""
    quantity: float | None = None
    unit_price: float | None = None
    amount: float = 0.0


class ExtractedData(CamelModel):
    vendor: str = ""
    invoice_number: str = ""
    invoice_date: str = ""
    total_amount: float = Field(default=0.0, ge=0.0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    line_items: list[LineItem] | None = None


class Classification(CamelModel):
    category: Category = OTHER
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reasoning: str | None = None


class ProcessingMetadata(CamelModel):
    processing_time: float = Field(default=0.0, ge=0.0)
    document_confidence: float = 0.0
    status: ProcessingStatus = "pending"
    error_message: str | None = None
    start_time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None


class InvoiceRecord(CamelModel):
    """Persisted aggregate for one uploaded invoice (immutable once built)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    vendor_id: str
    file_name: str
    blob_url: str
    upload_date: datetime = Field(default_factory=lambda: datetime.now(UTC))
    extracted_data: ExtractedData
    classification: Classification
    processing_metadata: ProcessingMetadata

    def to_document(self) -> dict:
        """JSON-ready camelCase dictionary for record stores and API responses"""
        return self.model_dump(mode="json", by_alias=True)
