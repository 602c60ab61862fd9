"""
Azure Service Bus event publishing for processed invoices.

Lets downstream systems react once an invoice record is stored:
- Accounting systems can ingest categorized spend
- Analytics systems can track category and vendor trends
- Audit systems can keep a trail of every processed upload
"""

import json
from datetime import datetime, UTC
from typing import Optional
from dataclasses import dataclass, asdict
from loguru import logger
from ...core.config import settings
from ...models.invoice import InvoiceRecord


@dataclass
class InvoiceProcessedEvent:
    """
    Event published after an invoice record has been persisted.

    Carries the identifiers needed to fetch the full record
    (invoice_id + vendor_id) plus a summary of the result.
    """

    invoice_id: str
    vendor_id: str
    vendor: str
    invoice_number: str
    total: float
    currency: str
    category: str
    confidence: float
    event_type: str = "InvoiceProcessed"
    timestamp: Optional[str] = None

    def __post_init__(self):
        """Set timestamp if not provided"""
        if self.timestamp is None:
            self.timestamp = datetime.now(UTC).isoformat()

    @classmethod
    def from_record(cls, record: InvoiceRecord) -> "InvoiceProcessedEvent":
        return cls(
            invoice_id=record.id,
            vendor_id=record.vendor_id,
            vendor=record.extracted_data.vendor,
            invoice_number=record.extracted_data.invoice_number,
            total=record.extracted_data.total_amount,
            currency=record.extracted_data.currency,
            category=record.classification.category,
            confidence=record.classification.confidence,
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class EventPublisher:
    """
    Publishes events to Azure Service Bus (Queue or Topic).

    Usage:
        from azure.servicebus import ServiceBusClient
        client = ServiceBusClient.from_connection_string(conn_str)
        sender = client.get_queue_sender(queue_name="invoice-events")
        publisher = EventPublisher(service_bus_sender=sender)

        # Disabled mode (no Service Bus configured)
        publisher = EventPublisher(service_bus_sender=None)
    """

    def __init__(
        self,
        service_bus_sender: Optional[object] = None,
        entity_name: str = "invoice-events"
    ):
        """
        Args:
            service_bus_sender: Azure Service Bus sender (ServiceBusSender) or None to disable
            entity_name: Service Bus queue or topic name (default: invoice-events)
        """
        self.service_bus_sender = service_bus_sender
        self.entity_name = entity_name

    @property
    def enabled(self) -> bool:
        return self.service_bus_sender is not None

    def publish_invoice_processed(self, event: InvoiceProcessedEvent) -> None:
        """
        Publish an invoice processed event to Service Bus.

        No-op when no sender is configured.
        """
        if self.service_bus_sender is None:
            return

        from azure.servicebus import ServiceBusMessage

        message = ServiceBusMessage(event.to_json(), content_type="application/json", subject=event.event_type)
        self.service_bus_sender.send_messages(message)
        logger.info("Published InvoiceProcessed event", invoice_id=event.invoice_id, entity=self.entity_name)


_default_publisher: EventPublisher | None = None


def get_event_publisher() -> EventPublisher:
    """
    Get the default event publisher instance.

    Returns:
        EventPublisher instance (disabled if Service Bus is not configured)
    """
    global _default_publisher
    if _default_publisher is None:
        sender = None
        if settings.service_bus_connection_string:
            from azure.servicebus import ServiceBusClient
            client = ServiceBusClient.from_connection_string(settings.service_bus_connection_string)
            sender = client.get_queue_sender(queue_name=settings.service_bus_entity)
        _default_publisher = EventPublisher(service_bus_sender=sender, entity_name=settings.service_bus_entity)
    return _default_publisher
