"""
Tests for Service Bus event publishing.

Verifies that processed invoices are announced on Azure Service Bus for
downstream processing, integration with other systems, and audit trails.
"""

import json
import pytest
from unittest.mock import Mock
from src.services.events.event_publisher import EventPublisher, InvoiceProcessedEvent
from tests.conftest import make_record


@pytest.fixture
def mock_service_bus_sender():
    """Create a mock Service Bus sender matching Azure SDK interface"""
    return Mock()


@pytest.fixture
def event_publisher(mock_service_bus_sender):
    """Create EventPublisher with mocked Service Bus sender"""
    return EventPublisher(service_bus_sender=mock_service_bus_sender)


def test_event_from_record():
    record = make_record()
    event = InvoiceProcessedEvent.from_record(record)

    assert event.invoice_id == record.id
    assert event.vendor_id == "acme-corp"
    assert event.vendor == "Acme Corp"
    assert event.total == 500.0
    assert event.currency == "USD"
    assert event.category == "Office Supplies"
    assert event.confidence == 0.9
    assert event.event_type == "InvoiceProcessed"
    assert event.timestamp is not None


def test_event_json_is_flat():
    event = InvoiceProcessedEvent.from_record(make_record())
    payload = json.loads(event.to_json())
    assert payload["invoice_id"] == event.invoice_id
    assert payload["event_type"] == "InvoiceProcessed"


def test_publish_invoice_processed_event(event_publisher, mock_service_bus_sender):
    event = InvoiceProcessedEvent.from_record(make_record(vendor="Test Vendor", vendor_id="test-vendor"))

    event_publisher.publish_invoice_processed(event)

    # Verify Service Bus sender was called with send_messages
    assert mock_service_bus_sender.send_messages.called
    message = mock_service_bus_sender.send_messages.call_args[0][0]
    assert event.invoice_id in str(message)
    assert "Test Vendor" in str(message)
    assert "InvoiceProcessed" in str(message)


def test_publisher_disabled_without_sender():
    publisher = EventPublisher(service_bus_sender=None)

    assert publisher.enabled is False
    # No-op, no error
    publisher.publish_invoice_processed(InvoiceProcessedEvent.from_record(make_record()))


def test_publish_error_propagates(event_publisher, mock_service_bus_sender):
    """The publisher does not swallow errors; the pipeline decides what to do"""
    mock_service_bus_sender.send_messages.side_effect = Exception("Service Bus unavailable")

    with pytest.raises(Exception, match="Service Bus unavailable"):
        event_publisher.publish_invoice_processed(InvoiceProcessedEvent.from_record(make_record()))
