import pytest
from datetime import datetime, timedelta, UTC
from src.core.errors import NotFoundError, UpstreamServiceError
from tests.conftest import make_record


def test_put_and_get(record_store):
    record = make_record()
    record_store.put(record, record.vendor_id)
    assert record_store.get(record.id, "acme-corp") is record


def test_get_requires_matching_partition(record_store):
    record = make_record()
    record_store.put(record, record.vendor_id)
    with pytest.raises(NotFoundError):
        record_store.get(record.id, "other")


def test_ids_are_never_overwritten(record_store):
    record = make_record()
    record_store.put(record, record.vendor_id)
    with pytest.raises(UpstreamServiceError):
        record_store.put(record, record.vendor_id)


def test_query_all_newest_first(record_store):
    now = datetime.now(UTC)
    older = make_record(uploaded=now - timedelta(minutes=5))
    newer = make_record(uploaded=now)
    record_store.put(older, older.vendor_id)
    record_store.put(newer, newer.vendor_id)

    assert [r.id for r in record_store.query_all()] == [newer.id, older.id]
