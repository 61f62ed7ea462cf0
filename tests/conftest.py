import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.core.errors import StoreError
from app.main import app
from app.services.db_service import get_store
from app.services.query_builder import BookingQuery, DateRange, Equals, TextSearch


def _lookup(record: Dict[str, Any], field: str):
    value = record
    for part in field.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(record: Dict[str, Any], clause) -> bool:
    if isinstance(clause, Equals):
        return _lookup(record, clause.field) == clause.value
    if isinstance(clause, DateRange):
        value = _lookup(record, clause.field)
        if value is None:
            return False
        if clause.gte is not None and value < clause.gte:
            return False
        if clause.lte is not None and value > clause.lte:
            return False
        return True
    if isinstance(clause, TextSearch):
        term = clause.term.lower()
        return any(term in str(_lookup(record, name) or "").lower() for name in clause.fields)
    raise TypeError(clause)


class FakeBookingStore:
    """In-memory stand-in for DBService that evaluates BookingQuery in Python."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.healthy = True

    async def insert(self, document):
        self.calls.append("insert")
        now = datetime.now(timezone.utc)
        record = {**document, "id": str(uuid.uuid4()), "createdAt": now, "updatedAt": now}
        self.records[record["id"]] = record
        return dict(record)

    async def get(self, booking_id) -> Optional[Dict[str, Any]]:
        self.calls.append("get")
        record = self.records.get(booking_id)
        return dict(record) if record else None

    def _select(self, query: BookingQuery):
        return [r for r in self.records.values() if all(_matches(r, c) for c in query.filters)]

    async def find(self, query: BookingQuery):
        self.calls.append("find")
        rows = self._select(query)
        # Stable sort, least significant key first; missing values are the smallest
        for sort_field in reversed(query.sort):
            rows.sort(key=lambda r: (_lookup(r, sort_field.field) is not None, _lookup(r, sort_field.field)), reverse=sort_field.descending)
        rows = rows[query.offset:]
        if query.limit is not None:
            rows = rows[:query.limit]
        return [dict(r) for r in rows]

    async def count(self, query: BookingQuery) -> int:
        self.calls.append("count")
        return len(self._select(query))

    async def update(self, booking_id, changes):
        self.calls.append("update")
        record = self.records.get(booking_id)
        if record is None:
            return None
        record.update(changes)
        record["updatedAt"] = datetime.now(timezone.utc)
        return dict(record)

    async def delete(self, booking_id) -> bool:
        self.calls.append("delete")
        return self.records.pop(booking_id, None) is not None

    async def ping(self):
        self.calls.append("ping")
        if not self.healthy:
            raise StoreError("Database connection failed")


@pytest.fixture
def store():
    return FakeBookingStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
