import asyncio
import uuid
from typing import Any, Dict

from app.core.errors import MalformedIdError, NotFoundError, StoreError
from app.core.logger import logger
from app.services.db_service import DBService, db_service
from app.services.query_builder import (
    BookingFilters,
    build_list_query,
    build_search_query,
    parse_pagination,
)
from app.services.validation import normalize_booking


def check_booking_id(booking_id: str) -> str:
    """Booking ids are UUIDs; anything else never reaches the store."""
    try:
        return str(uuid.UUID(str(booking_id)))
    except ValueError:
        raise MalformedIdError(f"Malformed booking id: {booking_id}")


class BookingService:
    def __init__(self, store: DBService = None):
        self.store = store or db_service

    async def create_booking(self, payload: Any) -> Dict[str, Any]:
        document = normalize_booking(payload)
        logger.info(f"📥 Create booking for: {document['customerName']}")
        return await self.store.insert(document)

    async def list_bookings(self, filters: BookingFilters, page=None, page_size=None) -> Dict[str, Any]:
        page, page_size = parse_pagination(page, page_size)
        page_query, count_query = build_list_query(filters, page, page_size)

        # Page and total are separate reads and may see different snapshots
        items, total = await asyncio.gather(
            self.store.find(page_query),
            self.store.count(count_query),
        )
        return {"items": items, "total": total, "page": page, "pageSize": page_size}

    async def search_bookings(self, q: str = None) -> Dict[str, Any]:
        query = build_search_query(q)
        if query is None:
            return {"items": []}
        try:
            items = await self.store.find(query)
        except StoreError as e:
            raise StoreError(e.message, status_code=400) from e
        return {"items": items}

    async def get_booking(self, booking_id: str) -> Dict[str, Any]:
        booking_id = check_booking_id(booking_id)
        booking = await self.store.get(booking_id)
        if not booking:
            raise NotFoundError()
        return booking

    async def update_booking(self, booking_id: str, payload: Any) -> Dict[str, Any]:
        booking_id = check_booking_id(booking_id)
        changes = normalize_booking(payload, partial=True)
        if not changes:
            # Nothing applicable after sanitizing; report the record as it stands
            return await self.get_booking(booking_id)

        booking = await self.store.update(booking_id, changes)
        if not booking:
            raise NotFoundError()
        return booking

    async def delete_booking(self, booking_id: str) -> Dict[str, Any]:
        booking_id = check_booking_id(booking_id)
        if not await self.store.delete(booking_id):
            raise NotFoundError()
        return {"ok": True}

    async def check_store(self) -> None:
        await self.store.ping()
