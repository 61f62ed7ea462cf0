import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import create_async_client, AsyncClient

from app.core.config import settings
from app.core.errors import StoreError
from app.core.logger import logger
from app.services.query_builder import BookingQuery, DateRange, Equals, SortField, TextSearch

# PostgREST rejects values of the wrong type with these SQLSTATE codes
_CAST_ERROR_CODES = {"22P02", "22007", "22008", "22003", "23502", "23514"}


def column(field: str) -> str:
    """'carDetails.type' -> 'carDetails->>type' (JSON text accessor)."""
    if "." in field:
        root, key = field.split(".", 1)
        return f"{root}->>{key}"
    return field


def _quote(value: str) -> str:
    # PostgREST logic-tree value quoting
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def ilike_pattern(term: str) -> str:
    """Substring pattern with LIKE metacharacters taken literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def or_filter(clause: TextSearch) -> str:
    return ",".join(f"{column(name)}.ilike.{_quote(ilike_pattern(clause.term))}" for name in clause.fields)


def order_term(sort_field: SortField) -> str:
    """'-price' -> 'price.desc.nullslast', 'price' -> 'price.asc.nullsfirst'."""
    if sort_field.descending:
        return f"{column(sort_field.field)}.desc.nullslast"
    return f"{column(sort_field.field)}.asc.nullsfirst"


def _to_json(document: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value.isoformat() if isinstance(value, datetime) else value for key, value in document.items()}


def apply_query(request, query: BookingQuery, window: bool = True):
    """Applies filter clauses, then sort and range when `window` is set."""
    for clause in query.filters:
        if isinstance(clause, Equals):
            request = request.eq(column(clause.field), clause.value)
        elif isinstance(clause, DateRange):
            if clause.gte is not None:
                request = request.gte(column(clause.field), clause.gte.isoformat())
            if clause.lte is not None:
                request = request.lte(column(clause.field), clause.lte.isoformat())
        elif isinstance(clause, TextSearch):
            request = request.or_(or_filter(clause))
        else:
            raise TypeError(f"Unsupported clause: {clause!r}")

    if not window:
        return request

    if query.sort:
        # One order parameter; missing values sort as the smallest
        request = request.order(",".join(order_term(sort_field) for sort_field in query.sort))
    if query.limit is not None:
        request = request.range(query.offset, query.offset + query.limit - 1)
    return request


class DBService:
    _instance = None
    _client: AsyncClient = None
    _lock: asyncio.Lock = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(DBService, cls).__new__(cls)
            # Client is async, so it is created on first use rather than here
        return cls._instance

    @property
    def table_name(self) -> str:
        return settings.BOOKINGS_TABLE

    async def get_client(self) -> AsyncClient:
        if self._client:
            return self._client

        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            logger.warning("⚠️ Supabase credentials missing")
            raise StoreError("Database is not configured")

        if DBService._lock is None:
            DBService._lock = asyncio.Lock()
        async with DBService._lock:
            if not self._client:
                try:
                    DBService._client = await create_async_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
                    logger.info("✅ Supabase Async client initialized")
                except Exception as e:
                    logger.error(f"❌ Failed to initialize Supabase Async: {e}")
                    raise StoreError("Database connection failed") from e
        return self._client

    async def close(self):
        """Drops the shared client; the next call reconnects."""
        DBService._client = None
        DBService._lock = None
        logger.info("🔌 Supabase client released")

    async def _table(self):
        client = await self.get_client()
        return client.table(self.table_name)

    async def _execute(self, request, action: str, write: bool = False):
        try:
            return await request.execute()
        except APIError as e:
            logger.error(f"❌ DB Error ({action}): {e.message}")
            if write and e.code in _CAST_ERROR_CODES:
                raise StoreError(e.message or "Invalid value", status_code=400) from e
            raise StoreError(e.message or "Database error", status_code=400 if write else 500) from e
        except httpx.HTTPError as e:
            logger.error(f"❌ DB connection error ({action}): {e}")
            raise StoreError("Database connection failed") from e

    async def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        table = await self._table()
        response = await self._execute(table.insert(_to_json(document)), "insert", write=True)
        if not response.data:
            raise StoreError("Insert returned no row", status_code=400)
        record = response.data[0]
        logger.info(f"🆕 Booking created: {record.get('id')}")
        return record

    async def get(self, booking_id: str) -> Optional[Dict[str, Any]]:
        table = await self._table()
        response = await self._execute(table.select("*").eq("id", booking_id).limit(1), "get")
        return response.data[0] if response.data else None

    async def find(self, query: BookingQuery) -> List[Dict[str, Any]]:
        table = await self._table()
        response = await self._execute(apply_query(table.select("*"), query), "find")
        return response.data or []

    async def count(self, query: BookingQuery) -> int:
        table = await self._table()
        request = apply_query(table.select("id", count="exact", head=True), query, window=False)
        response = await self._execute(request, "count")
        return response.count or 0

    async def update(self, booking_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        table = await self._table()
        changes = {**changes, "updatedAt": datetime.now(timezone.utc)}
        response = await self._execute(table.update(_to_json(changes)).eq("id", booking_id), "update", write=True)
        if not response.data:
            return None
        logger.info(f"✏️ Booking {booking_id} updated ({', '.join(sorted(changes))})")
        return response.data[0]

    async def delete(self, booking_id: str) -> bool:
        table = await self._table()
        response = await self._execute(table.delete().eq("id", booking_id), "delete")
        if response.data:
            logger.info(f"🗑️ Booking {booking_id} deleted from DB.")
            return True
        return False

    async def ping(self) -> None:
        """Round-trip to the store without reading booking rows."""
        table = await self._table()
        await self._execute(table.select("id").limit(0), "ping")


db_service = DBService()


def get_store() -> DBService:
    return db_service
