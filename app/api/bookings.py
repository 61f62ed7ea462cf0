from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from app.models.booking import BookingList, BookingSearchResult, DeleteAck
from app.services.booking_service import BookingService
from app.services.db_service import DBService, get_store
from app.services.query_builder import BookingFilters

router = APIRouter()


def get_booking_service(store: DBService = Depends(get_store)) -> BookingService:
    return BookingService(store)


@router.post("/bookings", status_code=201)
async def create_booking(
    payload: Any = Body(None),
    service: BookingService = Depends(get_booking_service),
):
    return await service.create_booking(payload)


@router.get("/bookings", response_model=BookingList)
async def list_bookings(
    page: Optional[str] = None,
    page_size: Optional[str] = Query(None, alias="pageSize"),
    q: Optional[str] = None,
    serviceType: Optional[str] = None,
    carType: Optional[str] = None,
    status: Optional[str] = None,
    dateFrom: Optional[str] = None,
    dateTo: Optional[str] = None,
    sort: Optional[List[str]] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    filters = BookingFilters(
        q=q,
        serviceType=serviceType,
        carType=carType,
        status=status,
        dateFrom=dateFrom,
        dateTo=dateTo,
        sort=sort or [],
    )
    return await service.list_bookings(filters, page, page_size)


# Must stay above /bookings/{booking_id}
@router.get("/bookings/search", response_model=BookingSearchResult)
async def search_bookings(
    q: Optional[str] = None,
    service: BookingService = Depends(get_booking_service),
):
    return await service.search_bookings(q)


@router.get("/bookings/{booking_id}")
async def get_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    return await service.get_booking(booking_id)


@router.put("/bookings/{booking_id}")
async def update_booking(
    booking_id: str,
    payload: Any = Body(None),
    service: BookingService = Depends(get_booking_service),
):
    return await service.update_booking(booking_id, payload)


@router.delete("/bookings/{booking_id}", response_model=DeleteAck)
async def delete_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    return await service.delete_booking(booking_id)
