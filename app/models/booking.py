from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, Strict, StrictFloat, StrictInt, StrictStr, field_validator

DEFAULT_STATUS = "Pending"


class CarDetails(BaseModel):
    """Vehicle attributes. Unknown keys are kept as-is."""
    model_config = ConfigDict(extra="allow")

    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[StrictInt] = None
    type: Optional[str] = None


# --- Incoming Request Models ---

class BookingUpdate(BaseModel):
    """Partial payload: every field optional, unknown top-level keys rejected."""
    model_config = ConfigDict(extra="forbid")

    customerName: Optional[str] = Field(default=None, min_length=1)
    carDetails: Optional[Union[CarDetails, str]] = None
    # Only read when carDetails arrives as plain text; never stored
    carType: Optional[str] = None
    serviceType: Optional[str] = None
    date: Optional[Union[Annotated[datetime, Strict()], StrictStr]] = None
    timeSlot: Optional[str] = None
    duration: Optional[Union[StrictInt, StrictFloat, StrictStr]] = None
    price: Optional[Union[StrictInt, StrictFloat, StrictStr]] = None
    status: Optional[str] = None
    rating: Optional[StrictInt] = Field(default=None, ge=1, le=5)
    addOns: Optional[List[str]] = None

    @field_validator("customerName", "carDetails")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class BookingCreate(BookingUpdate):
    customerName: str = Field(..., min_length=1)


# --- Outgoing Response Models ---

class BookingList(BaseModel):
    items: List[Dict[str, Any]]
    total: int
    page: int
    pageSize: int


class BookingSearchResult(BaseModel):
    items: List[Dict[str, Any]]


class DeleteAck(BaseModel):
    ok: bool = True
