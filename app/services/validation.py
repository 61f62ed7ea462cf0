import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

import pydantic

from app.core.errors import ValidationError, errors_to_details
from app.core.logger import logger
from app.models.booking import DEFAULT_STATUS, BookingCreate, BookingUpdate, CarDetails

NUMERIC_FIELDS = ("duration", "price")


def parse_number(value: Any) -> Optional[Union[int, float]]:
    """
    Coerces form input to a non-negative finite number.
    Returns None when the value cannot be used.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parses ISO-8601 text ('2024-05-20', '2024-05-20T14:00', '...Z').
    Values without an offset are treated as UTC. Returns None when unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _validate_schema(payload: Any, partial: bool) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError(details={"payload": "Expected a JSON object"})

    schema = BookingUpdate if partial else BookingCreate
    try:
        parsed = schema.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(details=errors_to_details(e.errors()))

    # Only the keys the client actually sent
    return parsed.model_dump(exclude_unset=True)


def normalize_booking(payload: Any, partial: bool = False) -> Dict[str, Any]:
    """
    Validates a raw booking payload and returns the document to persist.

    Schema failures raise ValidationError and nothing is written. Numeric and
    date fields that do not coerce are dropped from the document instead.
    With partial=True only the supplied fields are returned.
    """
    data = _validate_schema(payload, partial)
    car_type = data.pop("carType", None)

    # Plain-text car description -> {make, type}
    raw_car = payload.get("carDetails")
    if isinstance(raw_car, str):
        data["carDetails"] = {"make": raw_car}
        if car_type is not None:
            data["carDetails"]["type"] = car_type
    elif isinstance(raw_car, dict):
        # Unknown keys verbatim, recognised keys as validated
        recognised = {key: value for key, value in data["carDetails"].items() if key in CarDetails.model_fields}
        data["carDetails"] = {**raw_car, **recognised}

    for field in NUMERIC_FIELDS:
        if field in data:
            number = parse_number(data[field])
            if number is None:
                logger.info(f"🧹 Dropping unusable {field}: {data[field]!r}")
                del data[field]
            else:
                data[field] = number

    if "date" in data:
        parsed = parse_datetime(data["date"])
        if parsed is None:
            logger.info(f"🧹 Dropping unusable date: {data['date']!r}")
            del data["date"]
        else:
            data["date"] = parsed

    if partial:
        if "status" in data and not data["status"]:
            data["status"] = DEFAULT_STATUS
    else:
        if not data.get("status"):
            data["status"] = DEFAULT_STATUS
        # Explicit nulls mean "not given" on create
        data = {key: value for key, value in data.items() if value is not None}

    return data
