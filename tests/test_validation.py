from datetime import datetime, timezone

import pytest

from app.core.errors import ValidationError
from app.services.validation import normalize_booking, parse_datetime, parse_number


def test_status_defaults_to_pending():
    doc = normalize_booking({"customerName": "Ana"})
    assert doc == {"customerName": "Ana", "status": "Pending"}

    doc = normalize_booking({"customerName": "Ana", "status": ""})
    assert doc["status"] == "Pending"

    doc = normalize_booking({"customerName": "Ana", "status": "Confirmed"})
    assert doc["status"] == "Confirmed"


@pytest.mark.parametrize("payload", [
    {"customerName": ""},
    {"serviceType": "Basic Wash"},
    {"customerName": None},
    {"customerName": 42},
])
def test_customer_name_is_required(payload):
    with pytest.raises(ValidationError) as exc_info:
        normalize_booking(payload)
    assert "customerName" in exc_info.value.details


def test_rejects_non_object_payload():
    with pytest.raises(ValidationError) as exc_info:
        normalize_booking(["customerName"])
    assert exc_info.value.details == {"payload": "Expected a JSON object"}


def test_unknown_top_level_keys_are_rejected():
    with pytest.raises(ValidationError) as exc_info:
        normalize_booking({"customerName": "Ana", "discountCode": "X"})
    assert "discountCode" in exc_info.value.details


def test_shape_errors_are_keyed_by_field():
    with pytest.raises(ValidationError) as exc_info:
        normalize_booking({"customerName": "Ana", "addOns": ["Wax", 3], "rating": 9})
    details = exc_info.value.details
    assert "addOns.1" in details
    assert "rating" in details


def test_car_details_keep_unknown_keys():
    doc = normalize_booking({
        "customerName": "Ana",
        "carDetails": {"make": "Toyota", "model": "Corolla", "year": 2020, "color": "red", "plate": "AB-123"},
    })
    assert doc["carDetails"] == {
        "make": "Toyota", "model": "Corolla", "year": 2020, "color": "red", "plate": "AB-123",
    }


def test_car_details_year_must_be_integer():
    with pytest.raises(ValidationError):
        normalize_booking({"customerName": "Ana", "carDetails": {"year": "old"}})


def test_text_car_details_become_make_and_type():
    doc = normalize_booking({"customerName": "Ana", "carDetails": "Honda Civic", "carType": "sedan"})
    assert doc["carDetails"] == {"make": "Honda Civic", "type": "sedan"}
    assert "carType" not in doc

    doc = normalize_booking({"customerName": "Ana", "carDetails": "Honda Civic"})
    assert doc["carDetails"] == {"make": "Honda Civic"}


def test_numeric_text_is_converted():
    doc = normalize_booking({"customerName": "Ana", "price": "49.99", "duration": " 30 "})
    assert doc["price"] == 49.99
    assert doc["duration"] == 30
    assert isinstance(doc["duration"], int)


@pytest.mark.parametrize("bad", ["49.99x", "", "nan", "inf", "-5", -5])
def test_unusable_numbers_are_dropped(bad):
    doc = normalize_booking({"customerName": "Ana", "price": bad, "duration": bad})
    assert "price" not in doc
    assert "duration" not in doc
    assert doc["customerName"] == "Ana"


def test_date_text_is_parsed():
    doc = normalize_booking({"customerName": "Ana", "date": "2024-01-15"})
    assert doc["date"] == datetime(2024, 1, 15, tzinfo=timezone.utc)

    doc = normalize_booking({"customerName": "Ana", "date": "2024-01-15T10:30:00Z"})
    assert doc["date"] == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def test_bad_date_is_dropped():
    doc = normalize_booking({"customerName": "Ana", "date": "next tuesday"})
    assert "date" not in doc


def test_add_ons_keep_order_and_duplicates():
    doc = normalize_booking({"customerName": "Ana", "addOns": ["Wax", "Tire Shine", "Wax"]})
    assert doc["addOns"] == ["Wax", "Tire Shine", "Wax"]


def test_partial_only_returns_supplied_fields():
    doc = normalize_booking({"price": "20"}, partial=True)
    assert doc == {"price": 20}


def test_partial_does_not_default_status():
    assert normalize_booking({}, partial=True) == {}
    assert normalize_booking({"status": ""}, partial=True) == {"status": "Pending"}


def test_partial_drops_unusable_fields():
    assert normalize_booking({"price": "abc", "date": "nope"}, partial=True) == {}


def test_partial_rejects_empty_or_null_name():
    with pytest.raises(ValidationError):
        normalize_booking({"customerName": ""}, partial=True)
    with pytest.raises(ValidationError):
        normalize_booking({"customerName": None}, partial=True)


def test_partial_null_rating_clears_it():
    assert normalize_booking({"rating": None}, partial=True) == {"rating": None}


def test_parse_helpers():
    assert parse_number("1e3") == 1000
    assert parse_number(True) is None
    assert parse_number(12.5) == 12.5
    assert parse_datetime("") is None
    assert parse_datetime("2024-02-30") is None


@pytest.mark.parametrize("field, value", [
    ("price", True),
    ("duration", False),
    ("price", [10]),
    ("date", 1700000000),
    ("rating", 4.0),
    ("rating", "4"),
    ("carDetails", {"year": "2020"}),
    ("carDetails", {"year": 2020.0}),
])
def test_wrongly_typed_values_are_rejected(field, value):
    with pytest.raises(ValidationError) as exc_info:
        normalize_booking({"customerName": "Ana", field: value})
    assert any(key.startswith(field) for key in exc_info.value.details), exc_info.value.details


def test_null_car_details_are_rejected():
    with pytest.raises(ValidationError) as exc_info:
        normalize_booking({"carDetails": None}, partial=True)
    assert "carDetails" in exc_info.value.details
    with pytest.raises(ValidationError):
        normalize_booking({"customerName": "Ana", "carDetails": None})
