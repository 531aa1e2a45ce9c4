import re
from datetime import date, datetime
from typing import Iterable, Optional

from bus_booking.exceptions import ValidationError

MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")
UPI_PATTERN = re.compile(r"^[a-zA-Z0-9.\-_]{2,256}@[a-zA-Z]{2,64}$")

MIN_PASSENGER_AGE = 1
MAX_PASSENGER_AGE = 120

# Payment methods that carry a UPI identifier
UPI_METHODS = {"upi"}


def is_valid_mobile(mobile) -> bool:
    """Indian mobile number: 10 digits starting with 6-9, whitespace ignored"""
    if mobile is None:
        return False
    return bool(MOBILE_PATTERN.match(re.sub(r"\s+", "", str(mobile))))


def is_valid_upi(upi_id) -> bool:
    """UPI id format: localpart@provider, e.g. name@paytm"""
    return upi_id is not None and bool(UPI_PATTERN.match(str(upi_id)))


def is_valid_age(age) -> bool:
    try:
        age = int(age)
    except (TypeError, ValueError):
        return False
    return MIN_PASSENGER_AGE <= age <= MAX_PASSENGER_AGE


def validate_contact(mobile) -> None:
    """Contact email is already checked by the request schema; only the mobile is left"""
    if not is_valid_mobile(mobile):
        raise ValidationError(
            "Invalid contact mobile number. Must be 10 digits starting with 6-9",
            field="mobile"
        )


def validate_passengers(seats: Iterable) -> None:
    """Check every requested seat carries complete passenger details"""
    seats = list(seats)
    if not seats:
        raise ValidationError("At least one seat must be requested", field="seats")
    
    seen = set()
    for seat in seats:
        if not seat.seat_number or not seat.seat_number.strip():
            raise ValidationError("Seat number is required", field="seats")
        if seat.seat_number in seen:
            raise ValidationError(f"Seat {seat.seat_number} requested more than once", field="seats")
        seen.add(seat.seat_number)
        
        if not seat.passenger_name or not seat.passenger_name.strip():
            raise ValidationError(
                f"Passenger name is required for seat {seat.seat_number}", field="passenger_name"
            )
        if not is_valid_age(seat.passenger_age):
            raise ValidationError(
                f"Valid age (1-120) is required for seat {seat.seat_number}", field="passenger_age"
            )
        if not seat.passenger_gender or not seat.passenger_gender.strip():
            raise ValidationError(
                f"Gender is required for seat {seat.seat_number}", field="passenger_gender"
            )


def validate_payment(payment_method: str, upi_id: Optional[str]) -> None:
    if payment_method in UPI_METHODS and not is_valid_upi(upi_id):
        raise ValidationError(
            "Invalid UPI ID format. Use: name@provider (e.g., name@paytm, name@phonepe)",
            field="upi_id"
        )


def parse_date(value, field: str = "date") -> date:
    """Accept a date, datetime, YYYY-MM-DD or ISO-8601 string and return the calendar day"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError("Date is required", field=field)
    
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD or ISO date.", field=field)
