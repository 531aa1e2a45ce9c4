from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

class BookingStatus(str, Enum):
    """Booking status enumeration; confirmed -> cancelled is the only transition"""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"

class PaymentMethod(str, Enum):
    UPI = "upi"
    QR = "qr"

# Request Models
class SeatRequest(BaseModel):
    """One requested seat and the passenger travelling in it"""
    seat_number: str
    passenger_name: str = ""
    passenger_age: Optional[int] = None
    passenger_gender: str = ""

class PassengerDetails(BaseModel):
    """Contact details for the booking"""
    mobile: str = ""
    email: EmailStr

class BookSeatsRequest(BaseModel):
    bus_id: int
    seats: List[SeatRequest]
    passenger_details: PassengerDetails
    payment_method: PaymentMethod
    journey_date: Optional[str] = Field(None, description="Selected travel date; defaults to the bus date")
    upi_id: Optional[str] = None

class CancelTicketRequest(BaseModel):
    ticket_id: str

# Response Models
class BookingSeat(BaseModel):
    seat_number: str
    passenger_name: str
    passenger_age: int
    passenger_gender: str
    
    model_config = ConfigDict(from_attributes=True)

class BookedBus(BaseModel):
    """Bus summary embedded in a booking"""
    id: int
    bus_name: str
    bus_number: str
    from_city: str
    to_city: str
    departure_time: str
    arrival_time: str
    departure_date: Optional[date] = None
    image: Optional[str] = None
    
    model_config = ConfigDict(from_attributes=True)

class Booking(BaseModel):
    ticket_id: str
    user_id: int
    bus_id: int
    bus: Optional[BookedBus] = None
    seats: List[BookingSeat]
    total_amount: Decimal
    refund_amount: Decimal
    booking_date: datetime
    status: BookingStatus
    is_cancelled: bool
    cancellation_date: Optional[datetime] = None
    contact_mobile: str
    contact_email: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    journey_date: Optional[date] = None
    journey_date_iso: Optional[str] = None
    departure_time_snapshot: Optional[str] = None
    arrival_time_snapshot: Optional[str] = None
    
    model_config = ConfigDict(from_attributes=True)

class BookingConfirmation(BaseModel):
    message: str
    ticket_id: str
    booking: Booking

class CancellationResult(BaseModel):
    message: str
    ticket_id: str
    refund_amount: Decimal
    cancellation_date: datetime

# Ticket rendering
class TicketPassenger(BaseModel):
    seat_number: str
    passenger_name: str
    passenger_age: int
    passenger_gender: str

class TicketView(BaseModel):
    """Detached copy of a booking with its bus and user, safe to hand to another thread"""
    ticket_id: str
    booking_date: datetime
    status: str
    payment_status: str
    payment_method: str
    total_amount: Decimal
    refund_amount: Decimal
    is_cancelled: bool
    cancellation_date: Optional[datetime] = None
    journey_date_iso: str = ""
    departure_time: str = ""
    arrival_time: str = ""
    contact_email: str = ""
    contact_mobile: str = ""
    seats: List[TicketPassenger] = []
    bus_name: str
    bus_number: str
    from_city: str
    to_city: str
    user_name: str
    user_email: str
    user_mobile: str = ""
    
    @classmethod
    def from_records(cls, booking, bus, user) -> "TicketView":
        journey_date_iso = booking.journey_date_iso or (
            bus.departure_date.isoformat() if bus.departure_date else ""
        )
        return cls(
            ticket_id=booking.ticket_id,
            booking_date=booking.booking_date,
            status=booking.status,
            payment_status=booking.payment_status,
            payment_method=booking.payment_method,
            total_amount=booking.total_amount,
            refund_amount=booking.refund_amount or Decimal("0"),
            is_cancelled=booking.is_cancelled,
            cancellation_date=booking.cancellation_date,
            journey_date_iso=journey_date_iso,
            departure_time=booking.departure_time_snapshot or bus.departure_time or "",
            arrival_time=booking.arrival_time_snapshot or bus.arrival_time or "",
            contact_email=booking.contact_email or "",
            contact_mobile=booking.contact_mobile or "",
            seats=[
                TicketPassenger(
                    seat_number=seat.seat_number,
                    passenger_name=seat.passenger_name,
                    passenger_age=seat.passenger_age,
                    passenger_gender=seat.passenger_gender
                )
                for seat in booking.seats
            ],
            bus_name=bus.bus_name,
            bus_number=bus.bus_number,
            from_city=bus.from_city,
            to_city=bus.to_city,
            user_name=user.name,
            user_email=user.email,
            user_mobile=user.mobile or ""
        )
