"""
Seat booking and ticketing.

- ledger.py: booking records, ticket ids and the guarded cancellation update
- booking_service.py: seat allocation engine (reserve / cancel / refund)
- ticket_service.py: PDF tickets with an embedded QR code
- router.py: FastAPI endpoints for booking, listing, cancelling and downloading

Seat holds live on the bus (see bus_booking.buses.inventory); each booking
keeps its own copy of seats, passengers and the journey date/time so later
edits to the bus never change an issued ticket.
"""

from .booking_service import BookingService, calculate_refund
from .ledger import BookingLedger, generate_ticket_id
from .ticket_service import TicketService
from .schemas import (
    BookSeatsRequest, SeatRequest, PassengerDetails, PaymentMethod,
    BookingStatus, PaymentStatus, Booking, BookingConfirmation,
    CancelTicketRequest, CancellationResult, TicketView
)

__all__ = [
    "BookingService",
    "calculate_refund",
    "BookingLedger",
    "generate_ticket_id",
    "TicketService",
    "BookSeatsRequest",
    "SeatRequest",
    "PassengerDetails",
    "PaymentMethod",
    "BookingStatus",
    "PaymentStatus",
    "Booking",
    "BookingConfirmation",
    "CancelTicketRequest",
    "CancellationResult",
    "TicketView"
]
