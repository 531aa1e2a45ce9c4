from typing import List, Optional
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from bus_booking.bookings.ledger import BookingLedger, generate_ticket_id
from bus_booking.bookings.schemas import (
    BookSeatsRequest, BookingStatus, PaymentStatus, CancellationResult
)
from bus_booking.validation import (
    validate_passengers, validate_contact, validate_payment, parse_date
)
from bus_booking.buses.inventory import InventoryStore
from bus_booking.config import settings
from bus_booking.exceptions import (
    BookingSystemError, NotFound, AlreadyCancelled, InternalError
)
from bus_booking.models import Booking, BookingSeat, User

CENT = Decimal("0.01")

def calculate_refund(total_amount: Decimal, rate: Optional[Decimal] = None) -> Decimal:
    """Flat cancellation penalty: refund a fixed share of the fare"""
    rate = settings.CANCELLATION_REFUND_RATE if rate is None else rate
    return (Decimal(total_amount) * rate).quantize(CENT, rounding=ROUND_HALF_UP)

class BookingService:
    """Seat allocation engine: reserves and releases seats together with the booking ledger.
    
    Reservation runs as one transaction in this order: decrement the counter
    under the bus row lock, claim seats with conditional updates, insert the
    booking, commit.
    Any failure rolls the whole unit back, so a booking never exists without
    its seat holds and holds never outlive a failed booking insert.
    """
    
    def __init__(self, db: Session, dispatcher=None):
        self.db = db
        self.inventory = InventoryStore(db)
        self.ledger = BookingLedger(db)
        self.dispatcher = dispatcher
    
    def reserve(self, user: User, request: BookSeatsRequest) -> Booking:
        """Book the requested seats for ``user`` and schedule the ticket email"""
        
        # Everything client-side is checked before touching inventory
        validate_passengers(request.seats)
        validate_contact(request.passenger_details.mobile)
        validate_payment(request.payment_method.value, request.upi_id)
        
        bus = self.inventory.get_bus(request.bus_id)
        seat_numbers = [seat.seat_number for seat in request.seats]
        self.inventory.check_available(bus, seat_numbers)
        
        # Prefer the date the client picked; recurring buses have no date of their own
        if request.journey_date:
            journey_date = parse_date(request.journey_date, field="journey_date")
        else:
            journey_date = bus.departure_date
        
        total_amount = Decimal(bus.price) * len(seat_numbers)
        booking = Booking(
            ticket_id=generate_ticket_id(),
            user_id=user.id,
            bus_id=bus.id,
            total_amount=total_amount,
            refund_amount=Decimal("0"),
            booking_date=datetime.now(timezone.utc),
            status=BookingStatus.CONFIRMED.value,
            is_cancelled=False,
            contact_mobile=request.passenger_details.mobile.replace(" ", ""),
            contact_email=request.passenger_details.email,
            payment_method=request.payment_method.value,
            payment_status=PaymentStatus.COMPLETED.value,
            upi_id=request.upi_id if request.payment_method.value == "upi" else None,
            journey_date=journey_date,
            journey_date_iso=journey_date.isoformat() if journey_date else None,
            departure_time_snapshot=bus.departure_time,
            arrival_time_snapshot=bus.arrival_time,
            seats=[
                BookingSeat(
                    position=position,
                    seat_number=seat.seat_number,
                    passenger_name=seat.passenger_name.strip(),
                    passenger_age=int(seat.passenger_age),
                    passenger_gender=seat.passenger_gender.strip()
                )
                for position, seat in enumerate(request.seats)
            ]
        )
        
        try:
            self.inventory.claim_seats(bus.id, seat_numbers, user.id)
            self.ledger.add(booking)
            self.db.commit()
        except BookingSystemError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Booking insert rejected for bus {bus.id}: {e.orig}")
            raise InternalError("Ticket id collision, please retry")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.opt(exception=e).error(f"Storage failure while booking bus {bus.id}")
            raise InternalError("Booking could not be stored")
        
        self.db.refresh(booking)
        logger.info(
            f"Booked {booking.ticket_id}: user={user.id} bus={bus.id} "
            f"seats={seat_numbers} total={booking.total_amount}"
        )
        
        if self.dispatcher is not None:
            try:
                self.dispatcher.notify(booking, booking.bus, user)
            except Exception as e:
                # The booking is already committed; notification trouble is only logged
                logger.opt(exception=e).error(f"Notification dispatch failed for {booking.ticket_id}")

        return booking
    
    def cancel(self, ticket_id: str, user: User) -> CancellationResult:
        """Cancel the user's booking, release its seats and refund the fixed share"""
        booking = self.ledger.get_by_ticket(ticket_id, user_id=user.id)
        if not booking:
            raise NotFound("Booking not found", ticket_id=ticket_id)
        if booking.is_cancelled:
            raise AlreadyCancelled(ticket_id)
        
        refund_amount = calculate_refund(booking.total_amount)
        cancelled_at = datetime.now(timezone.utc)
        seat_numbers = [seat.seat_number for seat in booking.seats]
        bus_id = booking.bus_id
        
        try:
            # Guarded update: of two racing cancellations only one flips the row
            if not self.ledger.mark_cancelled(ticket_id, user.id, refund_amount, cancelled_at):
                raise AlreadyCancelled(ticket_id)
            
            released = self.inventory.release_seats(bus_id, seat_numbers, user_id=user.id)
            self.db.commit()
        except BookingSystemError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.opt(exception=e).error(f"Storage failure while cancelling {ticket_id}")
            raise InternalError("Cancellation could not be stored")
        
        if released != len(seat_numbers):
            logger.warning(
                f"Cancelled {ticket_id} released {released} of {len(seat_numbers)} seats on bus {bus_id}"
            )
        logger.info(f"Cancelled {ticket_id}: refund={refund_amount}")
        
        return CancellationResult(
            message="Ticket cancelled successfully",
            ticket_id=ticket_id,
            refund_amount=refund_amount,
            cancellation_date=cancelled_at
        )
    
    def get_user_bookings(self, user: User) -> List[Booking]:
        return self.ledger.list_for_user(user.id)
    
    def get_ticket(self, ticket_id: str, user: User) -> Booking:
        booking = self.ledger.get_by_ticket(ticket_id, user_id=user.id)
        if not booking:
            raise NotFound("Ticket not found", ticket_id=ticket_id)
        return booking
