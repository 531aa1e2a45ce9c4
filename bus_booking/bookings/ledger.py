import secrets
import time
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from bus_booking.bookings.schemas import BookingStatus, PaymentStatus
from bus_booking.models import Booking

def generate_ticket_id() -> str:
    """Millisecond timestamp plus random suffix; the unique index on ticket_id is the real guarantee"""
    return f"TICKET{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"

class BookingLedger:
    """Append-only store of bookings; the only mutation is cancellation"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def add(self, booking: Booking) -> Booking:
        """Stage a booking; flushing surfaces a duplicate ticket_id immediately"""
        self.db.add(booking)
        self.db.flush()
        return booking
    
    def get_by_ticket(self, ticket_id: str, user_id: Optional[int] = None) -> Optional[Booking]:
        query = self.db.query(Booking).options(
            selectinload(Booking.seats),
            selectinload(Booking.bus),
            selectinload(Booking.user)
        ).filter(Booking.ticket_id == ticket_id)
        if user_id is not None:
            query = query.filter(Booking.user_id == user_id)
        return query.first()
    
    def list_for_user(self, user_id: int) -> List[Booking]:
        """All bookings of a user, newest first"""
        return self.db.query(Booking).options(
            selectinload(Booking.seats),
            selectinload(Booking.bus)
        ).filter(
            Booking.user_id == user_id
        ).order_by(Booking.booking_date.desc(), Booking.id.desc()).all()
    
    def mark_cancelled(
        self,
        ticket_id: str,
        user_id: int,
        refund_amount: Decimal,
        cancelled_at: datetime
    ) -> bool:
        """Flip a confirmed booking to cancelled; False if it was already cancelled"""
        result = self.db.execute(
            update(Booking)
            .where(
                Booking.ticket_id == ticket_id,
                Booking.user_id == user_id,
                Booking.is_cancelled.is_(False)
            )
            .values(
                is_cancelled=True,
                status=BookingStatus.CANCELLED.value,
                payment_status=PaymentStatus.REFUNDED.value,
                refund_amount=refund_amount,
                cancellation_date=cancelled_at
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
