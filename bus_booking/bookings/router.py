from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List

from bus_booking.auth.dependencies import get_current_user, get_current_user_from_header_or_query
from bus_booking.bookings.booking_service import BookingService
from bus_booking.bookings.schemas import (
    BookSeatsRequest, Booking, BookingConfirmation, CancelTicketRequest, CancellationResult
)
from bus_booking.database import get_db
from bus_booking.notifications.dispatcher import NotificationDispatcher, get_dispatcher

router = APIRouter()

@router.post("/book-seats", response_model=BookingConfirmation, status_code=status.HTTP_201_CREATED)
def book_seats(
    request: BookSeatsRequest,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Book seats on a bus; the ticket email is sent in the background"""
    booking = BookingService(db, dispatcher=dispatcher).reserve(current_user, request)
    return BookingConfirmation(
        message="Booking successful",
        ticket_id=booking.ticket_id,
        booking=Booking.model_validate(booking)
    )

@router.get("/my-bookings", response_model=List[Booking])
def get_my_bookings(current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """All bookings of the current user, newest first"""
    return BookingService(db).get_user_bookings(current_user)

@router.post("/cancel-ticket", response_model=CancellationResult)
def cancel_ticket(
    request: CancelTicketRequest,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel a ticket with an 80% refund"""
    return BookingService(db).cancel(request.ticket_id, current_user)

@router.get("/download-ticket/{ticket_id}")
def download_ticket(
    ticket_id: str,
    current_user=Depends(get_current_user_from_header_or_query),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Ticket as a PDF attachment"""
    booking = BookingService(db).get_ticket(ticket_id, current_user)
    pdf = dispatcher.render_ticket_document(booking, booking.bus, booking.user)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=ticket-{booking.ticket_id}.pdf"}
    )
