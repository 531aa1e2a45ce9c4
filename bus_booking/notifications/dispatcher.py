from concurrent.futures import ThreadPoolExecutor

from loguru import logger

from bus_booking.bookings.schemas import TicketView
from bus_booking.bookings.ticket_service import TicketService
from bus_booking.config import settings
from bus_booking.exceptions import InternalError
from bus_booking.notifications.mailer import EmailSender

class NotificationDispatcher:
    """Best-effort side channel for confirmed bookings.
    
    ``notify`` copies what it needs out of the ORM objects on the caller's
    thread, hands the copy to a worker pool and returns at once. The caller
    gets no handle on the job: its outcome is only logged, it cannot be
    cancelled with the request, and it has no way to touch the booking.
    """
    
    def __init__(self, sender: EmailSender = None, renderer: TicketService = None, max_workers: int = None):
        self.sender = sender or EmailSender()
        self.renderer = renderer or TicketService()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.NOTIFICATION_WORKERS,
            thread_name_prefix="notify"
        )
    
    def notify(self, booking, bus, user) -> None:
        try:
            ticket = TicketView.from_records(booking, bus, user)
            self._executor.submit(self._deliver, ticket)
        except Exception as e:
            logger.opt(exception=e).error(f"Could not schedule notification for {booking.ticket_id}")
    
    def _deliver(self, ticket: TicketView) -> None:
        try:
            self.sender.send_ticket(ticket)
        except Exception as e:
            logger.opt(exception=e).error(f"Error sending ticket email for {ticket.ticket_id}")
    
    def render_ticket_document(self, booking, bus, user) -> bytes:
        """PDF bytes for a booking; failures surface as InternalError and change nothing"""
        try:
            return self.renderer.render_pdf(TicketView.from_records(booking, bus, user))
        except Exception as e:
            logger.opt(exception=e).error(f"Ticket rendering failed for {booking.ticket_id}")
            raise InternalError("Could not generate ticket", ticket_id=booking.ticket_id)
    
    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

_dispatcher = None

def get_dispatcher() -> NotificationDispatcher:
    """Process-wide dispatcher, created on first use"""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher

def shutdown_dispatcher() -> None:
    global _dispatcher
    if _dispatcher is not None:
        _dispatcher.shutdown()
        _dispatcher = None
