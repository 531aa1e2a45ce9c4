from .dispatcher import NotificationDispatcher, get_dispatcher, shutdown_dispatcher
from .mailer import EmailSender, build_ticket_email

__all__ = [
    "NotificationDispatcher",
    "get_dispatcher",
    "shutdown_dispatcher",
    "EmailSender",
    "build_ticket_email"
]
