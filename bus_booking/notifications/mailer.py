import smtplib
from datetime import date
from email.message import EmailMessage
from html import escape

from loguru import logger

from bus_booking.bookings.schemas import TicketView
from bus_booking.config import Settings, settings as default_settings

def _journey_date_label(ticket: TicketView) -> str:
    if not ticket.journey_date_iso:
        return "N/A"
    return date.fromisoformat(ticket.journey_date_iso).strftime("%A, %d %B %Y")

def build_ticket_email(ticket: TicketView, support_address: str) -> dict:
    """Subject, plain-text and HTML bodies for a booking confirmation"""
    journey_date = _journey_date_label(ticket)
    passenger_rows = "".join(
        f"<tr><td>{escape(seat.seat_number)}</td><td>{escape(seat.passenger_name or '-')}</td>"
        f"<td>{seat.passenger_age}</td><td>{escape(seat.passenger_gender or '-')}</td></tr>"
        for seat in ticket.seats
    )
    
    html = f"""
    <html>
    <body style="font-family: Arial, sans-serif; color: #333;">
        <h1 style="color: #2f855a;">Bus Ticket Confirmed</h1>
        <p>Your booking has been successfully confirmed!</p>
        <h2>Ticket ID: {escape(ticket.ticket_id)}</h2>
        <p><b>Bus Details:</b> {escape(ticket.bus_name)} ({escape(ticket.bus_number)})</p>
        <p><b>Route:</b> {escape(ticket.from_city)} &rarr; {escape(ticket.to_city)}</p>
        <p><b>Journey Date:</b> {escape(journey_date)}</p>
        <p><b>Departure Time:</b> {escape(ticket.departure_time)}</p>
        <p><b>Arrival Time:</b> {escape(ticket.arrival_time)}</p>
        <p><b>Total Amount:</b> &#8377;{ticket.total_amount}</p>
        <p><b>Payment Method:</b> {escape(ticket.payment_method.upper())}</p>
        <h3>Passenger Details</h3>
        <table border="1" cellpadding="6" style="border-collapse: collapse;">
            <thead><tr><th>Seat</th><th>Name</th><th>Age</th><th>Gender</th></tr></thead>
            <tbody>{passenger_rows}</tbody>
        </table>
        <h4>Important Instructions</h4>
        <ul>
            <li>Please arrive at the bus station 30 minutes before departure time</li>
            <li>Carry a valid ID proof for verification</li>
            <li>This ticket is non-transferable</li>
            <li>For cancellations, you can cancel through "My Bookings" section</li>
        </ul>
        <p style="font-size: 12px; color: #666;">
            Thank you for choosing our bus booking service! For support, contact {escape(support_address)}
        </p>
    </body>
    </html>
    """
    
    text = (
        f"Your bus ticket has been confirmed!\n\n"
        f"Ticket ID: {ticket.ticket_id}\n"
        f"Bus: {ticket.bus_name} ({ticket.bus_number})\n"
        f"Route: {ticket.from_city} to {ticket.to_city}\n"
        f"Journey Date: {ticket.journey_date_iso or 'N/A'}\n"
        f"Departure: {ticket.departure_time}\n"
        f"Total Amount: Rs. {ticket.total_amount}\n\n"
        f"Thank you for your booking!"
    )
    
    return {
        "subject": f"Bus Ticket Confirmed - {ticket.ticket_id}",
        "text": text,
        "html": html,
    }

class EmailSender:
    """SMTP delivery of ticket confirmations; a no-op when SMTP is not configured"""
    
    def __init__(self, config: Settings = None):
        self.config = config or default_settings
    
    @property
    def enabled(self) -> bool:
        return self.config.email_enabled
    
    def send_ticket(self, ticket: TicketView) -> bool:
        if not self.enabled:
            logger.info(f"Email not configured, skipping ticket email for {ticket.ticket_id}")
            return False
        
        recipient = ticket.contact_email or ticket.user_email
        content = build_ticket_email(ticket, support_address=self.config.EMAIL_USER or "support@busbooking.com")
        
        msg = EmailMessage()
        msg['Subject'] = content["subject"]
        msg['From'] = f'"{self.config.EMAIL_FROM_NAME}" <{self.config.EMAIL_USER}>'
        msg['To'] = recipient
        msg.set_content(content["text"])
        msg.add_alternative(content["html"], subtype="html")
        
        if self.config.EMAIL_PORT == 465:
            with smtplib.SMTP_SSL(self.config.EMAIL_HOST, self.config.EMAIL_PORT, timeout=10) as smtp:
                smtp.login(self.config.EMAIL_USER, self.config.EMAIL_PASS)
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(self.config.EMAIL_HOST, self.config.EMAIL_PORT, timeout=10) as smtp:
                smtp.starttls()
                smtp.login(self.config.EMAIL_USER, self.config.EMAIL_PASS)
                smtp.send_message(msg)
        
        logger.info(f"Ticket email for {ticket.ticket_id} sent to {recipient}")
        return True
