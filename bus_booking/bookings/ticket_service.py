import json
import re
from io import BytesIO
from typing import List

import qrcode
from qrcode import constants
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from bus_booking.bookings.schemas import TicketView
from bus_booking.config import settings

INSTRUCTIONS = [
    "Arrive at boarding point 30 minutes before departure time",
    "Carry any government ID card (Aadhar/Driving License/Passport)",
    "This ticket is non-transferable",
    "Contact support for any changes or cancellations",
    "Keep this ticket safe for your journey",
    "Boarding point details will be sent via SMS/Email",
]

_REPLACEMENTS = [
    (re.compile("[\u2018\u2019\u201A\u201B]"), "'"),
    (re.compile("[\u201C\u201D\u201E]"), '"'),
    (re.compile("[\u2013\u2014]"), "-"),
    (re.compile("\u2026"), "..."),
    (re.compile("\u00A0"), " "),
]
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E]")

def sanitize_text(value) -> str:
    """Reduce text to printable ASCII so the built-in PDF fonts can draw it"""
    if value is None:
        return ""
    text = str(value)
    for pattern, replacement in _REPLACEMENTS:
        text = pattern.sub(replacement, text)
    return _NON_PRINTABLE.sub("", text).strip()

def _escape(value) -> str:
    # Paragraph parses a mini-markup, so angle brackets and ampersands must be escaped
    return sanitize_text(value).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

class TicketService:
    """Renders booking tickets as PDF documents"""
    
    def __init__(self, brand: str = None):
        self.brand = brand or settings.PROJECT_NAME
    
    def qr_payload(self, ticket: TicketView) -> str:
        return json.dumps({
            "tid": ticket.ticket_id,
            "route": f"{sanitize_text(ticket.from_city)}-{sanitize_text(ticket.to_city)}",
            "date": ticket.journey_date_iso,
            "dep": ticket.departure_time,
            "seats": [seat.seat_number for seat in ticket.seats],
        }, separators=(",", ":"))
    
    def generate_qr_code_image(self, ticket: TicketView, size: int = 110) -> Image:
        """QR code with the ticket id and journey, as a flowable"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(self.qr_payload(ticket))
        qr.make(fit=True)
        
        buffer = BytesIO()
        qr.make_image(fill_color="black", back_color="white").save(buffer, format="PNG")
        buffer.seek(0)
        return Image(buffer, width=size, height=size)
    
    def render_pdf(self, ticket: TicketView) -> bytes:
        """Build the ticket PDF and return its bytes"""
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=A4, title=f"Ticket {ticket.ticket_id}",
            leftMargin=50, rightMargin=50, topMargin=50, bottomMargin=50
        )
        styles = getSampleStyleSheet()
        story = []
        
        # Header
        header = Table(
            [[Paragraph(f"<font color='white' size='18'>{_escape(self.brand)}</font>", styles['Normal'])],
             [Paragraph(f"<font color='white'>Booking ID: {_escape(ticket.ticket_id)}</font>", styles['Normal'])]],
            colWidths=[495]
        )
        header.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#28a745')),
            ('LEFTPADDING', (0, 0), (-1, -1), 12),
            ('TOPPADDING', (0, 0), (0, 0), 14),
            ('BOTTOMPADDING', (0, -1), (-1, -1), 12),
        ]))
        story.append(header)
        story.append(Spacer(1, 16))
        
        # Bus information (left) and passenger information (right)
        seat_numbers = ", ".join(seat.seat_number for seat in ticket.seats) or "-"
        first_age = ticket.seats[0].passenger_age if ticket.seats else "-"
        payment_status = (ticket.payment_status or ticket.status or "completed").upper()
        
        bus_info = [
            ["Bus Information", ""],
            ["Bus Name:", sanitize_text(ticket.bus_name)],
            ["Bus Number:", sanitize_text(ticket.bus_number)],
            ["Route:", f"{sanitize_text(ticket.from_city)} - {sanitize_text(ticket.to_city)}"],
            ["Journey Date:", ticket.journey_date_iso or "-"],
            ["Departure:", sanitize_text(ticket.departure_time) or "-"],
            ["Arrival:", sanitize_text(ticket.arrival_time) or "-"],
            ["Booking Date:", ticket.booking_date.date().isoformat()],
            ["Payment Status:", payment_status],
        ]
        passenger_info = [
            ["Passenger Information", ""],
            ["Name:", sanitize_text(ticket.user_name)],
            ["Seat Number:", seat_numbers],
            ["Age:", str(first_age)],
            ["Mobile:", sanitize_text(ticket.contact_mobile or ticket.user_mobile)],
            ["Email:", sanitize_text(ticket.contact_email or ticket.user_email)],
        ]
        columns = Table(
            [[self._info_table(bus_info), self._info_table(passenger_info)]],
            colWidths=[250, 245]
        )
        columns.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'TOP')]))
        story.append(columns)
        story.append(Spacer(1, 14))
        
        # Passengers
        passenger_rows = [["Seat", "Name", "Age", "Gender"]] + [
            [seat.seat_number, sanitize_text(seat.passenger_name) or "-",
             str(seat.passenger_age), sanitize_text(seat.passenger_gender) or "-"]
            for seat in ticket.seats
        ]
        passenger_table = Table(passenger_rows, colWidths=[60, 235, 60, 140])
        passenger_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#2f855a')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ('LINEBELOW', (0, 0), (-1, -1), 0.5, colors.HexColor('#e2e8f0')),
        ]))
        story.append(passenger_table)
        story.append(Spacer(1, 14))
        
        # Payment box, refund details and QR code side by side
        payment_rows = [
            ["Payment Details", ""],
            ["Total:", f"Rs. {ticket.total_amount}"],
            ["Method:", ticket.payment_method.upper()],
            ["Status:", ticket.status.upper()],
        ]
        if ticket.is_cancelled:
            payment_rows.append(["Refund:", f"Rs. {ticket.refund_amount}"])
            if ticket.cancellation_date:
                payment_rows.append(["Cancelled on:", ticket.cancellation_date.date().isoformat()])
        payment_table = self._info_table(payment_rows)
        payment_style = [('BOX', (0, 0), (-1, -1), 1, colors.HexColor('#28a745'))]
        if ticket.is_cancelled:
            payment_style.append(('TEXTCOLOR', (1, 4), (1, 4), colors.red))
        payment_table.setStyle(TableStyle(payment_style))
        
        payment_row = Table(
            [[payment_table, self.generate_qr_code_image(ticket)]],
            colWidths=[360, 135]
        )
        payment_row.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('ALIGN', (1, 0), (1, 0), 'RIGHT'),
        ]))
        story.append(payment_row)
        story.append(Spacer(1, 18))
        
        # Instructions
        story.append(Paragraph("Important Instructions", styles['Heading3']))
        for instruction in INSTRUCTIONS:
            story.append(Paragraph(f"&bull; {_escape(instruction)}", styles['Normal']))
            story.append(Spacer(1, 3))
        
        doc.build(story)
        return buffer.getvalue()
    
    @staticmethod
    def _info_table(rows: List[List[str]]) -> Table:
        table = Table(rows, colWidths=[95, 145])
        table.setStyle(TableStyle([
            ('SPAN', (0, 0), (-1, 0)),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 12),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 10),
            ('TEXTCOLOR', (0, 1), (-1, -1), colors.HexColor('#444444')),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        return table
