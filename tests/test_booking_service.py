"""Seat allocation engine: reservation, cancellation and inventory consistency."""

from datetime import timedelta
from decimal import Decimal

import pytest

from bus_booking.bookings import booking_service as booking_service_module
from bus_booking.bookings.booking_service import BookingService, calculate_refund
from bus_booking.bookings.schemas import BookSeatsRequest
from bus_booking.buses.inventory import InventoryStore
from bus_booking.exceptions import (
    AlreadyCancelled,
    InternalError,
    NotFound,
    SeatUnavailable,
    ValidationError,
)
from bus_booking.models import BusSeat
from bus_booking.notifications.dispatcher import NotificationDispatcher
from tests.conftest import RecordingSender
from tests.helpers import assert_inventory_consistent


def seat_state(db, bus_id, seat_number):
    db.expire_all()
    return db.query(BusSeat).filter(BusSeat.bus_id == bus_id, BusSeat.seat_number == seat_number).one()


def test_calculate_refund():
    assert calculate_refund(Decimal("1000")) == Decimal("800.00")
    assert calculate_refund(Decimal("999")) == Decimal("799.20")
    assert calculate_refund(Decimal("1000"), rate=Decimal("0.5")) == Decimal("500.00")


class TestReserve:
    def test_books_seats_and_prices_at_booking_time(self, db_session, user, bus, reserve):
        booking = reserve(user, bus.id, seats=("S01", "S02"))

        assert booking.ticket_id.startswith("TICKET")
        assert booking.total_amount == Decimal("1000")
        assert booking.status == "confirmed"
        assert booking.payment_status == "completed"
        assert booking.is_cancelled is False
        assert [seat.seat_number for seat in booking.seats] == ["S01", "S02"]
        assert booking.seats[0].passenger_name == "Traveller S01"

        refreshed = assert_inventory_consistent(db_session, bus.id)
        assert refreshed.available_seats == 38
        assert seat_state(db_session, bus.id, "S01").booked_by == user.id

    def test_later_price_change_does_not_touch_booking(self, db_session, user, bus, reserve):
        booking = reserve(user, bus.id, seats=("S01", "S02"))

        bus.price = Decimal("900")
        db_session.commit()
        db_session.expire_all()

        assert booking.total_amount == Decimal("1000")

    def test_keeps_passenger_order_and_trims_contact_mobile(self, db_session, user, bus, booking_service, booking_request):
        data = booking_request(bus.id, seats=("S10", "S03"))
        data["passenger_details"]["mobile"] = "98765 43210"
        booking = booking_service.reserve(user, BookSeatsRequest(**data))

        assert [seat.seat_number for seat in booking.seats] == ["S10", "S03"]
        assert booking.contact_mobile == "9876543210"

    def test_conflicting_request_changes_nothing(self, db_session, user, create_user, bus, reserve):
        reserve(user, bus.id, seats=("S01", "S02"))
        other = create_user()

        with pytest.raises(SeatUnavailable) as exc_info:
            reserve(other, bus.id, seats=("S02", "S03"))

        assert exc_info.value.seat_number == "S02"
        assert exc_info.value.status_code == 409
        refreshed = assert_inventory_consistent(db_session, bus.id)
        assert refreshed.available_seats == 38
        assert seat_state(db_session, bus.id, "S03").is_booked is False
        assert seat_state(db_session, bus.id, "S02").booked_by == user.id

    def test_unknown_seat_is_rejected(self, db_session, user, bus, reserve):
        with pytest.raises(SeatUnavailable, match="does not exist"):
            reserve(user, bus.id, seats=("S01", "Z99"))
        assert assert_inventory_consistent(db_session, bus.id).available_seats == 40

    def test_unknown_bus(self, user, reserve):
        with pytest.raises(NotFound):
            reserve(user, 999, seats=("S01",))

    def test_invalid_input_is_rejected_before_inventory(self, db_session, user, bus, reserve):
        with pytest.raises(ValidationError) as exc_info:
            reserve(user, bus.id, seats=("S01",), upi_id="not-a-upi")
        assert exc_info.value.field == "upi_id"

        with pytest.raises(ValidationError):
            reserve(user, bus.id, seats=("S01",), passenger_details={"mobile": "12345", "email": "asha@example.com"})

        assert assert_inventory_consistent(db_session, bus.id).available_seats == 40

    def test_qr_payment_needs_no_upi_id(self, user, bus, reserve):
        booking = reserve(user, bus.id, seats=("S01",), payment_method="qr", upi_id=None)
        assert booking.payment_method == "qr"
        assert booking.upi_id is None

    def test_loser_of_a_race_gets_conflict_and_rolls_back(self, db_session, user, create_user, bus, reserve, monkeypatch):
        # Both requests pass the availability read, as if they ran concurrently
        monkeypatch.setattr(InventoryStore, "check_available", lambda self, bus, seat_numbers: None)
        reserve(user, bus.id, seats=("S05",))

        other = create_user()
        with pytest.raises(SeatUnavailable) as exc_info:
            reserve(other, bus.id, seats=("S04", "S05"))

        assert exc_info.value.seat_number == "S05"
        assert seat_state(db_session, bus.id, "S04").is_booked is False
        assert seat_state(db_session, bus.id, "S05").booked_by == user.id
        assert assert_inventory_consistent(db_session, bus.id).available_seats == 39

    def test_ticket_id_collision_leaves_no_holds(self, db_session, user, bus, reserve, monkeypatch):
        monkeypatch.setattr(booking_service_module, "generate_ticket_id", lambda: "TICKET1700000000000001")
        reserve(user, bus.id, seats=("S01",))

        with pytest.raises(InternalError):
            reserve(user, bus.id, seats=("S02",))

        assert seat_state(db_session, bus.id, "S02").is_booked is False
        assert assert_inventory_consistent(db_session, bus.id).available_seats == 39

    def test_journey_date_prefers_request(self, user, create_bus, reserve, tomorrow):
        recurring = create_bus(departure_date=None)
        chosen = tomorrow + timedelta(days=5)

        booking = reserve(user, recurring.id, seats=("S01",), journey_date=chosen.isoformat())

        assert booking.journey_date == chosen
        assert booking.journey_date_iso == chosen.isoformat()

    def test_journey_date_falls_back_to_bus_date(self, user, bus, reserve, tomorrow):
        booking = reserve(user, bus.id, seats=("S01",))
        assert booking.journey_date == tomorrow
        assert booking.departure_time_snapshot == "20:00"

    def test_ticket_email_is_sent_in_background(self, user, bus, reserve, dispatcher, sender):
        booking = reserve(user, bus.id, seats=("S01",))
        dispatcher.shutdown()

        assert [ticket.ticket_id for ticket in sender.sent] == [booking.ticket_id]
        assert sender.sent[0].user_email == "asha@example.com"

    def test_email_failure_does_not_affect_booking(self, db_session, user, bus, booking_request):
        dispatcher = NotificationDispatcher(sender=RecordingSender(fail=True), max_workers=1)
        try:
            booking = BookingService(db_session, dispatcher=dispatcher).reserve(
                user, BookSeatsRequest(**booking_request(bus.id, seats=("S01",)))
            )
        finally:
            dispatcher.shutdown()

        assert booking.status == "confirmed"
        assert assert_inventory_consistent(db_session, bus.id).available_seats == 39


class TestCancel:
    def test_cancel_refunds_and_releases(self, db_session, user, bus, reserve, booking_service):
        booking = reserve(user, bus.id, seats=("S01", "S02"))

        result = booking_service.cancel(booking.ticket_id, user)

        assert result.refund_amount == Decimal("800.00")
        assert result.ticket_id == booking.ticket_id
        db_session.expire_all()
        assert booking.is_cancelled is True
        assert booking.status == "cancelled"
        assert booking.payment_status == "refunded"
        assert booking.refund_amount == Decimal("800.00")
        assert booking.cancellation_date is not None
        assert seat_state(db_session, bus.id, "S01").is_booked is False
        assert assert_inventory_consistent(db_session, bus.id).available_seats == 40

    def test_second_cancel_fails_without_double_release(self, db_session, user, bus, reserve, booking_service):
        booking = reserve(user, bus.id, seats=("S01", "S02"))
        booking_service.cancel(booking.ticket_id, user)

        with pytest.raises(AlreadyCancelled):
            booking_service.cancel(booking.ticket_id, user)

        assert assert_inventory_consistent(db_session, bus.id).available_seats == 40

    def test_released_seat_can_be_booked_again(self, db_session, user, create_user, bus, reserve, booking_service):
        booking = reserve(user, bus.id, seats=("S01",))
        booking_service.cancel(booking.ticket_id, user)

        other = create_user()
        rebooked = reserve(other, bus.id, seats=("S01",))

        assert rebooked.ticket_id != booking.ticket_id
        assert seat_state(db_session, bus.id, "S01").booked_by == other.id

    def test_cancel_only_own_bookings(self, db_session, user, create_user, bus, reserve, booking_service):
        booking = reserve(user, bus.id, seats=("S01",))
        stranger = create_user()

        with pytest.raises(NotFound):
            booking_service.cancel(booking.ticket_id, stranger)
        assert assert_inventory_consistent(db_session, bus.id).available_seats == 39

    def test_cancel_unknown_ticket(self, user, booking_service):
        with pytest.raises(NotFound):
            booking_service.cancel("TICKET000", user)


def test_user_bookings_newest_first(user, create_user, bus, reserve, booking_service):
    first = reserve(user, bus.id, seats=("S01",))
    second = reserve(user, bus.id, seats=("S02",))
    reserve(create_user(), bus.id, seats=("S03",))

    tickets = [booking.ticket_id for booking in booking_service.get_user_bookings(user)]

    assert tickets == [second.ticket_id, first.ticket_id]


def test_get_ticket_is_scoped_to_owner(user, create_user, bus, reserve, booking_service):
    booking = reserve(user, bus.id, seats=("S01",))

    assert booking_service.get_ticket(booking.ticket_id, user).id == booking.id
    with pytest.raises(NotFound, match="Ticket not found"):
        booking_service.get_ticket(booking.ticket_id, create_user())
