import os
from datetime import timedelta
from decimal import Decimal

# Must be set before bus_booking.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from bus_booking import models  # noqa: E402, F401
from bus_booking.auth.schemas import UserCreate  # noqa: E402
from bus_booking.auth.service import UserService  # noqa: E402
from bus_booking.bookings.booking_service import BookingService  # noqa: E402
from bus_booking.bookings.schemas import BookSeatsRequest  # noqa: E402
from bus_booking.buses.inventory import InventoryStore  # noqa: E402
from bus_booking.buses.schemas import BusCreate  # noqa: E402
from bus_booking.buses.search import reference_today  # noqa: E402
from bus_booking.database import Base, get_db  # noqa: E402
from bus_booking.main import create_app  # noqa: E402
from bus_booking.notifications.dispatcher import NotificationDispatcher, get_dispatcher  # noqa: E402

DEFAULT_PASSWORD = "Pass123!"


class RecordingSender:
    """Email sender double that remembers what it was asked to send"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send_ticket(self, ticket):
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.sent.append(ticket)
        return True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def dispatcher(sender):
    dispatcher = NotificationDispatcher(sender=sender, max_workers=1)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def client(session_factory, dispatcher):
    app = create_app(lifespan=None)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def create_user(db_session):
    counter = {"n": 0}

    def _create(name: str = None, email: str = None, mobile: str = "9876543210"):
        counter["n"] += 1
        return UserService.create_user(
            db_session,
            UserCreate(
                name=name or f"Passenger {counter['n']}",
                email=email or f"passenger{counter['n']}@example.com",
                mobile=mobile,
                password=DEFAULT_PASSWORD,
            ),
        )

    return _create


@pytest.fixture
def user(create_user):
    return create_user(name="Asha Rao", email="asha@example.com")


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {UserService.issue_token(user)}"}

    return _headers


@pytest.fixture
def tomorrow():
    return reference_today() + timedelta(days=1)


@pytest.fixture
def create_bus(db_session, tomorrow):
    counter = {"n": 0}

    def _create(**overrides):
        counter["n"] += 1
        data = {
            "bus_number": f"MH01-{1000 + counter['n']}",
            "bus_name": "Express Line",
            "from_city": "Mumbai",
            "to_city": "Pune",
            "departure_time": "20:00",
            "arrival_time": "23:00",
            "departure_date": tomorrow,
            "price": Decimal("500"),
            "total_seats": 40,
        }
        data.update(overrides)
        return InventoryStore(db_session).create_bus(BusCreate(**data))

    return _create


@pytest.fixture
def bus(create_bus):
    return create_bus()


@pytest.fixture
def booking_request():
    def _request(bus_id: int, seats=("S01", "S02"), **overrides):
        data = {
            "bus_id": bus_id,
            "seats": [
                {
                    "seat_number": seat,
                    "passenger_name": f"Traveller {seat}",
                    "passenger_age": 30,
                    "passenger_gender": "F",
                }
                for seat in seats
            ],
            "passenger_details": {"mobile": "9876543210", "email": "asha@example.com"},
            "payment_method": "upi",
            "upi_id": "asha@paytm",
        }
        data.update(overrides)
        return data

    return _request


@pytest.fixture
def booking_service(db_session, dispatcher):
    return BookingService(db_session, dispatcher=dispatcher)


@pytest.fixture
def reserve(booking_service, booking_request):
    def _reserve(user, bus_id, seats=("S01", "S02"), **overrides):
        request = BookSeatsRequest(**booking_request(bus_id, seats, **overrides))
        return booking_service.reserve(user, request)

    return _reserve

