from typing import Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import Session

from bus_booking.buses.schemas import BusCreate, ReconciliationReport
from bus_booking.config import settings
from bus_booking.exceptions import NotFound, SeatUnavailable, InternalError
from bus_booking.models import Bus, BusSeat, Booking, BookingSeat

def default_seat_numbers(count: int) -> List[str]:
    """Seat labels S01, S02, ... in layout order"""
    return [f"S{i:02d}" for i in range(1, count + 1)]

class InventoryStore:
    """Bus documents and their embedded seat maps.
    
    Seat holds only ever change through conditional UPDATE statements
    (``... WHERE is_booked = false``), so two requests racing for the same seat
    cannot both win. claim_seats and release_seats do not commit: the caller
    owns the transaction and decides when to commit or roll back.
    """
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_bus(self, bus_id: int) -> Bus:
        bus = self.db.query(Bus).filter(Bus.id == bus_id).first()
        if not bus:
            raise NotFound("Bus not found", bus_id=bus_id)
        return bus
    
    def create_bus(self, data: BusCreate) -> Bus:
        """Create a bus together with its default seat layout"""
        bus = Bus(
            **data.model_dump(exclude={"total_seats"}),
            total_seats=data.total_seats,
            available_seats=data.total_seats,
            seats=[BusSeat(seat_number=n, is_booked=False) for n in default_seat_numbers(data.total_seats)]
        )
        self.db.add(bus)
        self.db.commit()
        self.db.refresh(bus)
        logger.info(f"Created bus {bus.id} ({bus.bus_number}) {bus.from_city} -> {bus.to_city}")
        return bus
    
    def initialize_seats(self, bus_id: int, count: Optional[int] = None) -> int:
        """Create a default seat layout if the bus has none; returns seats created"""
        bus = self.get_bus(bus_id)
        if bus.seats:
            return 0
        
        count = count or settings.DEFAULT_SEAT_COUNT
        for seat_number in default_seat_numbers(count):
            bus.seats.append(BusSeat(seat_number=seat_number, is_booked=False))
        bus.total_seats = count
        bus.available_seats = count
        self.db.commit()
        logger.info(f"Initialized {count} seats on bus {bus_id}")
        return count
    
    @staticmethod
    def seat_index(bus: Bus) -> Dict[str, BusSeat]:
        return {seat.seat_number: seat for seat in bus.seats}
    
    def check_available(self, bus: Bus, seat_numbers: Iterable[str]) -> None:
        """Fail fast on seats that do not exist or are already held.
        
        This is a read and only gives early, precise errors; claim_seats is what
        actually guarantees exclusivity.
        """
        index = self.seat_index(bus)
        for seat_number in seat_numbers:
            seat = index.get(seat_number)
            if seat is None:
                raise SeatUnavailable(seat_number, reason="does not exist on this bus")
            if seat.is_booked:
                raise SeatUnavailable(seat_number)
    
    def lock_bus(self, bus_id: int) -> None:
        """Take the bus row lock; every seat mutation on a bus takes it first"""
        self.db.execute(select(Bus.id).where(Bus.id == bus_id).with_for_update())
    
    def claim_seats(self, bus_id: int, seat_numbers: Iterable[str], user_id: int) -> int:
        """Move the counter, then hold each seat only if it is currently free.
        
        The guarded counter update locks the bus row, so reservations,
        releases and reconciliation on one bus run one at a time. Seats are
        claimed in sorted order.
        """
        seat_numbers = sorted(seat_numbers)
        count = len(seat_numbers)
        result = self.db.execute(
            update(Bus)
            .where(Bus.id == bus_id, Bus.available_seats >= count)
            .values(available_seats=Bus.available_seats - count)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InternalError("Seat counter out of sync with seat map", bus_id=bus_id)
        
        for seat_number in seat_numbers:
            result = self.db.execute(
                update(BusSeat)
                .where(
                    BusSeat.bus_id == bus_id,
                    BusSeat.seat_number == seat_number,
                    BusSeat.is_booked.is_(False)
                )
                .values(is_booked=True, booked_by=user_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.warning(f"Seat {seat_number} on bus {bus_id} lost to a concurrent booking")
                raise SeatUnavailable(seat_number)
        return count
    
    def release_seats(self, bus_id: int, seat_numbers: Iterable[str], user_id: Optional[int] = None) -> int:
        """Clear holds on the given seats and give them back to the counter.
        
        Only seats currently held (by ``user_id`` when given) are touched; the
        return value is the number actually released.
        """
        self.lock_bus(bus_id)
        conditions = [
            BusSeat.bus_id == bus_id,
            BusSeat.seat_number.in_(list(seat_numbers)),
            BusSeat.is_booked.is_(True)
        ]
        if user_id is not None:
            conditions.append(BusSeat.booked_by == user_id)
        
        released = self.db.execute(
            update(BusSeat)
            .where(*conditions)
            .values(is_booked=False, booked_by=None)
            .execution_options(synchronize_session=False)
        ).rowcount
        
        if released:
            self.db.execute(
                update(Bus)
                .where(Bus.id == bus_id, Bus.available_seats + released <= Bus.total_seats)
                .values(available_seats=Bus.available_seats + released)
                .execution_options(synchronize_session=False)
            )
        return released
    
    def available_routes(self) -> Dict[str, List[str]]:
        """Unique origin and destination names across active buses, alphabetically"""
        from_cities = self.db.query(Bus.from_city).filter(Bus.is_active.is_(True)).distinct().all()
        to_cities = self.db.query(Bus.to_city).filter(Bus.is_active.is_(True)).distinct().all()
        return {
            "from": sorted(row[0] for row in from_cities),
            "to": sorted(row[0] for row in to_cities)
        }
    
    
    def reconcile(self, bus_id: int) -> ReconciliationReport:
        """Repair a bus whose seat map drifted from the booking ledger.
        
        Runs under the bus row lock and decides everything inside SQL: a hold is
        released only if, when the UPDATE runs, no confirmed booking of the
        holder covers that seat, and the counter is recounted from the seat
        rows. Confirmed bookings whose seats are not held are only reported.
        """
        self.db.expire_all()
        bus = self.db.query(Bus).filter(Bus.id == bus_id).with_for_update().first()
        if not bus:
            raise NotFound("Bus not found", bus_id=bus_id)
        before = bus.available_seats
        
        backing_booking = (
            select(BookingSeat.id)
            .join(Booking, BookingSeat.booking_id == Booking.id)
            .where(
                Booking.bus_id == BusSeat.bus_id,
                Booking.user_id == BusSeat.booked_by,
                Booking.is_cancelled.is_(False),
                BookingSeat.seat_number == BusSeat.seat_number
            )
            .correlate(BusSeat)
        )
        released = sorted(self.db.execute(
            update(BusSeat)
            .where(
                BusSeat.bus_id == bus_id,
                BusSeat.is_booked.is_(True),
                ~backing_booking.exists()
            )
            .values(is_booked=False, booked_by=None)
            .returning(BusSeat.seat_number)
            .execution_options(synchronize_session=False)
        ).scalars().all())
        
        free_seats = (
            select(func.count(BusSeat.id))
            .where(BusSeat.bus_id == bus_id, BusSeat.is_booked.is_(False))
            .scalar_subquery()
        )
        self.db.execute(
            update(Bus)
            .where(Bus.id == bus_id)
            .values(available_seats=free_seats)
            .execution_options(synchronize_session=False)
        )
        after = self.db.execute(select(Bus.available_seats).where(Bus.id == bus_id)).scalar_one()
        
        missing = sorted(set(self.db.execute(
            select(BookingSeat.seat_number)
            .join(Booking, BookingSeat.booking_id == Booking.id)
            .join(BusSeat, and_(
                BusSeat.bus_id == Booking.bus_id,
                BusSeat.seat_number == BookingSeat.seat_number
            ))
            .where(
                Booking.bus_id == bus_id,
                Booking.is_cancelled.is_(False),
                BusSeat.is_booked.is_(False)
            )
        ).scalars().all()))
        self.db.commit()
        
        if released or missing or before != after:
            logger.warning(
                f"Reconciled bus {bus_id}: released={released} missing_holds={missing} "
                f"available {before} -> {after}"
            )
        
        return ReconciliationReport(
            bus_id=bus_id,
            released_seats=released,
            missing_holds=missing,
            available_seats_before=before,
            available_seats_after=after
        )
