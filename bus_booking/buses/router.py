from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from bus_booking.auth.dependencies import get_current_user
from bus_booking.validation import parse_date
from bus_booking.buses.inventory import InventoryStore
from bus_booking.buses.schemas import (
    AvailableRoutes, BusDetail, BusSummary, ReconciliationReport, SeatInitialization
)
from bus_booking.buses.search import BusSearchService
from bus_booking.database import get_db
from bus_booking.exceptions import ValidationError

router = APIRouter()

@router.get("/search-buses", response_model=List[BusSummary])
def search_buses(
    from_city: str = Query(..., alias="from", description="Origin, case-insensitive partial match"),
    to_city: str = Query(..., alias="to", description="Destination, case-insensitive partial match"),
    travel_date: str = Query(..., alias="date", description="Travel date (YYYY-MM-DD)"),
    db: Session = Depends(get_db)
):
    """Search buses for a route and date (tomorrow up to 90 days ahead)"""
    return BusSearchService(db).search(from_city, to_city, travel_date)

@router.get("/available-routes", response_model=AvailableRoutes)
def get_available_routes(db: Session = Depends(get_db)):
    """Origins and destinations for autocomplete"""
    routes = InventoryStore(db).available_routes()
    return AvailableRoutes(from_cities=routes["from"], to_cities=routes["to"])

@router.get("/bus/{bus_id}", response_model=BusDetail)
def get_bus(
    bus_id: int,
    travel_date: Optional[str] = Query(None, alias="date", description="Selected travel date"),
    db: Session = Depends(get_db)
):
    """Bus details with seat status"""
    bus = InventoryStore(db).get_bus(bus_id)
    detail = BusDetail.model_validate(bus)
    
    # Date-only string so clients never shift the day through timezone conversion
    selected = None
    if travel_date:
        try:
            selected = parse_date(travel_date)
        except ValidationError:
            selected = None
    selected = selected or bus.departure_date
    if selected:
        detail.departure_date_iso = selected.isoformat()
    
    return detail

@router.post("/initialize-bus/{bus_id}", response_model=SeatInitialization)
def initialize_bus(bus_id: int, db: Session = Depends(get_db)):
    """Create the default 40-seat layout on a bus that has none"""
    inventory = InventoryStore(db)
    created = inventory.initialize_seats(bus_id)
    bus = inventory.get_bus(bus_id)
    return SeatInitialization(
        message="Bus seats initialized" if created else "Bus seats already initialized",
        bus_id=bus_id,
        seats_created=created,
        total_seats=bus.total_seats
    )

@router.post("/buses/{bus_id}/reconcile", response_model=ReconciliationReport)
def reconcile_bus(bus_id: int, current_user=Depends(get_current_user), db: Session = Depends(get_db)):
    """Release orphaned seat holds and recompute the available counter"""
    return InventoryStore(db).reconcile(bus_id)
