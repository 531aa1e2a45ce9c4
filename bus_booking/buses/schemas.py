from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date
from decimal import Decimal

class BusBase(BaseModel):
    bus_number: str
    bus_name: str
    image: Optional[str] = "images/bus1.jpg"
    from_city: str
    to_city: str
    departure_time: str = Field(..., description="Time of day, e.g. '20:00' or '10:00 PM'")
    arrival_time: str
    departure_date: Optional[date] = Field(None, description="Omit for a recurring bus")
    price: Decimal = Field(..., ge=0, description="Price per seat")
    is_active: bool = True

class BusCreate(BusBase):
    total_seats: int = Field(40, ge=1, le=100)

class BusSeat(BaseModel):
    seat_number: str
    is_booked: bool
    booked_by: Optional[int] = None
    
    model_config = ConfigDict(from_attributes=True)

class BusSummary(BusBase):
    """Bus as returned by search: no seat map"""
    id: int
    total_seats: int
    available_seats: int
    
    model_config = ConfigDict(from_attributes=True)

class BusDetail(BusSummary):
    seats: List[BusSeat] = []
    departure_date_iso: Optional[str] = None

class AvailableRoutes(BaseModel):
    from_cities: List[str] = Field(..., serialization_alias="from")
    to_cities: List[str] = Field(..., serialization_alias="to")

class SeatInitialization(BaseModel):
    message: str
    bus_id: int
    seats_created: int
    total_seats: int

class ReconciliationReport(BaseModel):
    bus_id: int
    released_seats: List[str] = []
    missing_holds: List[str] = []
    available_seats_before: int
    available_seats_after: int
