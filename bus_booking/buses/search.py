import re
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from bus_booking.validation import parse_date
from bus_booking.config import settings
from bus_booking.exceptions import InvalidDateRange, ValidationError
from bus_booking.models import Bus

TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)?", re.IGNORECASE)

def parse_time_to_minutes(time_str: Optional[str]) -> int:
    """Minutes since midnight of the first time in the string ('22:00', 'Dep 10:00 PM'); 0 if none parses"""
    if not time_str:
        return 0
    match = TIME_PATTERN.search(time_str)
    if not match:
        return 0
    
    hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3)
    if minutes > 59:
        return 0
    if period:
        if not 1 <= hours <= 12:
            return 0
        period = period.upper()
        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0
    elif hours > 23:
        return 0
    
    return hours * 60 + minutes

def reference_today(now: Optional[datetime] = None) -> date:
    """Server's calendar day at the configured fixed offset, independent of host timezone"""
    offset = timezone(timedelta(minutes=settings.SEARCH_UTC_OFFSET_MINUTES))
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(offset).date()

class BusSearchService:
    """Route/date search over active buses"""
    
    def __init__(self, db: Session):
        self.db = db
    
    @staticmethod
    def validate_travel_date(travel_date: date, today: date) -> None:
        if travel_date <= today:
            raise InvalidDateRange("Please select a date from tomorrow onwards. Today's date is not allowed.")
        if travel_date > today + timedelta(days=settings.MAX_ADVANCE_DAYS):
            raise InvalidDateRange(
                f"Booking date cannot be more than {settings.MAX_ADVANCE_DAYS} days in the future"
            )
    
    def search(self, from_city: str, to_city: str, travel_date, now: Optional[datetime] = None) -> List[Bus]:
        """Buses on the route for the given day, recurring buses included, earliest departure first"""
        if not from_city or not from_city.strip() or not to_city or not to_city.strip():
            raise ValidationError("Missing query parameters. Please provide from, to and date.")
        
        travel_date = parse_date(travel_date)
        self.validate_travel_date(travel_date, reference_today(now))
        
        buses = self.db.query(Bus).filter(
            Bus.is_active.is_(True),
            Bus.from_city.icontains(from_city.strip(), autoescape=True),
            Bus.to_city.icontains(to_city.strip(), autoescape=True),
            or_(
                Bus.departure_date == travel_date,  # specific-date buses
                Bus.departure_date.is_(None)        # recurring buses
            )
        ).order_by(Bus.id).all()
        
        # Stable sort, so equal departure times keep insertion order
        return sorted(buses, key=lambda bus: parse_time_to_minutes(bus.departure_time))
