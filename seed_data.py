#!/usr/bin/env python3
"""Seed dated and recurring buses for a route, or export them as JSON for bulk import.

Usage:
    python seed_data.py --start 2030-01-01 --days 7
    python seed_data.py --start 2030-01-01 --days 90 --batches 2 --export buses-to-import.json
"""

import argparse
import json
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterator, List

from loguru import logger
from sqlalchemy.orm import Session

from bus_booking.buses.inventory import InventoryStore, default_seat_numbers
from bus_booking.buses.schemas import BusCreate
from bus_booking.database import SessionLocal, init_db
from bus_booking.logging_config import configure_logging
from bus_booking.models import Bus

BASE_BUS = {
    "bus_number": "MH01-1001",
    "bus_name": "Express Line",
    "image": "images/bus1.jpg",
    "from_city": "Mumbai",
    "to_city": "Pune",
    "departure_time": "20:00",
    "arrival_time": "23:00",
    "price": Decimal("500"),
    "total_seats": 40,
    "is_active": True,
}

RECURRING_BUS = {
    "bus_number": "MH01-2002",
    "bus_name": "Daily Shuttle",
    "image": "images/bus2.jpg",
    "from_city": "Mumbai",
    "to_city": "Pune",
    "departure_time": "7:30 AM",
    "arrival_time": "10:30 AM",
    "price": Decimal("450"),
    "total_seats": 40,
    "is_active": True,
}

def seed_dates(start: date, days: int, batches: int = 1) -> Iterator[date]:
    """Consecutive days; batch ``b`` covers days ``b * days`` to ``(b + 1) * days - 1``"""
    for offset in range(days * batches):
        yield start + timedelta(days=offset)

def bus_for_date(day: date) -> BusCreate:
    return BusCreate(
        **{**BASE_BUS, "bus_number": f"{BASE_BUS['bus_number']}-{day.isoformat()}"},
        departure_date=day
    )

def build_export(start: date, days: int, batches: int = 1) -> List[dict]:
    """Bus documents with their full seat maps, ready for a bulk import"""
    documents = []
    for day in seed_dates(start, days, batches):
        bus = bus_for_date(day)
        document = bus.model_dump(mode="json")
        document["available_seats"] = bus.total_seats
        document["seats"] = [
            {"seat_number": seat_number, "is_booked": False}
            for seat_number in default_seat_numbers(bus.total_seats)
        ]
        documents.append(document)
    return documents

def create_seed_data(start: date, days: int = 7, batches: int = 1, db: Session = None) -> int:
    """Insert the dated buses that are missing plus the recurring bus; returns buses created"""
    owns_session = db is None
    db = db or SessionLocal()
    inventory = InventoryStore(db)
    created = 0
    
    try:
        logger.info(f"Seeding {BASE_BUS['from_city']} -> {BASE_BUS['to_city']} from {start} for {days * batches} days")
        
        for day in seed_dates(start, days, batches):
            # One bus per date, skipped when that date already exists
            exists = db.query(Bus).filter(
                Bus.from_city == BASE_BUS["from_city"],
                Bus.to_city == BASE_BUS["to_city"],
                Bus.departure_date == day
            ).first()
            if exists:
                logger.info(f"Skipped (exists): {day}")
                continue
            inventory.create_bus(bus_for_date(day))
            created += 1
        
        if not db.query(Bus).filter(Bus.bus_number == RECURRING_BUS["bus_number"]).first():
            inventory.create_bus(BusCreate(**RECURRING_BUS))
            created += 1
            logger.info(f"Inserted recurring bus {RECURRING_BUS['bus_number']}")
        
        logger.success(f"Seeding complete: {created} buses created")
        return created
    except Exception:
        db.rollback()
        logger.exception("Seeding failed")
        raise
    finally:
        if owns_session:
            db.close()

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Seed buses for the Mumbai -> Pune route")
    parser.add_argument("--start", type=date.fromisoformat, default=None,
                        help="First date (YYYY-MM-DD); defaults to tomorrow")
    parser.add_argument("--days", type=int, default=7, help="Days per batch")
    parser.add_argument("--batches", type=int, default=1, help="Number of consecutive batches")
    parser.add_argument("--export", metavar="FILE", default=None,
                        help="Write bus documents to FILE as JSON instead of inserting them")
    return parser.parse_args(argv)

if __name__ == "__main__":
    configure_logging()
    args = parse_args()
    start = args.start or date.today() + timedelta(days=1)
    
    if args.export:
        documents = build_export(start, args.days, args.batches)
        with open(args.export, "w") as fh:
            json.dump(documents, fh, indent=2)
        logger.info(f"Wrote {args.export} with {len(documents)} documents ({args.batches} batch(es) x {args.days} days)")
    else:
        init_db()
        create_seed_data(start, args.days, args.batches)
