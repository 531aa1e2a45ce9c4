from bus_booking.models import Bus


def assert_inventory_consistent(db, bus_id):
    """available_seats plus held seats always adds up to the bus capacity"""
    db.expire_all()
    bus = db.get(Bus, bus_id)
    held = sum(1 for seat in bus.seats if seat.is_booked)
    assert bus.available_seats >= 0
    assert bus.available_seats + held == bus.total_seats
    return bus
