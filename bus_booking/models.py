from sqlalchemy import (
    Column, Integer, BigInteger, String, Boolean, DateTime, Date, Numeric,
    ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from bus_booking.database import Base

# SQLite only auto-increments plain INTEGER primary keys
Id = BigInteger().with_variant(Integer, "sqlite")

# ================================
# Users
# ================================
class User(Base):
    __tablename__ = "users"
    
    id = Column(Id, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    mobile = Column(String(20), nullable=False)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    bookings = relationship("Booking", back_populates="user")

# ================================
# Inventory: buses and their seat map
# ================================
class Bus(Base):
    __tablename__ = "buses"
    
    id = Column(Id, primary_key=True, index=True)
    bus_number = Column(String(100), unique=True, nullable=False)
    bus_name = Column(String(255), nullable=False)
    image = Column(String(255), default="images/bus1.jpg")
    from_city = Column(String(255), nullable=False, index=True)
    to_city = Column(String(255), nullable=False, index=True)
    departure_time = Column(String(20), nullable=False)
    arrival_time = Column(String(20), nullable=False)
    departure_date = Column(Date, nullable=True, index=True)  # NULL = recurring bus
    price = Column(Numeric(10, 2), nullable=False)
    total_seats = Column(Integer, nullable=False, default=40)
    available_seats = Column(Integer, nullable=False, default=40)
    is_active = Column(Boolean, nullable=False, default=True)
    
    # Relationships
    seats = relationship(
        "BusSeat", back_populates="bus", order_by="BusSeat.id",
        cascade="all, delete-orphan"
    )
    bookings = relationship("Booking", back_populates="bus")

class BusSeat(Base):
    __tablename__ = "bus_seats"
    __table_args__ = (
        UniqueConstraint("bus_id", "seat_number", name="uq_bus_seat_number"),
    )
    
    id = Column(Id, primary_key=True, index=True)
    bus_id = Column(Id, ForeignKey("buses.id"), nullable=False, index=True)
    seat_number = Column(String(10), nullable=False)
    is_booked = Column(Boolean, nullable=False, default=False)
    booked_by = Column(Id, ForeignKey("users.id"), nullable=True)
    
    # Relationships
    bus = relationship("Bus", back_populates="seats")

# ================================
# Booking ledger
# ================================
class Booking(Base):
    __tablename__ = "bookings"
    
    id = Column(Id, primary_key=True, index=True)
    ticket_id = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(Id, ForeignKey("users.id"), nullable=False, index=True)
    bus_id = Column(Id, ForeignKey("buses.id"), nullable=False, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    refund_amount = Column(Numeric(10, 2), nullable=False, default=0)
    booking_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default="confirmed")
    is_cancelled = Column(Boolean, nullable=False, default=False)
    cancellation_date = Column(DateTime(timezone=True), nullable=True)
    contact_mobile = Column(String(20), nullable=False)
    contact_email = Column(String(255), nullable=False)
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=False, default="completed")
    upi_id = Column(String(330), nullable=True)
    
    # Journey snapshot, frozen at booking time
    journey_date = Column(Date, nullable=True)
    journey_date_iso = Column(String(10), nullable=True)
    departure_time_snapshot = Column(String(20), nullable=True)
    arrival_time_snapshot = Column(String(20), nullable=True)
    
    # Relationships
    user = relationship("User", back_populates="bookings")
    bus = relationship("Bus", back_populates="bookings")
    seats = relationship(
        "BookingSeat", back_populates="booking", order_by="BookingSeat.position",
        cascade="all, delete-orphan"
    )

class BookingSeat(Base):
    __tablename__ = "booking_seats"
    
    id = Column(Id, primary_key=True, index=True)
    booking_id = Column(Id, ForeignKey("bookings.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    seat_number = Column(String(10), nullable=False)
    passenger_name = Column(String(255), nullable=False)
    passenger_age = Column(Integer, nullable=False)
    passenger_gender = Column(String(20), nullable=False)
    
    # Relationships
    booking = relationship("Booking", back_populates="seats")
