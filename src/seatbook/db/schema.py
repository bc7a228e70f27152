"""SQLAlchemy ORM models for booking persistence."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .utils import UTCDateTime, new_id, utc_now


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    phone: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False)
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: utc_now())
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )

    __table_args__ = (Index("idx_user_role", "role"),)


class DriverProfile(Base):
    __tablename__ = "driver_profiles"

    user_id: Mapped[str] = mapped_column(
        String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    primary_phone: Mapped[str] = mapped_column(String, nullable=False)
    secondary_phone: Mapped[str | None] = mapped_column(String, nullable=True)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    identity_number: Mapped[str] = mapped_column(String, nullable=False)
    driving_license_ref: Mapped[str] = mapped_column(Text, nullable=False)
    photograph_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    vehicle_number: Mapped[str] = mapped_column(String, nullable=False)
    car_make: Mapped[str] = mapped_column(String, nullable=False)
    car_model: Mapped[str] = mapped_column(String, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_rides: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: utc_now())
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )

    __table_args__ = (Index("idx_driver_verified", "is_verified"),)


class Ride(Base):
    __tablename__ = "rides"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    driver_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False)
    from_location: Mapped[str] = mapped_column(String, nullable=False)
    to_location: Mapped[str] = mapped_column(String, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    departure_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: utc_now())
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("total_seats > 0", name="ck_ride_total_seats_positive"),
        CheckConstraint("available_seats >= 0", name="ck_ride_available_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="ck_ride_available_within_total"),
        CheckConstraint("price >= 0", name="ck_ride_price_non_negative"),
        Index("idx_ride_status_departure", "status", "departure_time"),
        Index("idx_ride_driver", "driver_id"),
    )


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    passenger_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False)
    ride_id: Mapped[str] = mapped_column(String, ForeignKey("rides.id"), nullable=False)
    seats_booked: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: utc_now())
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("seats_booked >= 1", name="ck_booking_seats_positive"),
        Index("idx_booking_ride_status", "ride_id", "status"),
        Index("idx_booking_passenger", "passenger_id"),
        Index(
            "uq_booking_confirmed_passenger_ride",
            "passenger_id",
            "ride_id",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
    )


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    booking_id: Mapped[str] = mapped_column(String, ForeignKey("bookings.id"), nullable=False)
    author_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False)
    subject_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False)
    direction: Mapped[str] = mapped_column(String, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=lambda: utc_now())

    __table_args__ = (
        UniqueConstraint("booking_id", "direction", name="uq_review_booking_direction"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating_range"),
        Index("idx_review_subject_direction", "subject_id", "direction"),
    )


class ServiceMetadata(Base):
    __tablename__ = "service_metadata"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: utc_now(),
        onupdate=lambda: utc_now(),
    )
