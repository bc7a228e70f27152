"""Repository layer for database CRUD operations."""

from .booking_repository import BookingRepository
from .driver_repository import DriverRepository
from .review_repository import ReviewRepository
from .ride_repository import RideRepository
from .user_repository import UserRepository

__all__ = [
    "BookingRepository",
    "DriverRepository",
    "ReviewRepository",
    "RideRepository",
    "UserRepository",
]
