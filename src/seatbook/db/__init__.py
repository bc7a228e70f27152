"""Database persistence module."""

from .database import create_db_engine, init_database
from .schema import Booking, DriverProfile, Review, Ride, ServiceMetadata, User
from .transaction import run_in_transaction, savepoint, transaction

__all__ = [
    "create_db_engine",
    "init_database",
    "Booking",
    "DriverProfile",
    "Review",
    "Ride",
    "ServiceMetadata",
    "User",
    "transaction",
    "savepoint",
    "run_in_transaction",
]
