from .ride_catalog import (
    BookedPassenger,
    DriverRideView,
    RideBookingSummary,
    RideCatalog,
    RideListing,
)

__all__ = [
    "BookedPassenger",
    "DriverRideView",
    "RideBookingSummary",
    "RideCatalog",
    "RideListing",
]
