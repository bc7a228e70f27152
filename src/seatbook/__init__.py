"""Seat-inventory and booking-lifecycle service for shared ride marketplaces."""

__version__ = "0.1.0"
