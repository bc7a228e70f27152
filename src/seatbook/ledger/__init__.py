"""Per-ride seat inventory."""

from .seat_ledger import SeatLedger

__all__ = ["SeatLedger"]
