from .lifecycle import BookingLifecycleManager, BookingView, RideCancellation
from .reviews import ReviewService

__all__ = ["BookingLifecycleManager", "BookingView", "ReviewService", "RideCancellation"]
