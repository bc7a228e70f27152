from .aggregator import DriverStats, EarningsAggregator, PlatformOverview

__all__ = ["DriverStats", "EarningsAggregator", "PlatformOverview"]
