"""Ride state machine and models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class RideStatus(str, Enum):
    """Ride lifecycle states."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


VALID_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.ACTIVE: {RideStatus.COMPLETED, RideStatus.CANCELLED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

# Administrative override may leave a terminal state.
OVERRIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.ACTIVE: set(),
    RideStatus.COMPLETED: {RideStatus.ACTIVE, RideStatus.CANCELLED},
    RideStatus.CANCELLED: {RideStatus.ACTIVE},
}


def money(value: Decimal | float | int | str) -> Decimal:
    """Normalize an amount to a two-decimal Decimal."""
    return Decimal(str(value)).quantize(Decimal("0.01"))


class Ride(BaseModel):
    """One offered trip with a fixed seat capacity."""

    ride_id: str
    driver_id: str
    from_location: str = Field(min_length=1)
    to_location: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    total_seats: int = Field(gt=0)
    available_seats: int = Field(ge=0)
    departure_time: datetime
    status: RideStatus = Field(default=RideStatus.ACTIVE)
    created_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    @field_validator("price", mode="before")
    @classmethod
    def normalize_price(cls, v: object) -> Decimal:
        return money(v)  # type: ignore[arg-type]

    @field_validator("from_location", "to_location")
    @classmethod
    def strip_location(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Location must not be blank")
        return v

    @model_validator(mode="after")
    def validate_seats(self) -> "Ride":
        if self.available_seats > self.total_seats:
            raise ValueError(
                f"available_seats ({self.available_seats}) exceeds total_seats ({self.total_seats})"
            )
        return self

    @property
    def seats_consumed(self) -> int:
        return self.total_seats - self.available_seats

    @property
    def is_ride_completed(self) -> bool | None:
        """Presentation view of the status: None while active."""
        if self.status == RideStatus.ACTIVE:
            return None
        return self.status == RideStatus.COMPLETED

    def has_departed(self, now: datetime) -> bool:
        return self.departure_time <= now

    def can_transition_to(self, new_status: RideStatus, override: bool = False) -> bool:
        allowed = OVERRIDE_TRANSITIONS if override else VALID_TRANSITIONS
        return new_status in allowed[self.status]


class TimeOfDay(str, Enum):
    """Departure hour buckets, in UTC."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"

    @property
    def hours(self) -> tuple[int, int]:
        return TIME_OF_DAY_HOURS[self]


TIME_OF_DAY_HOURS: dict[TimeOfDay, tuple[int, int]] = {
    TimeOfDay.NIGHT: (0, 6),
    TimeOfDay.MORNING: (6, 12),
    TimeOfDay.AFTERNOON: (12, 18),
    TimeOfDay.EVENING: (18, 24),
}


class RideFilters(BaseModel):
    """Search criteria for bookable rides."""

    from_contains: str | None = None
    to_contains: str | None = None
    price_min: Decimal | None = Field(default=None, ge=0)
    price_max: Decimal | None = Field(default=None, ge=0)
    min_rating: float | None = Field(default=None, ge=1, le=5)
    departs_after: datetime | None = None
    departs_before: datetime | None = None
    time_of_day: TimeOfDay | None = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)

    @field_validator("from_contains", "to_contains")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def validate_ranges(self) -> "RideFilters":
        if (
            self.price_min is not None
            and self.price_max is not None
            and self.price_min > self.price_max
        ):
            raise ValueError("price_min must not exceed price_max")
        if (
            self.departs_after is not None
            and self.departs_before is not None
            and self.departs_after > self.departs_before
        ):
            raise ValueError("departs_after must not be later than departs_before")
        return self
