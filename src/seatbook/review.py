"""Review models for passenger and driver ratings."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ReviewDirection(str, Enum):
    PASSENGER_TO_DRIVER = "passenger_to_driver"
    DRIVER_TO_PASSENGER = "driver_to_passenger"


class Review(BaseModel):
    review_id: str
    booking_id: str
    author_id: str
    subject_id: str
    direction: ReviewDirection
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)
    created_at: datetime | None = None

    @field_validator("comment")
    @classmethod
    def blank_comment_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class RatingSummary(BaseModel):
    """Average rating; ``average`` is None when nobody has rated yet."""

    subject_id: str
    average: float | None
    review_count: int

    @property
    def is_rated(self) -> bool:
        return self.review_count > 0
