"""User account and driver profile models."""

import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from seatbook.principal import Principal, Role

PHONE_PATTERN = re.compile(r"^\+?\d{7,15}$")


def normalize_phone(phone: str) -> str:
    """Strip whitespace and common separators; phone numbers are identifiers, not verified."""
    cleaned = re.sub(r"[\s\-().]", "", phone.strip())
    if not PHONE_PATTERN.match(cleaned):
        raise ValueError("Phone number must contain 7 to 15 digits")
    return cleaned


class DriverReviewStatus(str, Enum):
    """Admin listing buckets for driver profiles."""

    PENDING = "pending"
    VERIFIED = "verified"
    BANNED = "banned"


class UserAccount(BaseModel):
    user_id: str
    phone: str
    role: Role
    is_banned: bool = False
    created_at: datetime | None = None

    def to_principal(self) -> Principal:
        return Principal(user_id=self.user_id, role=self.role, banned=self.is_banned)


class DriverProfile(BaseModel):
    """Verification details submitted by a driver.

    Document fields hold opaque references (URLs or encoded blobs) and are
    never inspected.
    """

    user_id: str
    primary_phone: str
    secondary_phone: str | None = None
    address: str = Field(min_length=1)
    identity_number: str = Field(min_length=4, max_length=32)
    driving_license_ref: str = Field(min_length=1)
    photograph_ref: str | None = None
    vehicle_number: str = Field(min_length=1, max_length=32)
    car_make: str = Field(min_length=1)
    car_model: str = Field(min_length=1)
    is_verified: bool = False
    completed_rides: int = Field(default=0, ge=0)
    is_banned: bool = False
    created_at: datetime | None = None

    @field_validator("primary_phone")
    @classmethod
    def validate_primary_phone(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("secondary_phone")
    @classmethod
    def validate_secondary_phone(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return normalize_phone(v)

    @field_validator("vehicle_number")
    @classmethod
    def upper_vehicle_number(cls, v: str) -> str:
        return v.strip().upper()
