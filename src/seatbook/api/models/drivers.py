"""Request models for driver profiles."""

from pydantic import BaseModel


class DriverProfileRequest(BaseModel):
    primary_phone: str
    secondary_phone: str | None = None
    address: str
    identity_number: str
    driving_license_ref: str
    photograph_ref: str | None = None
    vehicle_number: str
    car_make: str
    car_model: str
