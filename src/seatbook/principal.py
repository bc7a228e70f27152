"""Authenticated principal passed explicitly into every core operation."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    PASSENGER = "passenger"
    DRIVER = "driver"
    ADMIN = "admin"


class Principal(BaseModel):
    """Identity of the caller as resolved by the session provider."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role
    banned: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
