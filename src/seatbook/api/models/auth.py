"""Request and response models for registration and login."""

from typing import Literal

from pydantic import BaseModel, Field

from seatbook.account import UserAccount


class RegisterRequest(BaseModel):
    phone: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=1, max_length=128)
    role: Literal["passenger", "driver"] = "passenger"


class LoginRequest(BaseModel):
    phone: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=1, max_length=128)


class AccountResponse(BaseModel):
    user_id: str
    phone: str
    role: str
    is_banned: bool

    @classmethod
    def from_domain(cls, account: UserAccount) -> "AccountResponse":
        return cls(
            user_id=account.user_id,
            phone=account.phone,
            role=account.role.value,
            is_banned=account.is_banned,
        )


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: AccountResponse
