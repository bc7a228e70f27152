from typing import Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from seatbook.core.exceptions import ConfigurationError


class DatabaseSettings(BaseSettings):
    url: str = "sqlite:///./data/seatbook.db"
    busy_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=120.0,
        description="Seconds a writer waits for the database lock before reporting a conflict",
    )
    echo: bool = False

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if "://" not in v:
            raise ValueError("Database URL must be a SQLAlchemy URL, e.g. sqlite:///path.db")
        return v


class BookingSettings(BaseSettings):
    """Seat inventory and booking lifecycle policy."""

    modification_cutoff_minutes: int = Field(
        default=0,
        ge=0,
        le=7 * 24 * 60,
        description="Bookings cannot be edited or cancelled within this many minutes of departure",
    )
    max_seats_per_booking: int = Field(default=8, ge=1, le=20)
    conflict_max_attempts: int = Field(default=5, ge=1, le=10)
    conflict_base_delay: float = Field(default=0.05, ge=0.0, le=5.0)
    conflict_multiplier: float = Field(default=2.0, ge=1.0, le=5.0)
    conflict_max_delay: float = Field(default=1.0, ge=0.0, le=30.0)

    model_config = SettingsConfigDict(env_prefix="BOOKING_")


class AuthSettings(BaseSettings):
    secret_key: str = ""
    algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"
    token_expire_minutes: int = Field(default=60 * 24 * 7, ge=5)
    admin_phone: str = ""
    admin_password: str = ""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    @model_validator(mode="after")
    def validate_credentials_provided(self) -> "AuthSettings":
        if not self.secret_key:
            raise ValueError("Required credential not provided: AUTH_SECRET_KEY")
        if bool(self.admin_phone) != bool(self.admin_password):
            raise ValueError("AUTH_ADMIN_PHONE and AUTH_ADMIN_PASSWORD must be set together")
        return self


class LoggingSettings(BaseSettings):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["text", "json"] = "text"
    environment: str = "development"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class CORSSettings(BaseSettings):
    origins: str = "http://localhost:5173,http://localhost:3000"

    model_config = SettingsConfigDict(env_prefix="CORS_")


class RateLimitSettings(BaseSettings):
    enabled: bool = True
    booking_writes: str = "30/minute"
    auth: str = "10/minute"

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_")


class ServerSettings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    model_config = SettingsConfigDict(env_prefix="SERVER_")


class Settings(BaseSettings):
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    booking: BookingSettings = Field(default_factory=BookingSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        ConfigurationError: a variable is missing or out of range
    """
    try:
        return Settings()
    except ValidationError as e:
        problems = [
            {"setting": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ]
        summary = "; ".join(f"{p['setting'] or 'settings'}: {p['message']}" for p in problems)
        raise ConfigurationError(
            f"Invalid configuration: {summary}", details={"errors": problems}
        ) from e
