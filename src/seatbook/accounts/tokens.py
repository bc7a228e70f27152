"""Signed bearer tokens and password hashing."""

from datetime import datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from seatbook.core.exceptions import AuthenticationError
from seatbook.db.utils import utc_now
from seatbook.settings import AuthSettings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(
    user_id: str, settings: AuthSettings, now: datetime | None = None
) -> str:
    issued_at = now or utc_now()
    claims = {
        "sub": user_id,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(minutes=settings.token_expire_minutes)).timestamp()),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str, settings: AuthSettings) -> str:
    """Return the user ID carried by a valid, unexpired token."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e
    subject = claims.get("sub")
    if not subject:
        raise AuthenticationError("Invalid or expired token")
    return str(subject)
