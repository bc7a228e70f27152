from .access import require_active, require_owner_or_admin, require_role
from .service import AccountService, LoginResult
from .tokens import create_access_token, decode_token, hash_password, verify_password

__all__ = [
    "AccountService",
    "LoginResult",
    "create_access_token",
    "decode_token",
    "hash_password",
    "require_active",
    "require_owner_or_admin",
    "require_role",
    "verify_password",
]
