"""Authorization checks applied at the boundary of every core operation."""

from seatbook.core.exceptions import AuthorizationError
from seatbook.principal import Principal, Role


def require_active(principal: Principal) -> None:
    """Reject banned principals regardless of what the client shows them."""
    if principal.banned:
        raise AuthorizationError(
            "Account is banned", details={"user_id": principal.user_id, "reason": "banned"}
        )


def require_role(principal: Principal, *roles: Role) -> None:
    require_active(principal)
    if principal.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        raise AuthorizationError(
            f"Operation requires role: {allowed}",
            details={"user_id": principal.user_id, "role": principal.role.value},
        )


def require_owner_or_admin(principal: Principal, owner_id: str) -> None:
    require_active(principal)
    if principal.user_id != owner_id and not principal.is_admin:
        raise AuthorizationError(
            "Not permitted to act on another user's resource",
            details={"user_id": principal.user_id},
        )
