from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.security import decode_token
from ..middlewares import principal_ctx_var
from ..schemas.auth import User, UserRole
from ..services.auth import find_user


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_principal(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> User:
    """Resolve the bearer access token into the operator making the request."""

    scheme, credentials = get_authorization_scheme_param(authorization)
    if not authorization or scheme.lower() != "bearer" or not credentials:
        raise _unauthorized("Authorization required")
    try:
        payload = decode_token(credentials, verify_type="access")
    except ValueError as exc:
        raise _unauthorized(str(exc)) from exc
    user = find_user(payload.sub)
    if user is None:
        raise _unauthorized("Unknown user")
    principal = f"{user.role.value.lower()}:{user.username}"
    principal_ctx_var.set(principal)
    request.state.principal = principal
    return user


async def require_admin(user: User = Depends(get_principal)) -> User:
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return user
