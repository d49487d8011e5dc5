"""Bearer tokens for the API.

Login hands out an access token and a longer-lived refresh token, both HS256
JWTs signed with ``JWT_SECRET``. Each carries the username as ``sub``, the
user's role, and a ``typ`` claim so a refresh token cannot be replayed as an
access token.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings

ALGORITHM = "HS256"
AUDIENCE = "pharmapos-clients"
ISSUER = "pharmapos"


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    iat: datetime
    typ: str
    aud: str
    iss: str
    role: str


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _encode_token(username: str, role: str, lifetime: timedelta, token_type: str) -> str:
    issued = _now()
    claims: dict[str, Any] = {
        "sub": username,
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int((issued + lifetime).timestamp()),
        "typ": token_type,
        "aud": AUDIENCE,
        "iss": ISSUER,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def issue_token_pair(username: str, role: str) -> TokenPair:
    access_lifetime = timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)
    refresh_lifetime = timedelta(days=settings.JWT_REFRESH_TTL_DAYS)
    return TokenPair(
        access_token=_encode_token(username, role, access_lifetime, "access"),
        refresh_token=_encode_token(username, role, refresh_lifetime, "refresh"),
        expires_in=int(access_lifetime.total_seconds()),
    )


def decode_token(token: str, *, verify_type: str | None = None) -> TokenPayload:
    """Verify signature, audience, issuer and expiry; raise ``ValueError`` on any failure."""

    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            issuer=ISSUER,
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    try:
        payload = TokenPayload.model_validate(claims)
    except ValidationError as exc:
        raise ValueError("Invalid token payload") from exc
    if verify_type and payload.typ != verify_type:
        raise ValueError("Invalid token type")
    return payload
