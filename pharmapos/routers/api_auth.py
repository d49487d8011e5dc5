from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..core.security import decode_token, issue_token_pair
from ..db.session import get_db
from ..deps.auth import get_principal
from ..schemas.auth import LoginRequest, RefreshRequest, TokenResponse, User
from ..services import auth as auth_service

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _token_response(user: User) -> TokenResponse:
    pair = issue_token_pair(user.username, user.role.value)
    return TokenResponse(**pair.model_dump(), user=user)


@router.post("/login", response_model=TokenResponse, summary="Exchange credentials for JWTs")
def api_login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = auth_service.login(db, payload.username, payload.password)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")
    return _token_response(user)


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
def api_refresh(payload: RefreshRequest):
    try:
        claims = decode_token(payload.refresh_token, verify_type="refresh")
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    user = auth_service.find_user(claims.sub)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return _token_response(user)


@router.post("/logout", status_code=204, response_class=Response)
def api_logout(db: Session = Depends(get_db), user: User = Depends(get_principal)):
    auth_service.logout(db)
    return Response(status_code=204)


@router.get("/me", response_model=User)
def api_me(user: User = Depends(get_principal)):
    return user
