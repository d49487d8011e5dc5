"""Static operator accounts and the persisted current-session record."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from ..crud.kv_store import SESSION_KEY, delete_value, get_value, set_value
from ..schemas.auth import User, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    password: str
    user: User


ACCOUNTS: dict[str, Account] = {
    "admin": Account(
        password="admin123",
        user=User(id="u1", username="admin", name="Dr. Smith", role=UserRole.ADMIN),
    ),
    "staff": Account(
        password="staff123",
        user=User(id="u2", username="staff", name="John Doe", role=UserRole.STAFF),
    ),
}


def find_user(username: str) -> User | None:
    account = ACCOUNTS.get(username)
    return account.user if account else None


def authenticate(username: str, password: str) -> User | None:
    account = ACCOUNTS.get(username)
    if account is None or not hmac.compare_digest(account.password.encode(), password.encode()):
        logger.warning("auth.failed", extra={"extra_data": {"username": username}})
        return None
    return account.user


def login(db: Session, username: str, password: str) -> User | None:
    """Check credentials and remember the user as the current session."""

    user = authenticate(username, password)
    if user is None:
        return None
    set_value(db, SESSION_KEY, user.model_dump(mode="json"))
    logger.info("auth.login", extra={"extra_data": {"username": user.username, "role": user.role.value}})
    return user


def logout(db: Session) -> None:
    delete_value(db, SESSION_KEY)


def current_user(db: Session) -> User | None:
    raw = get_value(db, SESSION_KEY)
    return User.model_validate(raw) if raw else None
