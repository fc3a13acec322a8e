"""Session lifecycle: login, refresh-token rotation, logout and password change."""

import logging
from dataclasses import dataclass

from jose import JWTError
from sqlalchemy.orm import Session

from app.errors import (
    BadRequestError,
    ExpiredTokenError,
    InternalError,
    InvalidCredentialError,
    NotFoundError,
    UnauthorizedError,
)
from app.models.user import User
from app.services.jwt import InvalidTokenError, JWTService, get_jwt_service
from app.services.password import check_password_length
from app.services.user_store import UserStore, get_user_store

logger = logging.getLogger("channel_accounts.auth")


@dataclass
class TokenPair:
    """Freshly signed access and refresh tokens."""

    access_token: str
    refresh_token: str


@dataclass
class LoginResult:
    """Result of a successful login."""

    tokens: TokenPair
    user: User


def _is_blank(value: str | None) -> bool:
    return value is None or value.strip() == ""


class SessionManager:
    """Owns the Anonymous -> Authenticated -> Anonymous session state machine.

    Each account holds at most one valid refresh token: the value stored on the
    user record. Login and refresh overwrite it, logout clears it, and a
    presented refresh token is only honoured if it equals the stored one.
    """

    def __init__(self, store: UserStore, jwt_service: JWTService) -> None:
        self.store = store
        self.jwt = jwt_service

    def login(self, db: Session, username: str | None, email: str | None, password: str | None) -> LoginResult:
        """Verify credentials and start a new session, invalidating any previous refresh token."""
        if _is_blank(username) or _is_blank(email) or _is_blank(password):
            raise BadRequestError("All fields are required")

        user = self.store.find_one(db, username=username, email=email)
        if user is None:
            raise NotFoundError("User not found")

        if not self.store.verify_password(user, password):  # type: ignore[arg-type]
            raise InvalidCredentialError("Invalid user credentials")

        tokens = self._issue_tokens(db, user)
        logger.info("User %s logged in", user.id)
        return LoginResult(tokens=tokens, user=user)

    def refresh(self, db: Session, presented_token: str | None) -> TokenPair:
        """Exchange a refresh token for a new pair. Refresh tokens are single-use."""
        if not presented_token:
            raise UnauthorizedError("Unauthorized request")

        try:
            payload = self.jwt.verify_refresh(presented_token)
            user_id = int(payload["sub"])
        except (InvalidTokenError, ValueError) as e:
            raise UnauthorizedError("Invalid refresh token") from e

        user = self.store.find_by_id(db, user_id)
        if user is None:
            raise UnauthorizedError("Invalid refresh token")

        if presented_token != user.refresh_token:
            logger.warning("Rejected stale refresh token for user %s", user.id)
            raise ExpiredTokenError("Refresh token is expired or used")

        return self._issue_tokens(db, user)

    def logout(self, db: Session, user_id: int) -> None:
        """Clear the stored refresh token. Safe to call repeatedly."""
        self.store.find_by_id_and_update(db, user_id, {"refresh_token": None})
        logger.info("User %s logged out", user_id)

    def change_password(self, db: Session, user_id: int, old_password: str | None, new_password: str | None) -> None:
        """Replace the password hash after verifying the current password."""
        if _is_blank(old_password) or _is_blank(new_password):
            raise BadRequestError("All fields are required")
        check_password_length(new_password)  # type: ignore[arg-type]

        user = self.store.find_by_id(db, user_id)
        if user is None:
            raise NotFoundError("User not found")

        if not self.store.verify_password(user, old_password):  # type: ignore[arg-type]
            raise InvalidCredentialError("Incorrect old password")

        self.store.find_by_id_and_update(db, user_id, {"password": new_password})

    def _issue_tokens(self, db: Session, user: User) -> TokenPair:
        try:
            access_token = self.jwt.issue_access(
                {
                    "sub": str(user.id),
                    "username": user.username,
                    "email": user.email,
                    "fullName": user.full_name,
                }
            )
            refresh_token = self.jwt.issue_refresh({"sub": str(user.id)})
        except JWTError as e:
            raise InternalError("Something went wrong while generating tokens") from e

        self.store.find_by_id_and_update(db, user.id, {"refresh_token": refresh_token})
        return TokenPair(access_token=access_token, refresh_token=refresh_token)


_session_manager: SessionManager | None = None


def get_session_manager() -> SessionManager:
    """Get singleton session manager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(get_user_store(), get_jwt_service())
    return _session_manager
