"""JWT Token Service."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.config import Settings, get_settings


class InvalidTokenError(Exception):
    """Raised when a token has a bad signature, a malformed payload, or has expired."""


class JWTService:
    """Issues and verifies access and refresh tokens.

    Access and refresh tokens are signed with distinct secrets and carry
    distinct lifetimes, so a token of one class never verifies as the other.
    """

    def __init__(self, settings: Settings) -> None:
        self.algorithm = settings.JWT_ALGORITHM
        self.access_secret = settings.ACCESS_TOKEN_SECRET
        self.access_expire_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
        self.refresh_secret = settings.REFRESH_TOKEN_SECRET
        self.refresh_expire_minutes = settings.REFRESH_TOKEN_EXPIRE_MINUTES

    def _sign(self, claims: dict[str, Any], secret: str, expire_minutes: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": now,
            "exp": now + timedelta(minutes=expire_minutes),
            # Unique per token so two tokens minted in the same second never collide
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def issue_access(self, claims: dict[str, Any]) -> str:
        """Sign a short-lived access token."""
        return self._sign(claims, self.access_secret, self.access_expire_minutes)

    def issue_refresh(self, claims: dict[str, Any]) -> str:
        """Sign a long-lived refresh token."""
        return self._sign(claims, self.refresh_secret, self.refresh_expire_minutes)

    def verify(self, token: str, secret: str) -> dict[str, Any]:
        """Decode and validate a token against the given secret."""
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e
        if "sub" not in payload:
            raise InvalidTokenError("Token payload has no subject")
        return payload

    def verify_access(self, token: str) -> dict[str, Any]:
        return self.verify(token, self.access_secret)

    def verify_refresh(self, token: str) -> dict[str, Any]:
        return self.verify(token, self.refresh_secret)


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService(get_settings())
    return _jwt_service
