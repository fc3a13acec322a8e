"""Authentication and service dependencies for FastAPI routes."""

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.errors import UnauthorizedError
from app.models.user import User
from app.services.auth import TokenPair
from app.services.jwt import InvalidTokenError, get_jwt_service
from app.services.media import MediaUploadGateway, get_media_gateway
from app.services.profile import ProfileService
from app.services.user_store import get_user_store

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "refreshToken"


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Extract and validate the access token from cookie or Bearer header. Raises 401 if invalid.

    The loaded user is also attached to ``request.state.user``.
    """
    token: str | None = request.cookies.get(ACCESS_COOKIE_NAME)

    if not token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header[7:]

    if not token:
        raise UnauthorizedError("Unauthorized request")

    jwt_service = get_jwt_service()
    try:
        payload = jwt_service.verify_access(token)
        user_id = int(payload["sub"])
    except (InvalidTokenError, ValueError):
        raise UnauthorizedError("Invalid or expired access token") from None

    user = get_user_store().find_by_id(db, user_id)
    if user is None:
        raise UnauthorizedError("Invalid access token")

    request.state.user = user
    return user


def get_profile_service(media: MediaUploadGateway = Depends(get_media_gateway)) -> ProfileService:
    return ProfileService(get_user_store(), media)


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    """Set the access and refresh token cookies."""
    settings = get_settings()
    response.set_cookie(
        key=ACCESS_COOKIE_NAME,
        value=tokens.access_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=tokens.refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_MINUTES * 60,
    )


def clear_auth_cookies(response: Response) -> None:
    """Clear both authentication cookies."""
    secure = get_settings().COOKIE_SECURE
    response.delete_cookie(key=ACCESS_COOKIE_NAME, httponly=True, secure=secure, samesite="lax")
    response.delete_cookie(key=REFRESH_COOKIE_NAME, httponly=True, secure=secure, samesite="lax")
