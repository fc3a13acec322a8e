"""User account API endpoints."""

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import (
    REFRESH_COOKIE_NAME,
    clear_auth_cookies,
    get_current_user,
    get_profile_service,
    set_auth_cookies,
)
from app.models.user import User
from app.rate_limit import limiter
from app.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    TokenResponse,
    UpdateAccountRequest,
)
from app.schemas.channel import ChannelProfileResponse, WatchedVideoResponse
from app.schemas.user import ApiResponse, UserResponse
from app.services.auth import get_session_manager
from app.services.channel import get_channel_service
from app.services.media import MediaUploadGateway
from app.services.profile import ProfileService, RegistrationFields

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


async def _stage_uploads(media: MediaUploadGateway, uploads: list[UploadFile | None]) -> list[str | None]:
    """Stage each present upload to a temp file. If any staging fails, discard whatever was already staged."""
    staged: list[str | None] = []
    try:
        for upload in uploads:
            if upload is None or not upload.filename:
                staged.append(None)
            else:
                staged.append(await media.stage(upload))
    except BaseException:
        media.discard_local_files(staged)
        raise
    return staged


@router.post("/register", response_model=ApiResponse[UserResponse], status_code=201)
@limiter.limit("5/minute")
async def register(
    request: Request,
    full_name: str | None = Form(None, alias="fullName"),
    username: str | None = Form(None),
    email: str | None = Form(None),
    password: str | None = Form(None),
    avatar: UploadFile | None = File(None),
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ApiResponse:
    """Register a new account with an avatar and an optional cover image."""
    avatar_path, cover_image_path = await _stage_uploads(service.media, [avatar, cover_image])
    fields = RegistrationFields(full_name=full_name, username=username, email=email, password=password)
    user = await service.register_user(db, fields, avatar_path, cover_image_path)
    return ApiResponse(message="User created successfully", data=UserResponse.from_user(user))


@router.post("/login", response_model=ApiResponse[LoginResponse])
@limiter.limit("10/minute")
def login(request: Request, response: Response, body: LoginRequest, db: Session = Depends(get_db)) -> ApiResponse:
    """Authenticate and receive an access/refresh token pair (also set as cookies)."""
    result = get_session_manager().login(db, body.username, body.email, body.password)
    set_auth_cookies(response, result.tokens)
    return ApiResponse(
        message="Login successful",
        data=LoginResponse(
            user=UserResponse.from_user(result.user),
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        ),
    )


@router.get("/logout", response_model=ApiResponse[dict])
def logout(response: Response, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> ApiResponse:
    """End the session: forget the stored refresh token and clear cookies."""
    get_session_manager().logout(db, user.id)
    clear_auth_cookies(response)
    return ApiResponse(message="Logout successful", data={})


@router.api_route("/refresh-token", methods=["GET", "POST"], response_model=ApiResponse[TokenResponse])
@limiter.limit("30/minute")
def refresh_token(
    request: Request,
    response: Response,
    body: RefreshRequest | None = None,
    db: Session = Depends(get_db),
) -> ApiResponse:
    """Rotate the refresh token presented by cookie or JSON body."""
    presented = request.cookies.get(REFRESH_COOKIE_NAME) or (body.refresh_token if body else None)
    tokens = get_session_manager().refresh(db, presented)
    set_auth_cookies(response, tokens)
    return ApiResponse(
        message="Access token refreshed successfully",
        data=TokenResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token),
    )


@router.post("/change-password", response_model=ApiResponse[dict])
def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse:
    """Change the current user's password."""
    get_session_manager().change_password(db, user.id, body.old_password, body.new_password)
    return ApiResponse(message="Password changed successfully", data={})


@router.get("/current-user", response_model=ApiResponse[UserResponse])
def current_user(user: User = Depends(get_current_user)) -> ApiResponse:
    """Return the authenticated user."""
    return ApiResponse(message="Current user", data=UserResponse.from_user(user))


@router.patch("/update-account", response_model=ApiResponse[UserResponse])
def update_account(
    body: UpdateAccountRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ApiResponse:
    """Update full name and email."""
    updated = service.update_account(db, user.id, body.full_name, body.email)
    return ApiResponse(message="Account details updated successfully", data=UserResponse.from_user(updated))


@router.patch("/update-avatar", response_model=ApiResponse[UserResponse])
async def update_avatar(
    avatar: UploadFile | None = File(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ApiResponse:
    """Replace the avatar image."""
    (avatar_path,) = await _stage_uploads(service.media, [avatar])
    updated = await service.replace_avatar(db, user.id, avatar_path)
    return ApiResponse(message="Avatar updated successfully", data=UserResponse.from_user(updated))


@router.patch("/update-cover", response_model=ApiResponse[UserResponse])
async def update_cover_image(
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ApiResponse:
    """Replace the cover image."""
    (cover_image_path,) = await _stage_uploads(service.media, [cover_image])
    updated = await service.replace_cover_image(db, user.id, cover_image_path)
    return ApiResponse(message="Cover image updated successfully", data=UserResponse.from_user(updated))


@router.get("/channel/{username}", response_model=ApiResponse[ChannelProfileResponse])
def channel_profile(
    username: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse:
    """Get a channel's public profile with subscription counts."""
    profile = get_channel_service().get_channel_profile(db, username, viewer_id=user.id)
    return ApiResponse(message="User channel fetched successfully", data=ChannelProfileResponse.from_profile(profile))


@router.get("/watch-history", response_model=ApiResponse[list[WatchedVideoResponse]])
def watch_history(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> ApiResponse:
    """Get the current user's watch history."""
    videos = get_channel_service().get_watch_history(db, user.id)
    return ApiResponse(
        message="Watch history fetched successfully",
        data=[WatchedVideoResponse.from_watched(video) for video in videos],
    )
