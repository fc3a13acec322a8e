"""Pydantic schemas for user payloads and the response envelope."""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from app.models.user import User

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: ``{"message": ..., "data": ...}``."""

    message: str
    data: T


class AssetResponse(BaseModel):
    asset_id: str
    url: str

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class UserResponse(BaseModel):
    """Sanitized user: never carries the password hash or refresh token."""

    id: int
    username: str
    email: str
    full_name: str
    avatar: AssetResponse
    cover_image: AssetResponse
    created_at: datetime
    updated_at: datetime

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            avatar=AssetResponse(asset_id=user.avatar_asset_id, url=user.avatar_url),
            cover_image=AssetResponse(asset_id=user.cover_image_asset_id or "", url=user.cover_image_url or ""),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
