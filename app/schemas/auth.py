"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from app.schemas.user import UserResponse

CAMEL_CASE = {"alias_generator": to_camel, "populate_by_name": True}


class LoginRequest(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class RefreshRequest(BaseModel):
    refresh_token: str | None = None

    model_config = CAMEL_CASE


class ChangePasswordRequest(BaseModel):
    old_password: str | None = None
    new_password: str | None = None

    model_config = CAMEL_CASE


class UpdateAccountRequest(BaseModel):
    full_name: str | None = None
    email: str | None = None

    model_config = CAMEL_CASE


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str

    model_config = CAMEL_CASE


class LoginResponse(TokenResponse):
    user: UserResponse
