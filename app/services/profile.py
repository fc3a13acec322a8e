"""Profile service: registration, account updates and avatar/cover replacement."""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.errors import BadRequestError, ConflictError, NotFoundError
from app.models.user import User
from app.services.media import AssetRef, MediaUploadGateway
from app.services.password import check_password_length
from app.services.user_store import UserStore

logger = logging.getLogger("channel_accounts.profile")


@dataclass
class RegistrationFields:
    full_name: str | None
    username: str | None
    email: str | None
    password: str | None

    def is_complete(self) -> bool:
        values = (self.full_name, self.username, self.email, self.password)
        return all(value is not None and value.strip() != "" for value in values)


@dataclass(frozen=True)
class _MediaSlot:
    """Column names and messages for one replaceable image on the user record."""

    label: str
    asset_id_column: str
    url_column: str
    required: bool


AVATAR = _MediaSlot("Avatar", "avatar_asset_id", "avatar_url", required=True)
COVER_IMAGE = _MediaSlot("Cover image", "cover_image_asset_id", "cover_image_url", required=False)


class ProfileService:
    """Coordinates the user store and the media gateway for profile mutations."""

    def __init__(self, store: UserStore, media: MediaUploadGateway) -> None:
        self.store = store
        self.media = media

    async def register_user(
        self,
        db: Session,
        fields: RegistrationFields,
        avatar_path: str | None,
        cover_image_path: str | None,
    ) -> User:
        """Create an account. The avatar must upload successfully; the cover image is optional."""
        try:
            self._check_registration(db, fields, avatar_path)
        except BaseException:
            self.media.discard_local_files([avatar_path, cover_image_path])
            raise

        avatar, cover_image = await asyncio.gather(
            self.media.upload_async(avatar_path),
            self.media.upload_async(cover_image_path),
        )

        if avatar is None:
            if cover_image is not None:
                self.media.delete(cover_image.asset_id)
            raise BadRequestError("Error uploading avatar")

        try:
            user = self.store.create(
                db,
                full_name=fields.full_name.strip(),  # type: ignore[union-attr]
                username=fields.username,
                email=fields.email,
                password=fields.password,
                avatar_asset_id=avatar.asset_id,
                avatar_url=avatar.url,
                cover_image_asset_id=cover_image.asset_id if cover_image else "",
                cover_image_url=cover_image.url if cover_image else "",
            )
        except BaseException:
            self._delete_assets([avatar, cover_image])
            raise

        logger.info("Registered user %s", user.id)
        return user

    def _check_registration(self, db: Session, fields: RegistrationFields, avatar_path: str | None) -> None:
        if not fields.is_complete():
            raise BadRequestError("All fields are required")
        check_password_length(fields.password)  # type: ignore[arg-type]

        if self.store.find_one(db, username=fields.username, email=fields.email):
            raise ConflictError("User already exists")

        if not avatar_path:
            raise BadRequestError("Avatar is required")

    def update_account(self, db: Session, user_id: int, full_name: str | None, email: str | None) -> User:
        """Update display name and email."""
        if not full_name or not full_name.strip() or not email or not email.strip():
            raise BadRequestError("All fields are required")

        user = self.store.find_by_id_and_update(db, user_id, {"full_name": full_name.strip(), "email": email})
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def replace_avatar(self, db: Session, user_id: int, local_path: str | None) -> User:
        return await self._replace_media(db, user_id, local_path, AVATAR)

    async def replace_cover_image(self, db: Session, user_id: int, local_path: str | None) -> User:
        return await self._replace_media(db, user_id, local_path, COVER_IMAGE)

    async def _replace_media(self, db: Session, user_id: int, local_path: str | None, slot: _MediaSlot) -> User:
        # Ordering: upload new, delete old, then point the record at the new asset.
        if not local_path:
            raise BadRequestError(f"{slot.label} is required")

        new_asset = await self.media.upload_async(local_path)
        if new_asset is None:
            raise BadRequestError(f"Unable to upload {slot.label.lower()}")

        user = self.store.find_by_id(db, user_id)
        if user is None:
            self.media.delete(new_asset.asset_id)
            raise NotFoundError("User not found")

        old_asset_id = getattr(user, slot.asset_id_column)
        if (old_asset_id or slot.required) and not self.media.delete(old_asset_id):
            self.media.delete(new_asset.asset_id)
            raise BadRequestError(f"Unable to delete old {slot.label.lower()}")

        try:
            updated = self.store.find_by_id_and_update(
                db,
                user_id,
                {slot.asset_id_column: new_asset.asset_id, slot.url_column: new_asset.url},
            )
        except BaseException:
            self.media.delete(new_asset.asset_id)
            raise
        if updated is None:
            self.media.delete(new_asset.asset_id)
            raise NotFoundError("User not found")
        logger.info("Replaced %s for user %s: %s -> %s", slot.label.lower(), user_id, old_asset_id, new_asset.asset_id)
        return updated

    def _delete_assets(self, assets: list[AssetRef | None]) -> None:
        for asset in assets:
            if asset is not None:
                self.media.delete(asset.asset_id)
