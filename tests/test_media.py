"""Tests for the media upload gateway and avatar/cover replacement."""

import asyncio
import io
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.config import Settings
from app.errors import BadRequestError, NotFoundError
from app.models.user import User
from app.services.media import AssetRef, CloudinaryClient, MediaUploadGateway
from app.services.password import PasswordHasher
from app.services.profile import ProfileService, RegistrationFields
from app.services.user_store import UserStore
from conftest import API, FakeAssetStore, image_file


def write_temp(directory: Path, name: str = "staged.png") -> str:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(b"\x89PNG" + b"\x00" * 64)
    return str(path)


class TestMediaUploadGateway:
    """Tests for upload, delete and local cleanup."""

    def test_upload_returns_reference_and_removes_file(
        self, media_gateway: MediaUploadGateway, asset_store: FakeAssetStore, upload_dir: Path
    ):
        path = write_temp(upload_dir)
        ref = media_gateway.upload(path)
        assert isinstance(ref, AssetRef)
        assert ref.asset_id.startswith("test-assets/")
        assert ref.url.startswith("https://")
        assert asset_store.assets[ref.asset_id]["resource_type"] == "auto"
        assert not Path(path).exists()

    def test_upload_failure_removes_file(
        self, media_gateway: MediaUploadGateway, asset_store: FakeAssetStore, upload_dir: Path
    ):
        asset_store.failing_suffixes.add(".png")
        path = write_temp(upload_dir)
        assert media_gateway.upload(path) is None
        assert not Path(path).exists()

    def test_upload_incomplete_response(self, media_gateway: MediaUploadGateway, upload_dir: Path):
        class NoUrlStore(FakeAssetStore):
            def upload(self, path, resource_type, folder):
                return {"public_id": "x"}

        gateway = MediaUploadGateway(NoUrlStore(), _settings_for(upload_dir))
        path = write_temp(upload_dir)
        assert gateway.upload(path) is None
        assert not Path(path).exists()

    def test_upload_empty_path(self, media_gateway: MediaUploadGateway):
        assert media_gateway.upload("") is None
        assert media_gateway.upload(None) is None

    def test_delete(self, media_gateway: MediaUploadGateway, asset_store: FakeAssetStore, upload_dir: Path):
        ref = media_gateway.upload(write_temp(upload_dir))
        assert media_gateway.delete(ref.asset_id) is True
        assert ref.asset_id not in asset_store.assets
        assert media_gateway.delete(ref.asset_id) is False

    def test_delete_empty_id(self, media_gateway: MediaUploadGateway):
        assert media_gateway.delete("") is False

    def test_delete_refused(self, media_gateway: MediaUploadGateway, asset_store: FakeAssetStore, upload_dir: Path):
        ref = media_gateway.upload(write_temp(upload_dir))
        asset_store.fail_destroy = True
        assert media_gateway.delete(ref.asset_id) is False

    def test_concurrent_uploads(self, media_gateway: MediaUploadGateway, upload_dir: Path):
        first = write_temp(upload_dir, "a.png")
        second = write_temp(upload_dir, "b.png")

        async def upload_both():
            return await asyncio.gather(media_gateway.upload_async(first), media_gateway.upload_async(second))

        a, b = asyncio.run(upload_both())
        assert a.asset_id != b.asset_id
        assert list(upload_dir.glob("*")) == []

    def test_stage_writes_file(self, media_gateway: MediaUploadGateway, upload_dir: Path):
        upload = UploadFile(file=io.BytesIO(b"\x89PNG1234"), filename="me.PNG")
        path = asyncio.run(media_gateway.stage(upload))
        assert Path(path).parent == upload_dir
        assert Path(path).suffix == ".png"
        assert Path(path).read_bytes() == b"\x89PNG1234"

    def test_stage_rejects_oversized(self, asset_store: FakeAssetStore, upload_dir: Path):
        settings = _settings_for(upload_dir)
        settings.MAX_UPLOAD_SIZE_MB = 0
        gateway = MediaUploadGateway(asset_store, settings)
        upload = UploadFile(file=io.BytesIO(b"\x00" * 10), filename="big.png")
        with pytest.raises(BadRequestError):
            asyncio.run(gateway.stage(upload))
        assert list(upload_dir.glob("*")) == []


def _settings_for(upload_dir: Path) -> Settings:
    settings = Settings()
    settings.UPLOAD_DIR = str(upload_dir)
    settings.ASSET_FOLDER = "test-assets"
    return settings


class TestReplaceAvatar:
    """Tests for the avatar replacement flow."""

    def test_replace_avatar(
        self, client: TestClient, auth_headers: dict, asset_store: FakeAssetStore, db_session: Session, upload_dir
    ):
        """Old asset is deleted and the record points at the new one."""
        response = client.patch(f"{API}/update-avatar", files={"avatar": image_file()}, headers=auth_headers)
        assert response.status_code == 200
        avatar = response.json()["data"]["avatar"]
        assert "test-assets/seed-avatar" not in asset_store.assets
        assert avatar["assetId"] in asset_store.assets

        user = db_session.query(User).filter(User.username == "tester").first()
        db_session.refresh(user)
        assert user.avatar_asset_id == avatar["assetId"]
        assert user.avatar_url == avatar["url"]
        assert list(upload_dir.glob("*")) == []

    def test_replace_avatar_missing_file(self, client: TestClient, auth_headers: dict):
        response = client.patch(f"{API}/update-avatar", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Avatar is required"

    def test_replace_avatar_upload_fails(
        self, client: TestClient, auth_headers: dict, asset_store: FakeAssetStore, upload_dir
    ):
        """Failed upload leaves the old avatar in place and no temp file behind."""
        asset_store.failing_suffixes.add(".png")
        response = client.patch(f"{API}/update-avatar", files={"avatar": image_file()}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Unable to upload avatar"
        assert "test-assets/seed-avatar" in asset_store.assets
        assert list(upload_dir.glob("*")) == []

    def test_replace_avatar_old_delete_fails(
        self, client: TestClient, auth_headers: dict, asset_store: FakeAssetStore, db_session: Session
    ):
        """If the old asset cannot be deleted, the record is unchanged and the new upload is discarded."""
        asset_store.assets.pop("test-assets/seed-avatar")
        response = client.patch(f"{API}/update-avatar", files={"avatar": image_file()}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Unable to delete old avatar"
        assert asset_store.assets == {}

        user = db_session.query(User).filter(User.username == "tester").first()
        db_session.refresh(user)
        assert user.avatar_asset_id == "test-assets/seed-avatar"

    def test_replace_avatar_requires_auth(self, client: TestClient):
        response = client.patch(f"{API}/update-avatar", files={"avatar": image_file()})
        assert response.status_code == 401


class TestReplaceCoverImage:
    """Tests for the cover image replacement flow."""

    def test_set_first_cover_image(self, client: TestClient, auth_headers: dict, asset_store: FakeAssetStore):
        """With no previous cover there is nothing to delete."""
        response = client.patch(
            f"{API}/update-cover", files={"coverImage": image_file("cover.jpg")}, headers=auth_headers
        )
        assert response.status_code == 200
        cover = response.json()["data"]["coverImage"]
        assert cover["assetId"] in asset_store.assets

    def test_replace_cover_image(self, client: TestClient, auth_headers: dict, asset_store: FakeAssetStore):
        first = client.patch(
            f"{API}/update-cover", files={"coverImage": image_file("cover.jpg")}, headers=auth_headers
        ).json()["data"]["coverImage"]["assetId"]
        second = client.patch(
            f"{API}/update-cover", files={"coverImage": image_file("cover2.jpg")}, headers=auth_headers
        ).json()["data"]["coverImage"]["assetId"]
        assert first != second
        assert first not in asset_store.assets
        assert second in asset_store.assets

    def test_replace_cover_missing_file(self, client: TestClient, auth_headers: dict):
        response = client.patch(f"{API}/update-cover", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Cover image is required"


class TestCloudinaryClient:
    """The SDK wrapper forwards to cloudinary.uploader."""

    @patch("app.services.media.cloudinary.uploader.upload")
    def test_upload_forwards_options(self, mock_upload):
        mock_upload.return_value = {"public_id": "folder/abc", "secure_url": "https://res.example.com/abc.png"}
        client = CloudinaryClient(Settings())
        result = client.upload("/tmp/x.png", resource_type="auto", folder="folder")
        mock_upload.assert_called_once_with("/tmp/x.png", resource_type="auto", folder="folder")
        assert result["public_id"] == "folder/abc"

    @patch("app.services.media.cloudinary.uploader.destroy")
    def test_destroy_forwards_id(self, mock_destroy):
        mock_destroy.return_value = {"result": "ok"}
        assert CloudinaryClient(Settings()).destroy("folder/abc") == {"result": "ok"}
        mock_destroy.assert_called_once_with("folder/abc")


class BrokenReader(io.BytesIO):
    """File object whose second read fails, like a dropped client connection."""

    def __init__(self) -> None:
        super().__init__(b"\x89PNG" + b"\x00" * 64)
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        if self.reads > 1:
            raise OSError("connection reset")
        return super().read(size)


class LookupFailingStore(UserStore):
    def find_one(self, db, username=None, email=None):
        raise OperationalError("SELECT", {}, Exception("database is locked"))


class CreateFailingStore(UserStore):
    def create(self, db, **fields):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))


class VanishingUserStore(UserStore):
    def find_by_id_and_update(self, db, user_id, patch):
        return None


def _fields() -> RegistrationFields:
    return RegistrationFields(full_name="Dana D", username="dana", email="dana@example.com", password="secret123")


class TestFailureCleanup:
    """Temp files and uploaded assets are cleaned up on unexpected failures."""

    def test_stage_read_error_removes_partial_file(self, media_gateway: MediaUploadGateway, upload_dir: Path):
        upload = UploadFile(file=BrokenReader(), filename="me.png")
        with pytest.raises(OSError):
            asyncio.run(media_gateway.stage(upload))
        assert list(upload_dir.glob("*")) == []

    def test_register_lookup_error_discards_staged_files(
        self, db_session: Session, media_gateway: MediaUploadGateway, asset_store: FakeAssetStore, upload_dir: Path
    ):
        service = ProfileService(LookupFailingStore(PasswordHasher(rounds=4)), media_gateway)
        avatar = write_temp(upload_dir, "avatar.png")
        cover = write_temp(upload_dir, "cover.png")
        with pytest.raises(OperationalError):
            asyncio.run(service.register_user(db_session, _fields(), avatar, cover))
        assert list(upload_dir.glob("*")) == []
        assert asset_store.assets == {}

    def test_register_store_error_deletes_uploaded_assets(
        self, db_session: Session, media_gateway: MediaUploadGateway, asset_store: FakeAssetStore, upload_dir: Path
    ):
        service = ProfileService(CreateFailingStore(PasswordHasher(rounds=4)), media_gateway)
        avatar = write_temp(upload_dir, "avatar.png")
        cover = write_temp(upload_dir, "cover.png")
        with pytest.raises(OperationalError):
            asyncio.run(service.register_user(db_session, _fields(), avatar, cover))
        assert asset_store.assets == {}
        assert list(upload_dir.glob("*")) == []

    def test_replace_when_user_vanishes(
        self,
        db_session: Session,
        test_user: dict,
        media_gateway: MediaUploadGateway,
        asset_store: FakeAssetStore,
        upload_dir: Path,
    ):
        """The record disappearing before the update is a NotFound, and the new asset is removed."""
        service = ProfileService(VanishingUserStore(PasswordHasher(rounds=4)), media_gateway)
        with pytest.raises(NotFoundError):
            asyncio.run(service.replace_avatar(db_session, test_user["user_id"], write_temp(upload_dir)))
        assert asset_store.assets == {}
