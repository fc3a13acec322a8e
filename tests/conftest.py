"""Pytest configuration and fixtures."""

import io
import itertools
import os
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.database import Base, get_db
from app.models.subscription import Subscription  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.video import Video, WatchHistoryEntry  # noqa: F401
from app.services.auth import get_session_manager
from app.services.media import MediaUploadGateway, get_media_gateway
from app.services.user_store import get_user_store

API = "/api/v1/users"


class FakeAssetStore:
    """In-memory stand-in for the Cloudinary client."""

    def __init__(self) -> None:
        self.assets: dict[str, dict] = {}
        self.failing_suffixes: set[str] = set()
        self.fail_destroy = False
        self._ids = itertools.count(1)

    def upload(self, path: str, resource_type: str, folder: str) -> dict:
        if Path(path).suffix in self.failing_suffixes:
            raise ConnectionError("asset store unavailable")
        asset_id = f"{folder}/asset-{next(self._ids)}"
        self.assets[asset_id] = {"resource_type": resource_type, "size": Path(path).stat().st_size}
        return {"public_id": asset_id, "secure_url": f"https://assets.example.com/{asset_id}.png"}

    def destroy(self, asset_id: str) -> dict:
        if self.fail_destroy:
            return {"result": "error"}
        if self.assets.pop(asset_id, None) is None:
            return {"result": "not found"}
        return {"result": "ok"}


def image_file(name: str = "avatar.png", size: int = 256) -> tuple:
    """Multipart tuple for a small dummy image."""
    content_type = "image/jpeg" if name.endswith((".jpg", ".jpeg")) else "image/png"
    return (name, io.BytesIO(b"\x89PNG" + b"\x00" * size), content_type)


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="asset_store")
def asset_store_fixture() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture(name="upload_dir")
def upload_dir_fixture(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture(name="media_gateway")
def media_gateway_fixture(asset_store: FakeAssetStore, upload_dir: Path) -> MediaUploadGateway:
    settings = Settings()
    settings.UPLOAD_DIR = str(upload_dir)
    settings.ASSET_FOLDER = "test-assets"
    return MediaUploadGateway(asset_store, settings)


@pytest.fixture(name="client")
def client_fixture(db_session: Session, media_gateway: MediaUploadGateway):
    """Create a test client with overridden DB and asset store, and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_gateway] = lambda: media_gateway
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session, asset_store: FakeAssetStore):
    """Create a test user with an uploaded avatar, log in, and return ids and tokens."""
    asset_store.assets["test-assets/seed-avatar"] = {"resource_type": "image", "size": 1}
    user = get_user_store().create(
        db_session,
        full_name="Test User",
        username="tester",
        email="test@example.com",
        password="password123",
        avatar_asset_id="test-assets/seed-avatar",
        avatar_url="https://assets.example.com/test-assets/seed-avatar.png",
    )
    result = get_session_manager().login(db_session, "tester", "test@example.com", "password123")

    return {
        "user_id": user.id,
        "username": user.username,
        "email": user.email,
        "token": result.tokens.access_token,
        "refresh_token": result.tokens.refresh_token,
    }


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(test_user: dict) -> dict:
    return {"Authorization": f"Bearer {test_user['token']}"}
