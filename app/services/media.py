"""Media upload gateway: stage incoming files locally, push them to the asset store, clean up."""

import asyncio
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile

from app.config import Settings, get_settings
from app.errors import BadRequestError

logger = logging.getLogger("channel_accounts.media")

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".avif"}


@dataclass(frozen=True)
class AssetRef:
    """Stable reference to an uploaded asset."""

    asset_id: str
    url: str


class AssetStoreClient(Protocol):
    def upload(self, path: str, resource_type: str, folder: str) -> dict[str, Any]: ...

    def destroy(self, asset_id: str) -> dict[str, Any]: ...


class CloudinaryClient:
    """Asset store client backed by the Cloudinary SDK."""

    def __init__(self, settings: Settings) -> None:
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )

    def upload(self, path: str, resource_type: str, folder: str) -> dict[str, Any]:
        return cloudinary.uploader.upload(path, resource_type=resource_type, folder=folder)

    def destroy(self, asset_id: str) -> dict[str, Any]:
        return cloudinary.uploader.destroy(asset_id)


class MediaUploadGateway:
    """Moves files from local temp storage to the remote asset store.

    Every local path handed to :meth:`upload` is removed before the call
    returns, whether the upload succeeded or not.
    """

    def __init__(self, client: AssetStoreClient, settings: Settings) -> None:
        self.client = client
        self.folder = settings.ASSET_FOLDER
        self.upload_dir = Path(settings.UPLOAD_DIR)
        self.max_upload_size_mb = settings.MAX_UPLOAD_SIZE_MB

    async def stage(self, upload: UploadFile) -> str:
        """Stream an incoming upload to a uniquely named temp file. Returns its path.

        Raises BadRequestError for unsupported file types or files over the size limit.
        """
        ext = Path(upload.filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise BadRequestError(f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}")
        if upload.content_type and not upload.content_type.startswith("image/"):
            raise BadRequestError(f"Invalid content type '{upload.content_type}'. Must be an image.")

        max_bytes = self.max_upload_size_mb * 1024 * 1024
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.upload_dir / f"{uuid.uuid4()}{ext}"
        file_size = 0
        chunk_size = 1024 * 64  # 64KB chunks

        try:
            with open(file_path, "wb") as f:
                while True:
                    chunk = await upload.read(chunk_size)
                    if not chunk:
                        break
                    file_size += len(chunk)
                    if file_size > max_bytes:
                        raise BadRequestError(f"File too large. Maximum: {self.max_upload_size_mb}MB")
                    f.write(chunk)
        except BaseException:
            file_path.unlink(missing_ok=True)
            raise

        return str(file_path)

    def upload(self, local_path: str | None) -> AssetRef | None:
        """Upload a local file. Returns None when no path is given or the upload fails."""
        if not local_path:
            return None

        try:
            response = self.client.upload(local_path, resource_type="auto", folder=self.folder)
        except Exception:
            logger.exception("Upload of %s failed", local_path)
            return None
        finally:
            self.discard_local_files([local_path])

        asset_id = response.get("public_id")
        url = response.get("secure_url")
        if not asset_id or not url:
            logger.warning("Asset store returned no id/url for %s", local_path)
            return None

        logger.info("Uploaded asset %s", asset_id)
        return AssetRef(asset_id=asset_id, url=url)

    async def upload_async(self, local_path: str | None) -> AssetRef | None:
        """Run :meth:`upload` in a worker thread so several uploads can overlap."""
        return await asyncio.to_thread(self.upload, local_path)

    def delete(self, asset_id: str | None) -> bool:
        """Remove a previously uploaded asset. Returns False if nothing was removed."""
        if not asset_id:
            return False
        try:
            result = self.client.destroy(asset_id)
        except Exception:
            logger.exception("Deleting asset %s failed", asset_id)
            return False
        deleted = result.get("result") == "ok"
        if not deleted:
            logger.warning("Asset store refused to delete %s: %s", asset_id, result.get("result"))
        return deleted

    def discard_local_files(self, paths: Iterable[str | None]) -> None:
        """Remove staged temp files. Empty entries are skipped."""
        for path in paths:
            if path:
                Path(path).unlink(missing_ok=True)


_media_gateway: MediaUploadGateway | None = None


def get_media_gateway() -> MediaUploadGateway:
    """Get singleton media upload gateway instance."""
    global _media_gateway
    if _media_gateway is None:
        settings = get_settings()
        _media_gateway = MediaUploadGateway(CloudinaryClient(settings), settings)
    return _media_gateway
