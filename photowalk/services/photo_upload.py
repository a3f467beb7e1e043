"""Store uploaded photos and link their URLs to photo records."""
import asyncio
import base64
import logging
import mimetypes
import os
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from photowalk.config import Settings
from photowalk.models.uploaded_image import UploadedImage
from photowalk.models.walk import Photo, Walk
from photowalk.utils.result import InvalidInput, Ok, Result, ServiceError

logger = logging.getLogger(__name__)

# bound to 1200x1200, automatic quality and format
TRANSFORMATION = [
    {"width": 1200, "height": 1200, "crop": "limit"},
    {"quality": "auto"},
    {"fetch_format": "auto"},
]

LOCAL_UPLOAD_SUBDIR = "uploads"

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def safe_name(name: str) -> str:
    """Reduce a name to characters that are safe in file names and public ids."""
    return _UNSAFE_NAME_CHARS.sub("_", name)


@dataclass(frozen=True)
class StoredImage:
    image_url: str
    public_id: str


@dataclass
class UploadItem:
    data: bytes
    content_type: str
    photo_id: str = ""
    walk_id: str | None = None
    mission_name: str | None = None


class ImageStore(Protocol):
    async def store(self, data: bytes, content_type: str, name: str) -> StoredImage: ...


class CloudinaryImageStore:
    def __init__(self, settings: Settings):
        self.settings = settings

    def _upload(self, data_uri: str, name: str) -> dict:
        import cloudinary.uploader

        # credentials travel with the call instead of the SDK's global config
        return cloudinary.uploader.upload(
            data_uri,
            folder=self.settings.cloudinary_folder,
            public_id=name,
            transformation=TRANSFORMATION,
            cloud_name=self.settings.cloudinary_cloud_name,
            api_key=self.settings.cloudinary_api_key,
            api_secret=self.settings.cloudinary_api_secret,
        )

    async def store(self, data: bytes, content_type: str, name: str) -> StoredImage:
        data_uri = f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"
        result = await asyncio.to_thread(self._upload, data_uri, name)
        logger.info("Cloudinary upload complete: %s", result.get("public_id"))
        return StoredImage(image_url=result["secure_url"], public_id=result["public_id"])


class LocalImageStore:
    """Write images below ``static_dir/uploads``, served under ``/static``."""

    def __init__(self, settings: Settings):
        self.upload_dir = os.path.join(settings.static_dir, LOCAL_UPLOAD_SUBDIR)

    def _write(self, path: str, data: bytes) -> None:
        os.makedirs(self.upload_dir, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)

    async def store(self, data: bytes, content_type: str, name: str) -> StoredImage:
        extension = mimetypes.guess_extension(content_type) or ".jpg"
        filename = f"{safe_name(name)}_{uuid.uuid4().hex[:8]}{extension}"
        path = os.path.join(self.upload_dir, filename)
        await asyncio.to_thread(self._write, path, data)
        logger.info("Stored upload on disk: %s", path)
        return StoredImage(
            image_url=f"/static/{LOCAL_UPLOAD_SUBDIR}/{filename}",
            public_id=f"{LOCAL_UPLOAD_SUBDIR}/{filename}",
        )


def build_image_store(settings: Settings) -> ImageStore:
    if settings.cloudinary_configured:
        return CloudinaryImageStore(settings)
    logger.warning("Cloudinary credentials not configured, storing uploads on the local filesystem")
    return LocalImageStore(settings)


class PhotoUploadGateway:
    def __init__(self, settings: Settings, store: ImageStore, session_factory: async_sessionmaker[AsyncSession]):
        self.settings = settings
        self.store = store
        self.session_factory = session_factory

    def validate(self, content_type: str | None, size: int) -> InvalidInput | None:
        if not content_type or not content_type.startswith("image/"):
            return InvalidInput("画像ファイルのみアップロード可能です", reason="type")
        limit = self.settings.max_photo_size_bytes
        if size > limit:
            return InvalidInput(f"ファイルサイズは{limit // (1024 * 1024)}MB以下にしてください", reason="size")
        return None

    async def upload(self, item: UploadItem, index: int | None = None) -> Result[StoredImage]:
        invalid = self.validate(item.content_type, len(item.data))
        if invalid is not None:
            logger.info("Rejected upload for photo %r: %s", item.photo_id, invalid.reason)
            return invalid

        name = f"{int(time.time() * 1000)}"
        if index is not None:
            name += f"_{index}"
        if item.photo_id:
            name += f"_{safe_name(item.photo_id)}"

        try:
            stored = await self.store.store(item.data, item.content_type, name)
        except Exception as e:
            logger.exception("Image store failed for photo %r: %s", item.photo_id, e)
            return ServiceError("アップロードに失敗しました", reason="store_failed")

        if item.photo_id:
            await self.link(item, stored)
        else:
            logger.info("No photo id given, skipping link step")
        return Ok(stored)

    async def _find_photo(self, db: AsyncSession, item: UploadItem) -> Photo | None:
        query = select(Photo).join(Walk).where(Photo.client_photo_id == item.photo_id)
        if item.walk_id:
            query = query.where(Photo.walk_id == item.walk_id)
        result = await db.execute(query.order_by(Walk.created_at.desc(), Photo.position))
        photos = result.scalars().all()
        # without a walk id the newest walk still missing this image wins
        return next((p for p in photos if not p.image_url), photos[0] if photos else None)

    async def link(self, item: UploadItem, stored: StoredImage) -> bool:
        """Attach the stored URL to the photo record and the uploaded-image table.

        A photo row that does not exist yet is not an error: the side table
        entry lets the walk listing pick the URL up later.
        """
        try:
            async with self.session_factory() as db:
                photo = await self._find_photo(db, item)
                if photo is not None:
                    photo.image_url = stored.image_url
                else:
                    logger.info("Photo record %s not found, keeping upload in side table only", item.photo_id)

                walk_id = item.walk_id or (photo.walk_id if photo else None)
                result = await db.execute(
                    select(UploadedImage).where(
                        UploadedImage.photo_id == item.photo_id, UploadedImage.walk_id == walk_id
                    )
                )
                entry = result.scalars().first()
                if entry is None:
                    entry = UploadedImage(id=str(uuid.uuid4()), photo_id=item.photo_id)
                    db.add(entry)
                entry.image_url = stored.image_url
                entry.public_id = stored.public_id
                entry.mission_name = item.mission_name or (photo.mission_name if photo else None)
                entry.walk_id = walk_id
                entry.timestamp = datetime.now(timezone.utc).isoformat()
                await db.commit()
            return photo is not None
        except Exception as e:
            logger.exception("Linking upload to photo %s failed: %s", item.photo_id, e)
            return False

    async def upload_batch(self, items: list[UploadItem]) -> list[dict]:
        """Upload items one at a time with a cooldown between them."""
        results: list[dict] = []
        for index, item in enumerate(items):
            if index and self.settings.batch_upload_pause_seconds > 0:
                await asyncio.sleep(self.settings.batch_upload_pause_seconds)
            outcome = await self.upload(item, index=index)
            if isinstance(outcome, Ok):
                results.append({
                    "photoId": item.photo_id,
                    "imageUrl": outcome.value.image_url,
                    "publicId": outcome.value.public_id,
                    "success": True,
                })
            else:
                results.append({"photoId": item.photo_id, "success": False, "error": outcome.message})
        return results
