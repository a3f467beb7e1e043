"""Persist completed walks with their photos and route points."""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from photowalk.models.uploaded_image import UploadedImage
from photowalk.models.walk import Photo, Walk, WalkRoute
from photowalk.schemas.walk import WalkCreate
from photowalk.services.image_cache import reconcile
from photowalk.utils.result import Ok, Result, ServiceError

logger = logging.getLogger(__name__)


def _iso(value: datetime | None, default: str) -> str:
    if value is None:
        return default
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _load_missions(blob: str | None) -> list:
    try:
        missions = json.loads(blob or "[]")
    except (TypeError, ValueError):
        logger.warning("Stored mission snapshot is not valid JSON: %r", blob)
        return []
    return missions if isinstance(missions, list) else []


def photo_to_dict(photo: Photo) -> dict:
    return {
        "id": photo.client_photo_id,
        "walkId": photo.walk_id,
        "missionType": photo.mission_type,
        "missionName": photo.mission_name,
        "lat": photo.lat,
        "lng": photo.lng,
        "imageUrl": photo.image_url,
        "timestamp": photo.timestamp,
    }


def walk_to_dict(walk: Walk) -> dict:
    return {
        "id": walk.id,
        "startLat": walk.start_lat,
        "startLng": walk.start_lng,
        "endLat": walk.end_lat,
        "endLng": walk.end_lng,
        "missions": _load_missions(walk.missions),
        "startTime": walk.start_time,
        "endTime": walk.end_time,
        "distance": walk.distance,
        "steps": walk.steps,
        "createdAt": walk.created_at,
        "photos": [photo_to_dict(p) for p in walk.photos],
        "routes": [
            {"id": r.id, "walkId": r.walk_id, "lat": r.lat, "lng": r.lng, "timestamp": r.timestamp}
            for r in walk.routes
        ],
    }


class WalkRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save(self, payload: WalkCreate) -> Result[dict]:
        """Create the walk and its photo and route rows in one transaction."""
        now = datetime.now(timezone.utc).isoformat()
        walk_id = str(uuid.uuid4())
        walk = Walk(
            id=walk_id,
            start_lat=payload.start_lat,
            start_lng=payload.start_lng,
            end_lat=payload.end_lat,
            end_lng=payload.end_lng,
            missions=json.dumps(payload.missions, ensure_ascii=False),
            start_time=_iso(payload.start_time, now),
            end_time=_iso(payload.end_time, now),
            distance=payload.distance,
            steps=payload.steps,
            created_at=now,
        )
        walk.photos = [
            Photo(
                id=str(uuid.uuid4()),
                client_photo_id=p.id or str(uuid.uuid4()),
                walk_id=walk_id,
                position=index,
                mission_type=p.mission_type,
                mission_name=p.mission_name,
                lat=p.lat,
                lng=p.lng,
                image_url=p.image_url,
                timestamp=_iso(p.timestamp, now),
            )
            for index, p in enumerate(payload.photos)
        ]
        walk.routes = [
            WalkRoute(
                id=str(uuid.uuid4()),
                walk_id=walk_id,
                position=index,
                lat=r.lat,
                lng=r.lng,
                timestamp=_iso(r.timestamp, now),
            )
            for index, r in enumerate(payload.routes)
        ]

        try:
            async with self.session_factory() as db:
                # uploads that raced ahead of this walk and are not claimed by another one
                photo_ids = [p.client_photo_id for p in walk.photos]
                if photo_ids:
                    result = await db.execute(
                        select(UploadedImage).where(
                            UploadedImage.photo_id.in_(photo_ids), UploadedImage.walk_id.is_(None)
                        )
                    )
                    uploaded = {u.photo_id: u for u in result.scalars().all()}
                    for photo in walk.photos:
                        entry = uploaded.get(photo.client_photo_id)
                        if entry is not None:
                            entry.walk_id = walk_id
                            if not photo.image_url:
                                photo.image_url = entry.image_url

                db.add(walk)
                await db.commit()
                data = walk_to_dict(walk)
        except Exception as e:
            logger.exception("Saving walk failed: %s", e)
            return ServiceError("Database error while saving walk", reason="database", detail=str(e))

        logger.info("Walk %s saved: %d photos, %d route points", walk_id, len(walk.photos), len(walk.routes))
        return Ok(data)

    async def list(self) -> Result[List[dict]]:
        """All walks newest first, reconciled with the uploaded-image table."""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(Walk)
                    .options(selectinload(Walk.photos), selectinload(Walk.routes))
                    .order_by(Walk.created_at.desc())
                )
                walks = [walk_to_dict(w) for w in result.scalars().all()]

                result = await db.execute(select(UploadedImage))
                images = list(result.scalars().all())
        except Exception as e:
            logger.exception("Fetching walks failed: %s", e)
            return ServiceError("Database error while fetching walks", reason="database", detail=str(e))

        logger.info("Fetched %d walks", len(walks))
        return Ok(reconcile(walks, images))

    async def images_for_walk(self, walk_id: str) -> Result[List[UploadedImage]]:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(UploadedImage)
                    .where(UploadedImage.walk_id == walk_id)
                    .order_by(UploadedImage.timestamp)
                )
                return Ok(list(result.scalars().all()))
        except Exception as e:
            logger.exception("Fetching uploaded images for walk %s failed: %s", walk_id, e)
            return ServiceError("Database error while fetching images", reason="database", detail=str(e))
