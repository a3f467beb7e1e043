import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from photowalk.dependencies import get_session_registry, get_walk_repository
from photowalk.routers.walks import SAVED_LOCALLY_MESSAGE, save_walk
from photowalk.schemas.session import CaptureRequest, PositionRequest, SessionComplete, SessionCreate
from photowalk.schemas.walk import Location
from photowalk.services.walk_repository import WalkRepository
from photowalk.services.walk_session import WalkSessionRegistry
from photowalk.utils.exceptions import CaptureRejected
from photowalk.utils.response import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", status_code=201)
async def create_session(
    payload: SessionCreate | None = None,
    registry: WalkSessionRegistry = Depends(get_session_registry),
):
    payload = payload or SessionCreate()
    session = registry.create(
        missions=payload.missions,
        start_lat=payload.start_lat,
        start_lng=payload.start_lng,
        end_lat=payload.end_lat,
        end_lng=payload.end_lng,
    )
    return success_response(session=session.to_json())


@router.get("/{session_id}")
async def get_session(session_id: str, registry: WalkSessionRegistry = Depends(get_session_registry)):
    return success_response(session=registry.get(session_id).to_json())


@router.post("/{session_id}/captures", status_code=201)
async def capture_photo(
    session_id: str,
    payload: CaptureRequest,
    registry: WalkSessionRegistry = Depends(get_session_registry),
):
    session = registry.get(session_id)
    location = None
    if payload.lat is not None and payload.lng is not None:
        location = Location(lat=payload.lat, lng=payload.lng)

    if payload.mission_type == "favorite":
        photo = session.record_favorite(location, photo_id=payload.photo_id, timestamp=payload.timestamp)
    else:
        if not payload.mission_id:
            raise CaptureRejected("ミッションを選択してください")
        photo = session.record_capture(
            payload.mission_id, location, photo_id=payload.photo_id, timestamp=payload.timestamp
        )

    return success_response(
        message=f"📸 {photo.mission_name or 'お気に入り'}を記録しました！",
        photo=photo.to_json(),
        missions=[m.to_json() for m in session.missions],
    )


@router.post("/{session_id}/positions", status_code=201)
async def record_position(
    session_id: str,
    payload: PositionRequest,
    registry: WalkSessionRegistry = Depends(get_session_registry),
):
    session = registry.get(session_id)
    point = session.record_route_point(Location(lat=payload.lat, lng=payload.lng), timestamp=payload.timestamp)
    return success_response(point=point.to_json(), totalPoints=len(session.routes))


@router.get("/{session_id}/summary")
async def get_summary(session_id: str, registry: WalkSessionRegistry = Depends(get_session_registry)):
    return success_response(summary=registry.get(session_id).summarize().to_json())


@router.post("/{session_id}/complete")
async def complete_session(
    session_id: str,
    payload: SessionComplete | None = None,
    registry: WalkSessionRegistry = Depends(get_session_registry),
    repository: WalkRepository = Depends(get_walk_repository),
):
    payload = payload or SessionComplete()
    walk_id = registry.completed_walk(session_id)
    if walk_id is None:
        async with registry.lock(session_id):
            walk_id = registry.completed_walk(session_id)
            if walk_id is None:
                session = registry.get(session_id)
                session.end_time = session.end_time or datetime.now(timezone.utc)
                walk = await save_walk(session.to_walk_create(payload.distance, payload.steps), repository)
                summary = session.summarize().to_json()
                registry.finish(session_id, walk["id"])

                message = SAVED_LOCALLY_MESSAGE if walk.get("persisted") is False else None
                return success_response(message=message, walk=walk, summary=summary)

    logger.info("Session %s already completed as walk %s", session_id, walk_id)
    return success_response(walk={"id": walk_id})


@router.delete("/{session_id}")
async def close_session(session_id: str, registry: WalkSessionRegistry = Depends(get_session_registry)):
    registry.discard(session_id)
    return success_response()
