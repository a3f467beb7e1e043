"""In-memory walk session: mission progress, captured photos and the walked route.

A session is a plain accumulator. Choosing which mission a photo satisfies is
left to the walker; the session only enforces that a completed mission takes no
further captures and that every capture has a location.
"""
import asyncio
import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import Field

from photowalk.schemas.common import CamelModel
from photowalk.schemas.mission import MISSION_BATCH_SIZE, Mission
from photowalk.schemas.walk import Location, PhotoIn, PhotoRecord, RoutePoint, RoutePointIn, WalkCreate, WalkSummary
from photowalk.utils.exceptions import CaptureRejected, SessionNotFound

logger = logging.getLogger(__name__)

# completed session ids remembered for repeated complete calls
COMPLETED_HISTORY_SIZE = 1024

DEFAULT_MISSIONS: list[tuple[str, str]] = [
    ("古い建物", "歴史を感じる建築物を撮影"),
    ("緑のあるもの", "植物や自然を撮影"),
    ("面白い形", "ユニークな形状のものを撮影"),
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def default_missions() -> list[Mission]:
    return [Mission(name=name, description=description) for name, description in DEFAULT_MISSIONS]


def create_mission_batch(source: Iterable[Any] | None = None) -> list[Mission]:
    """Build a fresh batch of exactly three missions.

    ``source`` is the generator's raw entries (dicts or Mission objects); ``None``
    selects the default set. Short or malformed input is padded with
    "Mission N" placeholders, so this never fails.
    """
    if source is None:
        return default_missions()

    entries = list(source) if not isinstance(source, (str, bytes, dict)) else []
    batch: list[Mission] = []
    seen_ids: set[str] = set()
    for index in range(MISSION_BATCH_SIZE):
        raw = entries[index] if index < len(entries) else {}
        if isinstance(raw, Mission):
            raw = raw.model_dump()
        if not isinstance(raw, dict):
            raw = {}

        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            name = f"Mission {index + 1}"
        description = raw.get("description")
        if not isinstance(description, str):
            description = ""

        mission = Mission(name=name.strip(), description=description)
        # keep ids handed out by the generator so clients can keep referring to them
        raw_id = raw.get("id")
        if isinstance(raw_id, str) and raw_id and raw_id not in seen_ids:
            mission.id = raw_id
        seen_ids.add(mission.id)
        batch.append(mission)
    return batch


class WalkSession(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    missions: list[Mission] = Field(default_factory=default_missions)
    photos: list[PhotoRecord] = []
    routes: list[RoutePoint] = []
    start_lat: float | None = None
    start_lng: float | None = None
    end_lat: float | None = None
    end_lng: float | None = None
    start_time: datetime = Field(default_factory=_now)
    end_time: datetime | None = None

    def find_mission(self, mission_id: str) -> Mission | None:
        return next((m for m in self.missions if m.id == mission_id), None)

    def record_capture(
        self,
        mission_id: str,
        location: Location | None,
        photo_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> PhotoRecord:
        """Record a photo against an open mission and advance its counter.

        The capture that brings ``count`` to ``target_count`` completes the
        mission; a completed mission rejects further captures.
        """
        if location is None:
            raise CaptureRejected("現在地が取得できないため撮影を記録できません")
        mission = self.find_mission(mission_id)
        if mission is None:
            raise CaptureRejected("指定されたミッションが見つかりません")
        if mission.completed:
            raise CaptureRejected(f"ミッション「{mission.name}」は既に達成済みです")

        photo = PhotoRecord(
            id=photo_id or str(uuid.uuid4()),
            lat=location.lat,
            lng=location.lng,
            mission_name=mission.name,
            mission_type="mission",
            mission_id=mission.id,
            timestamp=timestamp or _now(),
        )
        self.photos.append(photo)
        mission.count += 1
        mission.completed = mission.completed or mission.count >= mission.target_count
        logger.info(
            "Session %s: capture for mission %s (%d/%d)",
            self.id, mission.id, mission.count, mission.target_count,
        )
        return photo

    def record_favorite(
        self,
        location: Location | None,
        photo_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> PhotoRecord:
        """Record a free photo that counts toward no mission."""
        if location is None:
            raise CaptureRejected("現在地が取得できないため撮影を記録できません")
        photo = PhotoRecord(
            id=photo_id or str(uuid.uuid4()),
            lat=location.lat,
            lng=location.lng,
            mission_type="favorite",
            timestamp=timestamp or _now(),
        )
        self.photos.append(photo)
        return photo

    def record_route_point(self, location: Location, timestamp: datetime | None = None) -> RoutePoint:
        # every sample is kept: no dedup, no distance throttling
        point = RoutePoint(lat=location.lat, lng=location.lng, timestamp=timestamp or _now())
        self.routes.append(point)
        return point

    def summarize(self) -> WalkSummary:
        return WalkSummary(
            missions=[m.model_copy() for m in self.missions],
            photos=[p.model_copy() for p in self.photos],
            total_photos=len(self.photos),
            completed_missions=sum(1 for m in self.missions if m.completed),
            start_time=self.start_time,
            end_time=self.end_time,
        )

    def to_walk_create(self, distance: Any = None, steps: Any = None) -> WalkCreate:
        """Snapshot the session as a walk ready for persistence."""
        first = self.routes[0] if self.routes else None
        last = self.routes[-1] if self.routes else None
        start_lat = self.start_lat if self.start_lat is not None else (first.lat if first else 0.0)
        start_lng = self.start_lng if self.start_lng is not None else (first.lng if first else 0.0)
        end_lat = self.end_lat if self.end_lat is not None else (last.lat if last else start_lat)
        end_lng = self.end_lng if self.end_lng is not None else (last.lng if last else start_lng)
        return WalkCreate(
            start_lat=start_lat,
            start_lng=start_lng,
            end_lat=end_lat,
            end_lng=end_lng,
            missions=[m.to_json() for m in self.missions],
            photos=[
                PhotoIn(
                    id=p.id,
                    mission_type=p.mission_type,
                    mission_name=p.mission_name,
                    lat=p.lat,
                    lng=p.lng,
                    image_url=p.image_url,
                    timestamp=p.timestamp,
                )
                for p in self.photos
            ],
            routes=[RoutePointIn(lat=r.lat, lng=r.lng, timestamp=r.timestamp) for r in self.routes],
            start_time=self.start_time,
            end_time=self.end_time,
            distance=distance,
            steps=steps,
        )


def record_capture(session: WalkSession, mission_id: str, location: Location | None) -> WalkSession:
    session.record_capture(mission_id, location)
    return session


def record_route_point(session: WalkSession, location: Location) -> WalkSession:
    session.record_route_point(location)
    return session


def summarize(session: WalkSession) -> WalkSummary:
    return session.summarize()


class WalkSessionRegistry:
    """Active sessions of this process, keyed by session id.

    Completing a session evicts it; only the id of the saved walk is kept, for
    the most recent ``COMPLETED_HISTORY_SIZE`` completions.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, WalkSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._completed: OrderedDict[str, str] = OrderedDict()

    def create(self, missions: Iterable[Any] | None = None, **fields: Any) -> WalkSession:
        session = WalkSession(missions=create_mission_batch(missions), **fields)
        self._sessions[session.id] = session
        self._locks[session.id] = asyncio.Lock()
        logger.info("Walk session %s started with %d missions", session.id, len(session.missions))
        return session

    def get(self, session_id: str) -> WalkSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def lock(self, session_id: str) -> asyncio.Lock:
        self.get(session_id)
        return self._locks[session_id]

    def completed_walk(self, session_id: str) -> str | None:
        return self._completed.get(session_id)

    def finish(self, session_id: str, walk_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)
        self._completed[session_id] = walk_id
        while len(self._completed) > COMPLETED_HISTORY_SIZE:
            self._completed.popitem(last=False)
        logger.info("Walk session %s completed as walk %s", session_id, walk_id)

    def discard(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFound(session_id)
        self._locks.pop(session_id, None)
        logger.info("Walk session %s closed", session_id)

    def __len__(self) -> int:
        return len(self._sessions)
