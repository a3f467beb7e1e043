from datetime import datetime
from typing import Any

from photowalk.schemas.common import CamelModel
from photowalk.schemas.walk import Coordinate, IncomingMissionType


class SessionCreate(CamelModel):
    missions: list[dict[str, Any]] | None = None
    start_lat: float | None = None
    start_lng: float | None = None
    end_lat: float | None = None
    end_lng: float | None = None


class CaptureRequest(CamelModel):
    mission_id: str | None = None
    mission_type: IncomingMissionType = "mission"
    photo_id: str | None = None
    lat: float | None = None
    lng: float | None = None
    timestamp: datetime | None = None


class PositionRequest(CamelModel):
    lat: Coordinate
    lng: Coordinate
    timestamp: datetime | None = None


class SessionComplete(CamelModel):
    distance: Any = None
    steps: Any = None
