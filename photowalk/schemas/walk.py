from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, field_validator

from photowalk.schemas.common import CamelModel
from photowalk.schemas.mission import Mission

MissionType = Literal["mission", "favorite"]


def parse_float(value: Any) -> float | None:
    """Lenient float parse for numbers that may arrive as strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def parse_int(value: Any) -> int | None:
    number = parse_float(value)
    if number is None:
        return None
    return int(number)


def _coordinate(value: Any) -> float:
    number = parse_float(value)
    if number is None:
        raise ValueError("coordinate must be a number")
    return number


def _mission_type(value: Any) -> str:
    if value in (None, ""):
        return "mission"
    if value == "free":
        return "favorite"
    return value


Coordinate = Annotated[float, BeforeValidator(_coordinate)]
IncomingMissionType = Annotated[MissionType, BeforeValidator(_mission_type)]


class Location(CamelModel):
    lat: Coordinate
    lng: Coordinate


class PhotoRecord(CamelModel):
    id: str
    lat: float
    lng: float
    mission_name: str | None = None
    mission_type: MissionType = "mission"
    mission_id: str | None = None
    image_url: str | None = None
    timestamp: datetime


class RoutePoint(CamelModel):
    lat: float
    lng: float
    timestamp: datetime


class WalkSummary(CamelModel):
    missions: list[Mission]
    photos: list[PhotoRecord]
    total_photos: int
    completed_missions: int
    start_time: datetime | None = None
    end_time: datetime | None = None


class PhotoIn(CamelModel):
    id: str | None = None
    mission_type: IncomingMissionType = "mission"
    mission_name: str | None = None
    lat: Coordinate
    lng: Coordinate
    image_url: str | None = None
    timestamp: datetime | None = None


class RoutePointIn(CamelModel):
    lat: Coordinate
    lng: Coordinate
    timestamp: datetime | None = None


class WalkCreate(CamelModel):
    start_lat: Coordinate
    start_lng: Coordinate
    end_lat: Coordinate
    end_lng: Coordinate
    missions: list[dict[str, Any]] = []
    photos: list[PhotoIn] = []
    routes: list[RoutePointIn] = []
    start_time: datetime | None = None
    end_time: datetime | None = None
    distance: float | None = None
    steps: int | None = None

    @field_validator("distance", mode="before")
    @classmethod
    def _parse_distance(cls, value: Any) -> float | None:
        # zero and empty values mean "not measured"
        number = parse_float(value)
        return number or None

    @field_validator("steps", mode="before")
    @classmethod
    def _parse_steps(cls, value: Any) -> int | None:
        number = parse_int(value)
        return number or None

    @field_validator("missions", "photos", "routes", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class UploadedImageOut(CamelModel):
    photo_id: str
    image_url: str
    public_id: str | None = None
    mission_name: str | None = None
    walk_id: str | None = None
    timestamp: str
