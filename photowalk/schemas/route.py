from typing import Any

from photowalk.schemas.common import CamelModel


class RouteRequest(CamelModel):
    start_address: str
    end_address: str


class RouteInfo(CamelModel):
    start_coords: list[float]  # [lng, lat]
    end_coords: list[float]
    geometry: dict[str, Any]
    distance: int  # meters
    duration: int  # minutes
    steps: list[dict[str, Any]] = []
