"""Geocoding and walking directions through the Mapbox HTTP APIs."""
import asyncio
import logging
import math
from urllib.parse import quote

import httpx

from photowalk.config import Settings
from photowalk.schemas.route import RouteInfo
from photowalk.utils.result import InvalidInput, NotFound, Ok, Result, ServiceError

logger = logging.getLogger(__name__)

GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/{query}.json"
DIRECTIONS_URL = "https://api.mapbox.com/directions/v5/mapbox/walking/{start_lng},{start_lat};{end_lng},{end_lat}"

KM_PER_DEGREE = 111

TOKYO_STATION = (139.7673068, 35.6809591)

# [lng, lat]; exact-match lookup that wins over the geocoder
KNOWN_PLACES: dict[str, tuple[float, float]] = {
    "現在地": TOKYO_STATION,
    "現在の場所": TOKYO_STATION,
    "現在": TOKYO_STATION,
    "東京駅": TOKYO_STATION,
    "渋谷駅": (139.7016358, 35.6580992),
    "新宿駅": (139.7005713, 35.6896067),
    "池袋駅": (139.7109599, 35.7295626),
    "原宿駅": (139.7024296, 35.6702087),
    "表参道駅": (139.7123306, 35.6659220),
    "品川駅": (139.7388029, 35.6284613),
    "上野駅": (139.7774603, 35.7140867),
    "秋葉原駅": (139.7744733, 35.6983306),
    "有楽町駅": (139.7630820, 35.6752311),
    "銀座駅": (139.7671646, 35.6715842),
    "浅草駅": (139.7966440, 35.7120649),
    "押上駅": (139.8139242, 35.7100656),
    "錦糸町駅": (139.8138103, 35.6969184),
    "両国駅": (139.7930579, 35.6956021),
    "門前仲町駅": (139.7957234, 35.6717968),
    "月島駅": (139.7825644, 35.6654083),
    "豊洲駅": (139.7956531, 35.6549444),
    "新木場駅": (139.8267578, 35.6460139),
    "大手町駅": (139.7663286, 35.6861226),
    "日本橋駅": (139.7735156, 35.6853061),
    "神田駅": (139.7711644, 35.6918028),
}


def approximate_distance_km(start: list[float], end: list[float]) -> float:
    """Equirectangular estimate between two [lng, lat] points."""
    return math.sqrt((end[0] - start[0]) ** 2 + (end[1] - start[1]) ** 2) * KM_PER_DEGREE


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class RoutingGateway:
    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    async def geocode(self, address: str) -> list[float] | None:
        known = KNOWN_PLACES.get(address)
        if known is not None:
            logger.info("Using predefined coordinates for %r", address)
            return list(known)

        url = GEOCODING_URL.format(query=quote(address, safe=""))
        params = {
            "access_token": self.settings.mapbox_access_token,
            "country": self.settings.geocoding_country,
            "limit": 1,
        }
        try:
            response = await self.client.get(url, params=params)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geocoding request for %r failed: %s", address, e)
            return None

        features = data.get("features") if isinstance(data, dict) else None
        if response.is_success and features:
            try:
                lng, lat = features[0]["center"][:2]
            except (KeyError, TypeError, ValueError):
                logger.warning("Malformed geocoding feature for %r: %s", address, features[0])
                return None
            logger.info("Geocoded %r -> [%s, %s]", address, lng, lat)
            return [float(lng), float(lat)]

        logger.info("No geocoding result for %r (status %d)", address, response.status_code)
        return None

    async def directions(self, start: list[float], end: list[float]) -> Result[dict]:
        distance_km = approximate_distance_km(start, end)
        limit = self.settings.max_walking_distance_km
        if distance_km > limit:
            logger.warning("Distance too long for walking route: %.1fkm", distance_km)
            return InvalidInput(
                f"徒歩ルートには遠すぎます（約{distance_km:.1f}km、上限{limit:g}km）",
                reason="too_long",
            )

        url = DIRECTIONS_URL.format(start_lng=start[0], start_lat=start[1], end_lng=end[0], end_lat=end[1])
        params = {
            "access_token": self.settings.mapbox_access_token,
            "geometries": "geojson",
            "steps": "true",
        }
        try:
            response = await self.client.get(url, params=params)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Directions request failed: %s", e)
            return NotFound("ルートを取得できませんでした", subject="route")

        if not response.is_success:
            logger.error("Directions API error %d: %s", response.status_code, data)
            return NotFound("ルートを取得できませんでした", subject="route")

        routes = data.get("routes") if isinstance(data, dict) else None
        if not routes:
            logger.info("No routes found in directions response")
            return NotFound("ルートを取得できませんでした", subject="route")
        return Ok(routes[0])

    async def route(self, start_address: str, end_address: str) -> Result[RouteInfo]:
        if not self.settings.mapbox_access_token:
            logger.error("Mapbox token not configured")
            return ServiceError("Mapbox token not configured", reason="not_configured")

        logger.info("Route request: %s -> %s", start_address, end_address)
        start_coords, end_coords = await asyncio.gather(self.geocode(start_address), self.geocode(end_address))

        if start_coords is None:
            return NotFound(f"スタート地点「{start_address}」の位置情報を取得できませんでした", subject="start")
        if end_coords is None:
            return NotFound(f"ゴール地点「{end_address}」の位置情報を取得できませんでした", subject="end")

        found = await self.directions(start_coords, end_coords)
        if not isinstance(found, Ok):
            return found

        route = found.value
        legs = route.get("legs") or []
        return Ok(RouteInfo(
            start_coords=start_coords,
            end_coords=end_coords,
            geometry=route.get("geometry") or {},
            distance=_round_half_up(route.get("distance", 0)),
            duration=_round_half_up(route.get("duration", 0) / 60),
            steps=legs[0].get("steps", []) if legs else [],
        ))
