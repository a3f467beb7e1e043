from typing import AsyncIterator

import httpx
from fastapi import Header, HTTPException

from photowalk.config import settings
from photowalk.database import async_session
from photowalk.services.mission_generator import MissionGenerator
from photowalk.services.photo_upload import PhotoUploadGateway, build_image_store
from photowalk.services.routing import RoutingGateway
from photowalk.services.walk_repository import WalkRepository
from photowalk.services.walk_session import WalkSessionRegistry

HTTP_TIMEOUT_SECONDS = 10.0

_session_registry = WalkSessionRegistry()


async def verify_api_key(x_api_key: str = Header(default="")) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid or missing API key")


def get_mission_generator() -> MissionGenerator:
    return MissionGenerator(settings)


async def get_routing_gateway() -> AsyncIterator[RoutingGateway]:
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
        yield RoutingGateway(settings, client)


def get_photo_upload_gateway() -> PhotoUploadGateway:
    return PhotoUploadGateway(settings, build_image_store(settings), async_session)


def get_walk_repository() -> WalkRepository:
    return WalkRepository(async_session)


def get_session_registry() -> WalkSessionRegistry:
    return _session_registry
