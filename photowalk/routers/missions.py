import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from photowalk.dependencies import get_mission_generator
from photowalk.schemas.mission import MissionGenerateRequest
from photowalk.services.mission_generator import MissionGenerator, current_season, current_time_of_day
from photowalk.services.walk_session import default_missions
from photowalk.utils.response import success_response
from photowalk.utils.result import Ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/missions", tags=["missions"])


async def _read_request(request: Request) -> MissionGenerateRequest:
    try:
        body = await request.json()
        return MissionGenerateRequest.model_validate(body if isinstance(body, dict) else {})
    except (ValueError, ValidationError) as e:
        logger.warning("Unreadable mission request, using empty locations: %s", e)
        return MissionGenerateRequest()


@router.post("/generate")
async def generate_missions(request: Request, generator: MissionGenerator = Depends(get_mission_generator)):
    payload = await _read_request(request)
    season = payload.season or current_season()
    time_of_day = payload.time_of_day or current_time_of_day()

    result = await asyncio.to_thread(
        generator.generate, payload.start_location, payload.end_location, season, time_of_day
    )
    if isinstance(result, Ok):
        return success_response(
            missions=[m.to_json() for m in result.value],
            debug={"reason": "ai_generated", "usedDefault": False},
        )

    logger.warning("Using default missions (%s): %s", result.reason, result.message)
    debug = {"reason": result.reason, "usedDefault": True}
    if result.reason == "error":
        debug["error"] = result.message
    return success_response(missions=[m.to_json() for m in default_missions()], debug=debug)
