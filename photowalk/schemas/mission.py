import uuid

from pydantic import Field

from photowalk.schemas.common import CamelModel

MISSION_TARGET_COUNT = 3
MISSION_BATCH_SIZE = 3


class Mission(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    count: int = Field(default=0, ge=0)
    target_count: int = Field(default=MISSION_TARGET_COUNT, gt=0)
    completed: bool = False


class MissionGenerateRequest(CamelModel):
    start_location: str = ""
    end_location: str = ""
    season: str | None = None
    time_of_day: str | None = None
