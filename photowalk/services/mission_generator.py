"""Generate walk missions with an OpenAI chat model."""
import json
import logging
import re
from datetime import datetime
from typing import Any

from photowalk.config import Settings
from photowalk.schemas.mission import Mission
from photowalk.services.walk_session import create_mission_batch
from photowalk.utils.result import Ok, Result, ServiceError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "あなたは散歩中の写真撮影ミッションを作成するアシスタントです。"
    "場所と季節に応じて、3つのシンプルで達成可能なミッションを提案してください。"
    "各ミッションは1-3語の短い名前と、簡潔な説明をつけてください。JSON形式で回答してください。"
)

MISSION_PROMPT = """\
{start_location}から{end_location}への散歩で、{season}の{time_of_day}に撮影するミッションを3つ作成してください。

要求：
- 各ミッションは達成回数3回
- 場所の特徴や季節感を考慮
- 一眼レフカメラでの撮影を想定
- 簡潔で分かりやすい内容

以下の形式のJSONで回答してください：
{{
  "missions": [
    {{"name": "ミッション名", "description": "説明"}},
    {{"name": "ミッション名", "description": "説明"}},
    {{"name": "ミッション名", "description": "説明"}}
  ]
}}"""

MAX_TOKENS = 500
TEMPERATURE = 0.8

_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)


def current_season(now: datetime | None = None) -> str:
    month = (now or datetime.now()).month
    if 3 <= month <= 5:
        return "春"
    if 6 <= month <= 8:
        return "夏"
    if 9 <= month <= 11:
        return "秋"
    return "冬"


def current_time_of_day(now: datetime | None = None) -> str:
    hour = (now or datetime.now()).hour
    if 5 <= hour < 12:
        return "朝"
    if 12 <= hour < 17:
        return "午後"
    if 17 <= hour < 21:
        return "夕方"
    return "夜"


def build_prompt(start_location: str, end_location: str, season: str, time_of_day: str) -> str:
    return MISSION_PROMPT.format(
        start_location=start_location,
        end_location=end_location,
        season=season,
        time_of_day=time_of_day,
    )


def extract_json_object(text: str) -> Result[dict[str, Any]]:
    """Best-effort pull of the outermost ``{...}`` span out of free-form model output."""
    match = _JSON_SPAN.search(text or "")
    if match is None:
        return ServiceError("No JSON object found in response", reason="no_json")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        return ServiceError(f"Invalid JSON in response: {e}", reason="invalid_json")
    if not isinstance(parsed, dict):
        return ServiceError("JSON span is not an object", reason="invalid_json")
    return Ok(parsed)


class MissionGenerator:
    def __init__(self, settings: Settings, client: Any = None):
        self.settings = settings
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import OpenAI

            kwargs = {"api_key": self.settings.openai_api_key}
            if self.settings.openai_base_url:
                kwargs["base_url"] = self.settings.openai_base_url
            self._client = OpenAI(**kwargs)
        return self._client

    def generate(
        self, start_location: str, end_location: str, season: str, time_of_day: str
    ) -> Result[list[Mission]]:
        """Ask the model for three missions.

        Every failure comes back as a ServiceError whose ``reason`` names the
        failing step; substituting the default set is left to the caller.
        """
        if not self.settings.openai_api_key:
            logger.warning("OpenAI API key not configured, cannot generate missions")
            return ServiceError("OpenAI API key not configured", reason="no_api_key")

        prompt = build_prompt(start_location, end_location, season, time_of_day)
        logger.info("Generating missions: %s -> %s (%s, %s)", start_location, end_location, season, time_of_day)

        try:
            response = self._get_client().chat.completions.create(
                model=self.settings.openai_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
            )
            raw = response.choices[0].message.content if response.choices else None
        except Exception as e:
            logger.exception("Mission generation request failed: %s", e)
            # mask API keys that some client errors echo back
            return ServiceError(re.sub(r"sk-[A-Za-z0-9_-]+", "sk-***", str(e)), reason="error")

        if not raw:
            logger.error("Mission generation returned empty content")
            return ServiceError("No content generated", reason="error")
        logger.info("Mission generation raw response (%d chars): %s", len(raw), raw[:200])

        extracted = extract_json_object(raw)
        if not isinstance(extracted, Ok):
            logger.error("Could not extract missions JSON: %s", extracted.message)
            return ServiceError(extracted.message, reason="error")

        entries = extracted.value.get("missions")
        if not isinstance(entries, list):
            logger.error("Missions JSON has no 'missions' list: %s", extracted.value)
            return ServiceError("Response has no missions list", reason="error")

        return Ok(create_mission_batch(entries))
