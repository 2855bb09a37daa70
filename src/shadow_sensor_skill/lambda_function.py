"""AWS Lambda entry point of the Shadow Sensor Skill."""

import asyncio
import logging
import os
import pathlib
from typing import Any

from shadow_sensor_skill.main import CONFIG_PATH_ENV, create_skill
from shadow_sensor_skill.sensor_skill import SensorSkill

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# AIDEV-NOTE: Configuration is static, so one prepared skill serves every invocation of a warm container
_skill: SensorSkill | None = None


def _get_skill() -> SensorSkill:
    global _skill
    if _skill is None:
        config_path = os.environ.get(CONFIG_PATH_ENV, "").strip()
        _skill = asyncio.run(create_skill(pathlib.Path(config_path) if config_path else None))
        logger.info("Skill initialized from %s", config_path or "defaults")
    return _skill


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:  # noqa: ARG001
    """Answer one voice platform request."""
    return asyncio.run(_get_skill().process_request(event))
