"""CLI entry point for the Shadow Sensor Skill.

This module provides the command-line interface and startup logic of the
skill, handling configuration loading and template setup. The ``query``
command answers one question locally, which is handy to check a deployment
against the real shadows before wiring it to the voice platform.
"""

import asyncio
import logging
import pathlib
from typing import Annotated

import jinja2
import typer

from shadow_sensor_skill import config, sensor_skill

CONFIG_PATH_ENV = "SHADOW_SENSOR_SKILL_CONFIG_PATH"

app = typer.Typer()


def create_template_env() -> jinja2.Environment:
    # AIDEV-NOTE: Templates ship inside the package as {action_name}.j2, one per sensor_skill.Action
    return jinja2.Environment(
        loader=jinja2.PackageLoader(
            "shadow_sensor_skill",
            "templates",
        )
    )


async def create_skill(config_path: pathlib.Path | None) -> sensor_skill.SensorSkill:
    """Load configuration and prepare a skill instance.

    Args:
        config_path: TOML configuration file, built-in defaults if None
    """
    config_obj = config.load_config(config_path, config.SkillConfig) if config_path else config.SkillConfig()
    skill = sensor_skill.SensorSkill(config_obj=config_obj, template_env=create_template_env())
    await skill.skill_preparations()
    return skill


def build_measurement_request(location: str, measurement: str) -> dict:
    """Build a voice platform request asking for one measurement."""
    return {
        "version": "1.0",
        "request": {
            "type": "IntentRequest",
            "intent": {
                "name": sensor_skill.MEASUREMENT_INTENT,
                "slots": {
                    "measurement": {"name": "measurement", "value": measurement},
                    "location": {"name": "location", "value": location},
                },
            },
        },
    }


async def answer_query(config_path: pathlib.Path | None, location: str, measurement: str) -> str:
    skill = await create_skill(config_path)
    response = await skill.process_request(build_measurement_request(location, measurement))
    return response["response"]["outputSpeech"]["text"]


@app.command()
def query(
    location: Annotated[str, typer.Argument(help="Location of the sensor, e.g. garage")],
    measurement: Annotated[str, typer.Argument(help="temperature, humidity, pressure or dewpoint")],
    config_path: Annotated[pathlib.Path | None, typer.Option("--config", envvar=CONFIG_PATH_ENV)] = None,
    log_level: Annotated[str, typer.Option()] = "WARNING",
) -> None:
    """Ask for one reading and print the spoken answer.

    Args:
        location: Spoken location name
        measurement: Spoken measurement name
        config_path: Path to the skill configuration file (TOML format)
        log_level: Logging level of the run
    """
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    typer.echo(asyncio.run(answer_query(config_path, location, measurement)))


if __name__ == "__main__":
    app()
