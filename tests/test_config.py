"""Tests for configuration loading and typed lookups."""

import pathlib

import pydantic
import pytest

from shadow_sensor_skill.config import DeviceConfig, MeasurementConfig, SkillConfig, load_config
from shadow_sensor_skill.errors import ConfigurationError, UnknownMeasurementError
from shadow_sensor_skill.models import Measurement, SensorVariant

SKILL_TOML = """
aws_region = "eu-central-1"
iot_endpoint = "abc-ats.iot.eu-central-1.amazonaws.com"
iot_access_role_arn = "arn:aws:iam::123456789012:role/LambdaIoTRoleCF"

[location_mapping]
Garage = "esp32_AAAAAA"
"Living Room" = "esp32_BBBBBB"

[measurements.temperature]
shadow_key = "temperature"
min = -40
max = 140
unit = "°F"
precision = 1

[measurements.humidity]
shadow_key = "humidity"
min = 0
max = 100
unit = "%"

[messages]
stop = "Bye."
"""


@pytest.fixture
def skill_config_path(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "skill.toml"
    path.write_text(SKILL_TOML, encoding="utf-8")
    return path


def test_load_skill_config(skill_config_path: pathlib.Path) -> None:
    config_obj = load_config(skill_config_path, SkillConfig)

    assert config_obj.aws_region == "eu-central-1"
    assert config_obj.location_mapping == {"garage": "esp32_AAAAAA", "living room": "esp32_BBBBBB"}
    assert set(config_obj.measurements) == {Measurement.TEMPERATURE, Measurement.HUMIDITY}
    assert config_obj.measurements[Measurement.TEMPERATURE].unit == "°F"
    assert config_obj.measurements[Measurement.HUMIDITY].precision == 0
    assert config_obj.messages.stop == "Bye."
    assert config_obj.messages.help.startswith("You can ask me")


def test_load_missing_file(tmp_path: pathlib.Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.toml", SkillConfig)


def test_config_is_frozen() -> None:
    config_obj = SkillConfig()
    with pytest.raises(pydantic.ValidationError):
        config_obj.aws_region = "eu-west-1"  # type: ignore[misc]


def test_resolve_location_is_case_insensitive() -> None:
    config_obj = SkillConfig(location_mapping={"Garage": "esp32_AAAAAA"})

    assert config_obj.resolve_location("GARAGE ") == "esp32_AAAAAA"


def test_resolve_unknown_location() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        SkillConfig().resolve_location("basement")
    assert exc_info.value.location == "basement"


def test_resolve_measurement() -> None:
    measurement, measurement_config = SkillConfig().resolve_measurement("Humidity")

    assert measurement is Measurement.HUMIDITY
    assert measurement_config.shadow_key == "humidity"


@pytest.mark.parametrize(
    "spoken",
    [
        pytest.param("dewpoint", id="single_word"),
        pytest.param("dew point", id="two_words"),
        pytest.param(" Dew  Point ", id="mixed_case_and_spacing"),
    ],
)
def test_resolve_measurement_ignores_whitespace(spoken: str) -> None:
    measurement, measurement_config = SkillConfig().resolve_measurement(spoken)

    assert measurement is Measurement.DEWPOINT
    assert measurement_config.shadow_key == "dewpoint"


@pytest.mark.parametrize(
    ("config_obj", "measurement"),
    [
        pytest.param(SkillConfig(), "wind speed", id="unknown_measurement"),
        pytest.param(
            SkillConfig(
                measurements={
                    Measurement.TEMPERATURE: MeasurementConfig(shadow_key="temperature", min=-40, max=140, unit="°F")
                }
            ),
            "pressure",
            id="not_configured",
        ),
    ],
)
def test_resolve_measurement_fails(config_obj: SkillConfig, measurement: str) -> None:
    with pytest.raises(UnknownMeasurementError):
        config_obj.resolve_measurement(measurement)


def test_measurement_bounds_validated() -> None:
    with pytest.raises(pydantic.ValidationError, match="must not exceed"):
        MeasurementConfig(shadow_key="humidity", min=100, max=0, unit="%")


@pytest.mark.parametrize(
    ("device_config", "interval"),
    [
        pytest.param(DeviceConfig(thing_name="esp32_AAAAAA"), 300.0, id="dht22_default"),
        pytest.param(DeviceConfig(thing_name="esp32_AAAAAA", variant=SensorVariant.BME280), 150.0, id="bme280"),
        pytest.param(DeviceConfig(thing_name="esp32_AAAAAA", report_interval=60), 60.0, id="explicit"),
    ],
)
def test_device_report_interval(device_config: DeviceConfig, interval: float) -> None:
    assert device_config.effective_report_interval == interval


def test_device_config_from_toml(tmp_path: pathlib.Path) -> None:
    path = tmp_path / "device.toml"
    path.write_text('thing_name = "esp32_CCCCCC"\nvariant = "bme280"\nswitch_pin = 4\n', encoding="utf-8")

    device_config = load_config(path, DeviceConfig)

    assert device_config.variant is SensorVariant.BME280
    assert device_config.switch_pin == 4  # noqa: PLR2004


def test_device_handler_timeout_covers_a_full_tick() -> None:
    device_config = DeviceConfig(thing_name="esp32_CCCCCC", sensor_timeout=5.0, report_timeout=10.0)

    assert device_config.handler_timeout > 3 * device_config.sensor_timeout + device_config.report_timeout
