"""Configuration models for the shadow sensor skill and device runtime.

All configuration is static: it is loaded once from a TOML file at startup
(or deploy time) and never mutated afterwards.
"""

import pathlib
import tomllib
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shadow_sensor_skill.errors import ConfigurationError, UnknownMeasurementError
from shadow_sensor_skill.models import Measurement, SensorVariant

ConfigT = TypeVar("ConfigT", bound=BaseModel)


class MeasurementConfig(BaseModel):
    """Validity range and spoken format of one measurement.

    Attributes:
        shadow_key: Key of the value in the reported shadow document
        min: Lowest plausible value, inclusive
        max: Highest plausible value, inclusive
        unit: Unit appended directly after the formatted value
        precision: Number of decimals in the spoken value
    """

    model_config = ConfigDict(frozen=True)

    shadow_key: str
    min: float
    max: float
    unit: str
    precision: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "MeasurementConfig":
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self


DEFAULT_MEASUREMENTS: dict[Measurement, MeasurementConfig] = {
    Measurement.TEMPERATURE: MeasurementConfig(shadow_key="temperature", min=-40, max=140, unit="°F", precision=1),
    Measurement.HUMIDITY: MeasurementConfig(shadow_key="humidity", min=0, max=100, unit="%", precision=0),
    Measurement.PRESSURE: MeasurementConfig(shadow_key="pressure", min=300, max=1100, unit=" hPa", precision=0),
    Measurement.DEWPOINT: MeasurementConfig(shadow_key="dewpoint", min=-40, max=140, unit="°F", precision=1),
}


class Messages(BaseModel):
    """Fixed utterances of the skill that do not depend on a query."""

    model_config = ConfigDict(frozen=True)

    launch: str = (
        "Welcome to the ESP32 Sensor Reader. You can ask about temperature or humidity "
        "in the garage, living room, or outdoors."
    )
    help: str = (
        "You can ask me questions like: What's the temperature in the garage? or What's the humidity outdoors? "
        "I can provide readings from sensors in the garage, living room, and outdoors."
    )
    error: str = "Sorry, I had trouble processing your request. Please try again."
    goodbye: str = "Goodbye! Thanks for using ESP32 Sensor Reader."
    fallback: str = (
        "I'm not sure how to help with that. Try asking about temperature or humidity in a specific location."
    )
    stop: str = "Goodbye!"


class SkillConfig(BaseModel):
    """Configuration of the voice skill that answers sensor queries.

    Attributes:
        skill_name: Title shown on the launch card
        aws_region: Region of the IoT data plane and STS
        iot_endpoint: Account specific IoT data endpoint, without scheme
        iot_access_role_arn: Role assumed for short-lived shadow-read credentials
        role_session_name: Session name used when assuming the role
        request_timeout: Upper bound in seconds for each remote call
        location_mapping: Spoken location name to thing name
        measurements: Range and format per measurement
        messages: Fixed utterances
    """

    model_config = ConfigDict(frozen=True)

    skill_name: str = "ESP32 Sensor Reader"
    aws_region: str = "us-east-2"
    iot_endpoint: str | None = None
    iot_access_role_arn: str | None = None
    role_session_name: str = "Session"
    request_timeout: float = Field(default=10.0, gt=0)
    location_mapping: dict[str, str] = Field(
        default_factory=lambda: {"garage": "esp32_AAAAAA", "outdoors": "esp32_CCCCCC"}
    )
    measurements: dict[Measurement, MeasurementConfig] = Field(default_factory=lambda: dict(DEFAULT_MEASUREMENTS))
    messages: Messages = Field(default_factory=Messages)

    @field_validator("location_mapping")
    @classmethod
    def normalize_locations(cls, value: dict[str, str]) -> dict[str, str]:
        return {location.strip().lower(): thing_name for location, thing_name in value.items()}

    def resolve_location(self, location: str) -> str:
        """Return the thing name mapped to a spoken location.

        Raises:
            ConfigurationError: If no sensor is mapped to the location
        """
        thing_name = self.location_mapping.get(location.strip().lower())
        if thing_name is None:
            raise ConfigurationError(location)
        return thing_name

    def resolve_measurement(self, measurement: str) -> tuple[Measurement, MeasurementConfig]:
        """Return the typed measurement and its configuration.

        Whitespace is ignored, so a spoken "dew point" resolves to ``dewpoint``.

        Raises:
            UnknownMeasurementError: If the measurement is unknown or not configured
        """
        try:
            key = Measurement("".join(measurement.split()).lower())
        except ValueError as e:
            raise UnknownMeasurementError(measurement) from e
        if key not in self.measurements:
            raise UnknownMeasurementError(measurement)
        return key, self.measurements[key]


class DeviceConfig(BaseModel):
    """Configuration of one sensor device.

    Attributes:
        thing_name: Shadow document the device reports to
        variant: Sensor hardware fitted to the device
        report_interval: Seconds between telemetry reports, variant default if unset
        switch_pin: Output pin bound to ``switch_state``, or None for no actuator
        initial_switch_state: Value the pin is driven to at startup
        sensor_timeout: Upper bound in seconds for one sensor read
        report_timeout: Upper bound in seconds for one shadow report
        aws_region: Region of the IoT data plane
        iot_endpoint: Account specific IoT data endpoint, without scheme
    """

    model_config = ConfigDict(frozen=True)

    thing_name: str
    variant: SensorVariant = SensorVariant.DHT22
    report_interval: float | None = Field(default=None, gt=0)
    switch_pin: int | None = None
    initial_switch_state: int = Field(default=0, ge=0, le=1)
    sensor_timeout: float = Field(default=5.0, gt=0)
    report_timeout: float = Field(default=10.0, gt=0)
    aws_region: str = "us-east-2"
    iot_endpoint: str | None = None

    @property
    def handler_timeout(self) -> float:
        """Upper bound for one dispatched event, above the sum of its inner bounds.

        A tick reads at most three sensor values and sends one report.
        """
        return 3 * self.sensor_timeout + self.report_timeout + 1.0

    @property
    def effective_report_interval(self) -> float:
        if self.report_interval is not None:
            return self.report_interval
        # Cadence of the original firmware: 5 minutes for DHT22, 2.5 minutes for BME280
        return 150.0 if self.variant is SensorVariant.BME280 else 300.0


def load_config(config_path: pathlib.Path, config_class: type[ConfigT]) -> ConfigT:
    """Load and validate a TOML configuration file.

    Args:
        config_path: Path to the TOML file
        config_class: Pydantic model the file content is validated against

    Returns:
        The validated configuration object

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the content does not match the model
    """
    with config_path.open("rb") as f:
        data = tomllib.load(f)
    return config_class.model_validate(data)
