"""Unit conversion, dew point calculation and reading validation."""

import math
from typing import Any

from shadow_sensor_skill.config import MeasurementConfig
from shadow_sensor_skill.errors import InvalidReadingError, OutOfRangeError


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 1.8 + 32.0


def dew_point_celsius(temperature_c: float, relative_humidity: float) -> float:
    """Approximate the dew point with the Magnus formula.

    Args:
        temperature_c: Air temperature in degrees Celsius
        relative_humidity: Relative humidity in percent, must be positive

    Returns:
        Dew point in degrees Celsius
    """
    h = (math.log10(relative_humidity) - 2) / 0.4343 + (17.62 * temperature_c) / (243.12 + temperature_c)
    return 243.12 * h / (17.62 - h)


def dew_point_fahrenheit(temperature_c: float, relative_humidity: float) -> float:
    return celsius_to_fahrenheit(dew_point_celsius(temperature_c, relative_humidity))


def parse_reading(value: Any, name: str) -> float:
    """Parse a raw shadow value into a finite float.

    Raises:
        InvalidReadingError: If the value is not numeric
    """
    # bool is an int subclass but never a valid sensor value
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        raise InvalidReadingError(f"Invalid {name} reading")
    try:
        number = float(value)
    except ValueError as e:
        raise InvalidReadingError(f"Invalid {name} reading") from e
    if not math.isfinite(number):
        raise InvalidReadingError(f"Invalid {name} reading")
    return number


def process_measurement_value(value: Any, name: str, measurement_config: MeasurementConfig) -> str:
    """Validate a reading and format it for speech.

    Args:
        value: Raw value taken from the reported shadow state
        name: Measurement name used in error messages
        measurement_config: Range and precision of the measurement

    Returns:
        The value formatted to the configured precision

    Raises:
        InvalidReadingError: If the value is not numeric
        OutOfRangeError: If the value lies outside ``[min, max]``
    """
    number = parse_reading(value, name)
    if number < measurement_config.min or number > measurement_config.max:
        raise OutOfRangeError(f"{name} reading out of reasonable range")
    return f"{number:.{measurement_config.precision}f}"
