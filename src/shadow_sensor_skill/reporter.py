"""Telemetry reporter.

Reads the device's sensors on every timer tick, derives Fahrenheit values
and the dew point, and reports one complete snapshot to the shadow.
"""

import asyncio
import logging
import math
from collections.abc import Callable
from typing import Protocol

from shadow_sensor_skill.models import Measurement, SensorVariant
from shadow_sensor_skill.readings import celsius_to_fahrenheit, dew_point_fahrenheit
from shadow_sensor_skill.shadow import ShadowClient

logger = logging.getLogger(__name__)


class SensorDriver(Protocol):
    """Environmental sensor. Not every driver supports pressure."""

    def read_temperature(self) -> float: ...

    def read_humidity(self) -> float: ...

    def read_pressure(self) -> float: ...


class SensorReadError(Exception):
    """A sensor read failed, timed out or returned a non-finite value."""


class TelemetryReporter:
    """Publishes sensor snapshots to the device shadow.

    A tick whose sensor reads fail is skipped entirely, so the shadow never
    receives a partial or NaN snapshot. Values are not range checked here.

    Attributes:
        sensor: Sensor driver of the device
        shadow: Shadow client used for reporting
        variant: Decides which measurements are read and reported
        sensor_timeout: Upper bound in seconds for one sensor read
    """

    def __init__(
        self,
        sensor: SensorDriver,
        shadow: ShadowClient,
        variant: SensorVariant = SensorVariant.DHT22,
        sensor_timeout: float = 5.0,
    ) -> None:
        self.sensor = sensor
        self.shadow = shadow
        self.variant = variant
        self.sensor_timeout = sensor_timeout

    async def _read(self, name: str, read: Callable[[], float]) -> float:
        try:
            value = await asyncio.wait_for(asyncio.to_thread(read), timeout=self.sensor_timeout)
        except TimeoutError as e:
            raise SensorReadError(f"{name} read timed out after {self.sensor_timeout}s") from e
        except Exception as e:
            raise SensorReadError(f"{name} read failed: {e!r}") from e
        if value is None or not math.isfinite(value):
            raise SensorReadError(f"{name} read returned {value!r}")
        return float(value)

    async def read_snapshot(self) -> dict[str, float]:
        """Read all sensors of this variant and build the report snapshot.

        Raises:
            SensorReadError: If any read fails
        """
        temperature_c = await self._read("temperature", self.sensor.read_temperature)
        humidity = await self._read("humidity", self.sensor.read_humidity)
        snapshot = {
            Measurement.TEMPERATURE.value: celsius_to_fahrenheit(temperature_c),
            Measurement.HUMIDITY.value: humidity,
        }
        if self.variant is SensorVariant.BME280:
            pressure = await self._read("pressure", self.sensor.read_pressure)
            if humidity <= 0:
                raise SensorReadError(f"humidity {humidity} leaves the dew point undefined")
            snapshot[Measurement.DEWPOINT.value] = dew_point_fahrenheit(temperature_c, humidity)
            snapshot[Measurement.PRESSURE.value] = pressure
        return snapshot

    async def tick(self) -> bool:
        """Run one poll cycle.

        Returns:
            True if a snapshot was reported, False if the tick was skipped
        """
        try:
            snapshot = await self.read_snapshot()
        except SensorReadError as e:
            logger.warning("Skipping report: %s", e)
            return False
        logger.info("Reporting %s", snapshot)
        await self.shadow.report(snapshot)
        return True
