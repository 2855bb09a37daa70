"""Domain models shared by the device runtime and the voice skill."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Measurement(Enum):
    """Measurements a sensor device can report and the skill can answer for."""

    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    PRESSURE = "pressure"
    DEWPOINT = "dewpoint"


class SensorVariant(Enum):
    """Firmware variants of the telemetry reporter.

    DHT22 devices only carry a temperature/humidity sensor. BME280 devices
    add barometric pressure and therefore also report a computed dew point.
    """

    DHT22 = "dht22"
    BME280 = "bme280"


class ShadowEventType(Enum):
    """Notifications delivered by the shadow subsystem to the device."""

    CONNECTED = "connected"
    UPDATE_DELTA = "update_delta"


class ShadowEvent(BaseModel):
    """A single shadow notification.

    Attributes:
        event: Which notification this is
        desired: Desired-state keys that changed (empty for CONNECTED)
        reported_metadata: Per-key metadata of the reported section, if any
        desired_metadata: Per-key metadata of the desired section, if any
    """

    event: ShadowEventType
    desired: dict[str, Any] = Field(default_factory=dict)
    reported_metadata: dict[str, Any] = Field(default_factory=dict)
    desired_metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def connected(cls) -> "ShadowEvent":
        return cls(event=ShadowEventType.CONNECTED)

    @classmethod
    def from_delta_document(cls, document: dict[str, Any]) -> "ShadowEvent":
        """Build an UPDATE_DELTA event from an AWS IoT ``shadow/update/delta`` message body."""
        return cls(
            event=ShadowEventType.UPDATE_DELTA,
            desired=document.get("state") or {},
            desired_metadata=document.get("metadata") or {},
        )


class DeviceState:
    """Local device state owned by the actuation reconciler.

    Holds a fixed set of recognized keys. Keys can be updated but never
    added or removed after construction, so every snapshot has the same
    key set.
    """

    def __init__(self, initial: dict[str, int]) -> None:
        self._values = dict(initial)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __getitem__(self, key: str) -> int:
        return self._values[key]

    def __setitem__(self, key: str, value: int) -> None:
        if key not in self._values:
            raise KeyError(key)
        self._values[key] = value

    def keys(self) -> list[str]:
        return list(self._values)

    def snapshot(self) -> dict[str, int]:
        """Return a complete copy of the current state."""
        return dict(self._values)

    def __repr__(self) -> str:
        return f"DeviceState({self._values!r})"
