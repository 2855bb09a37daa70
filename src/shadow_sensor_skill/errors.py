"""Exception hierarchy for the shadow sensor skill.

Every failure raised while answering a voice query derives from
SensorSkillError so the skill can map it to a spoken response instead of
letting it reach the voice platform.
"""


class SensorSkillError(Exception):
    """Base class for all skill errors."""


class ConfigurationError(SensorSkillError):
    """No sensor is mapped to the requested location."""

    def __init__(self, location: str) -> None:
        super().__init__(f"No sensor configured for location '{location}'")
        self.location = location


class UnknownMeasurementError(SensorSkillError):
    """The requested measurement is not one of the configured measurement types."""

    def __init__(self, measurement: str) -> None:
        super().__init__(f"Unknown measurement '{measurement}'")
        self.measurement = measurement


class DataUnavailableError(SensorSkillError):
    """The shadow has no reported value for the requested measurement."""

    def __init__(self, measurement: str) -> None:
        super().__init__(f"No {measurement} data available")
        self.measurement = measurement


class InvalidReadingError(SensorSkillError):
    """The reported value is not a finite number."""


class OutOfRangeError(SensorSkillError):
    """The reported value lies outside the measurement's configured bounds."""


class TransportError(SensorSkillError):
    """Credential or shadow service call failed."""


class DeviceNotFoundError(TransportError):
    """The shadow service has no document for the thing."""
