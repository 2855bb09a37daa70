"""Actuation reconciler.

Keeps the local switch state consistent with the desired state of the
device shadow and re-announces the complete local state after every
change and on every (re)connection.
"""

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from shadow_sensor_skill.models import DeviceState, ShadowEvent, ShadowEventType
from shadow_sensor_skill.shadow import ShadowClient

logger = logging.getLogger(__name__)

SWITCH_STATE_KEY = "switch_state"


class OutputPin(Protocol):
    """A single digital output, e.g. a relay driving a heater."""

    def setup_output(self, initial: int) -> None: ...

    def write(self, value: int) -> None: ...


def coerce_switch_value(value: Any) -> int | None:
    """Normalize a desired switch value to 0 or 1, None if it is not a switch value."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int | float) and value in (0, 1):
        return int(value)
    if isinstance(value, str) and value.strip().lower() in ("0", "1", "true", "false"):
        return 1 if value.strip().lower() in ("1", "true") else 0
    return None


class ActuationReconciler:
    """Applies shadow deltas to local outputs and reports the resulting state.

    Attributes:
        state: Local device state, owned exclusively by this reconciler
        outputs: Output pin bound to each recognized state key
        shadow: Shadow client used for reporting
    """

    def __init__(self, state: DeviceState, outputs: Mapping[str, OutputPin], shadow: ShadowClient) -> None:
        unknown = set(outputs) - set(state.keys())
        if unknown:
            raise ValueError(f"Outputs bound to unknown state keys: {sorted(unknown)}")
        self.state = state
        self.outputs = dict(outputs)
        self.shadow = shadow

    def setup(self) -> None:
        """Configure every output pin and drive it to the current state."""
        for key, pin in self.outputs.items():
            pin.setup_output(self.state[key])

    async def handle_event(self, event: ShadowEvent) -> None:
        logger.info("Shadow event %s, desired=%s", event.event.value, event.desired)
        if event.event is ShadowEventType.CONNECTED:
            await self.on_connected()
        elif event.event is ShadowEventType.UPDATE_DELTA:
            await self.on_delta(event.desired)

    async def on_connected(self) -> None:
        await self.report()

    async def on_delta(self, desired: Mapping[str, Any]) -> None:
        """Adopt desired values for recognized keys, then report the full state.

        Keys not present in the local state are ignored. Recognized keys
        missing from ``desired`` keep their value. A key whose output write
        fails keeps its previous value. The report is sent even when nothing
        changed.
        """
        for key in self.state.keys():
            if key not in desired:
                continue
            value = coerce_switch_value(desired[key])
            if value is None:
                logger.warning("Ignoring invalid desired value %r for %s", desired[key], key)
                continue
            # AIDEV-NOTE: The pin is written before the state is committed, so the
            # reported state never claims a value the output does not hold.
            pin = self.outputs.get(key)
            if pin is not None:
                try:
                    pin.write(value)
                except Exception:
                    logger.exception("Failed to write %s=%s to output, keeping %s", key, value, self.state[key])
                    continue
            self.state[key] = value
        ignored = set(desired) - set(self.state.keys())
        if ignored:
            logger.debug("Ignoring unrecognized desired keys %s", sorted(ignored))
        await self.report()

    async def report(self) -> None:
        await self.shadow.report(self.state.snapshot())
