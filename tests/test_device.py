"""Tests for event dispatch of the single-threaded device runtime."""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from shadow_sensor_skill.config import DeviceConfig
from shadow_sensor_skill.device import DeviceRuntime, create_device_runtime
from shadow_sensor_skill.errors import TransportError
from shadow_sensor_skill.models import DeviceState, SensorVariant, ShadowEvent, ShadowEventType
from shadow_sensor_skill.reconciler import SWITCH_STATE_KEY, ActuationReconciler


class FakePin:
    def __init__(self) -> None:
        self.initial: int | None = None
        self.writes: list[int] = []

    def setup_output(self, initial: int) -> None:
        self.initial = initial

    def write(self, value: int) -> None:
        self.writes.append(value)


@pytest.fixture
def shadow() -> MagicMock:
    shadow = MagicMock()
    shadow.report = AsyncMock()
    return shadow


@pytest.fixture
def pin() -> FakePin:
    return FakePin()


@pytest.fixture
def reconciler(shadow: MagicMock, pin: FakePin) -> ActuationReconciler:
    return ActuationReconciler(DeviceState({SWITCH_STATE_KEY: 0}), {SWITCH_STATE_KEY: pin}, shadow)


async def test_events_are_dispatched_in_order(
    reconciler: ActuationReconciler, shadow: MagicMock, pin: FakePin
) -> None:
    runtime = DeviceRuntime(reconciler=reconciler, report_interval=60)
    runtime.deliver(ShadowEvent.connected())
    runtime.deliver(ShadowEvent(event=ShadowEventType.UPDATE_DELTA, desired={SWITCH_STATE_KEY: 1}))
    runtime.deliver(ShadowEvent(event=ShadowEventType.UPDATE_DELTA, desired={SWITCH_STATE_KEY: 0}))
    runtime.stop()

    await asyncio.wait_for(runtime.run(), timeout=1)

    assert pin.initial == 0
    assert pin.writes == [1, 0]
    assert [call.args[0] for call in shadow.report.await_args_list] == [
        {SWITCH_STATE_KEY: 0},
        {SWITCH_STATE_KEY: 1},
        {SWITCH_STATE_KEY: 0},
    ]


async def test_failed_report_does_not_stop_runtime(
    reconciler: ActuationReconciler, shadow: MagicMock, pin: FakePin
) -> None:
    shadow.report.side_effect = [TransportError("offline"), None]
    runtime = DeviceRuntime(reconciler=reconciler, report_interval=60)
    runtime.deliver(ShadowEvent.connected())
    runtime.deliver(ShadowEvent(event=ShadowEventType.UPDATE_DELTA, desired={SWITCH_STATE_KEY: 1}))
    runtime.stop()

    await asyncio.wait_for(runtime.run(), timeout=1)

    assert shadow.report.await_count == 2  # noqa: PLR2004
    assert pin.writes == [1]


async def test_timer_ticks_drive_reporter() -> None:
    reporter = MagicMock()
    reporter.tick = AsyncMock(return_value=True)
    runtime = DeviceRuntime(reporter=reporter, report_interval=0.01)

    task = asyncio.create_task(runtime.run())
    await asyncio.sleep(0.1)
    runtime.stop()
    await asyncio.wait_for(task, timeout=1)

    assert reporter.tick.await_count >= 1


async def test_slow_handler_is_bounded(shadow: MagicMock, reconciler: ActuationReconciler) -> None:
    async def hang(snapshot: dict) -> None:  # noqa: ARG001
        await asyncio.sleep(10)

    shadow.report.side_effect = hang
    runtime = DeviceRuntime(reconciler=reconciler, report_interval=60, handler_timeout=0.05)
    runtime.deliver(ShadowEvent.connected())
    runtime.stop()

    await asyncio.wait_for(runtime.run(), timeout=1)

    assert shadow.report.await_count == 1


async def test_pending_ticks_are_coalesced() -> None:
    async def slow_tick() -> bool:
        await asyncio.sleep(0.2)
        return True

    reporter = MagicMock()
    reporter.tick = AsyncMock(side_effect=slow_tick)
    runtime = DeviceRuntime(reporter=reporter, report_interval=0.01)

    task = asyncio.create_task(runtime.run())
    await asyncio.sleep(0.5)

    assert runtime.events.qsize() <= 1
    runtime.stop()
    await asyncio.wait_for(task, timeout=1)
    assert reporter.tick.await_count <= 5  # noqa: PLR2004


async def test_failed_output_write_does_not_stop_runtime(shadow: MagicMock) -> None:
    class BusyPin(FakePin):
        def write(self, value: int) -> None:  # noqa: ARG002
            raise OSError("gpio busy")

    reconciler = ActuationReconciler(DeviceState({SWITCH_STATE_KEY: 0}), {SWITCH_STATE_KEY: BusyPin()}, shadow)
    runtime = DeviceRuntime(reconciler=reconciler, report_interval=60)
    runtime.deliver(ShadowEvent(event=ShadowEventType.UPDATE_DELTA, desired={SWITCH_STATE_KEY: 1}))
    runtime.deliver(ShadowEvent.connected())
    runtime.stop()

    await asyncio.wait_for(runtime.run(), timeout=1)

    assert reconciler.state.snapshot() == {SWITCH_STATE_KEY: 0}
    assert [call.args[0] for call in shadow.report.await_args_list] == [{SWITCH_STATE_KEY: 0}, {SWITCH_STATE_KEY: 0}]


async def test_unexpected_handler_error_does_not_stop_runtime() -> None:
    reconciler = MagicMock()
    reconciler.handle_event = AsyncMock(side_effect=[RuntimeError("boom"), None])
    runtime = DeviceRuntime(reconciler=reconciler, report_interval=60)
    runtime.deliver(ShadowEvent.connected())
    runtime.deliver(ShadowEvent.connected())
    runtime.stop()

    await asyncio.wait_for(runtime.run(), timeout=1)

    assert reconciler.handle_event.await_count == 2  # noqa: PLR2004


async def test_shadow_events_without_reconciler_are_ignored() -> None:
    reporter = MagicMock()
    reporter.tick = AsyncMock()
    runtime = DeviceRuntime(reporter=reporter, report_interval=60)
    runtime.deliver(ShadowEvent.connected())
    runtime.stop()

    await asyncio.wait_for(runtime.run(), timeout=1)

    reporter.tick.assert_not_awaited()


class FakeSensor:
    def read_temperature(self) -> float:
        return 25.0

    def read_humidity(self) -> float:
        return 60.0

    def read_pressure(self) -> float:
        return 1002.0


async def test_create_device_runtime_from_config(shadow: MagicMock) -> None:
    pins: dict[int, FakePin] = {}

    def output_factory(pin_number: int) -> FakePin:
        pins[pin_number] = FakePin()
        return pins[pin_number]

    device_config = DeviceConfig(
        thing_name="esp32_CCCCCC", variant=SensorVariant.BME280, switch_pin=4, initial_switch_state=1
    )

    runtime = create_device_runtime(device_config, FakeSensor(), output_factory, shadow)

    assert runtime.report_interval == 150.0  # noqa: PLR2004
    assert runtime.handler_timeout == device_config.handler_timeout
    assert runtime.reporter is not None
    assert runtime.reporter.variant is SensorVariant.BME280
    assert runtime.reconciler is not None
    assert runtime.reconciler.state.snapshot() == {SWITCH_STATE_KEY: 1}
    assert list(pins) == [4]

    runtime.deliver(ShadowEvent.connected())
    runtime.stop()
    await asyncio.wait_for(runtime.run(), timeout=1)

    assert pins[4].initial == 1
    shadow.report.assert_awaited_once_with({SWITCH_STATE_KEY: 1})


async def test_create_device_runtime_without_actuator(shadow: MagicMock) -> None:
    runtime = create_device_runtime(DeviceConfig(thing_name="esp32_AAAAAA"), FakeSensor(), shadow=shadow)

    assert runtime.reconciler is None
    assert runtime.report_interval == 300.0  # noqa: PLR2004
    assert await runtime.reporter.tick() is True
    assert set(shadow.report.await_args.args[0]) == {"temperature", "humidity"}


class SlowSensor(FakeSensor):
    """Every read takes 0.1s, well within the per-read bound."""

    def read_temperature(self) -> float:
        time.sleep(0.1)
        return super().read_temperature()

    def read_humidity(self) -> float:
        time.sleep(0.1)
        return super().read_humidity()

    def read_pressure(self) -> float:
        time.sleep(0.1)
        return super().read_pressure()


async def test_slow_bme280_tick_within_inner_bounds_is_reported(shadow: MagicMock) -> None:
    device_config = DeviceConfig(
        thing_name="esp32_CCCCCC",
        variant=SensorVariant.BME280,
        report_interval=0.05,
        sensor_timeout=0.5,
        report_timeout=0.2,
    )
    runtime = create_device_runtime(device_config, SlowSensor(), shadow=shadow)

    task = asyncio.create_task(runtime.run())
    await asyncio.sleep(0.6)
    runtime.stop()
    await asyncio.wait_for(task, timeout=2)

    assert shadow.report.await_count >= 1
    assert set(shadow.report.await_args_list[0].args[0]) == {"temperature", "humidity", "dewpoint", "pressure"}
