"""Single-threaded device runtime.

Timer ticks and shadow notifications are funnelled into one queue and
dispatched by a single consumer, so handlers never run concurrently and
each one runs to completion before the next event is taken.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable

from shadow_sensor_skill.config import DeviceConfig
from shadow_sensor_skill.errors import TransportError
from shadow_sensor_skill.models import DeviceState, ShadowEvent
from shadow_sensor_skill.reconciler import SWITCH_STATE_KEY, ActuationReconciler, OutputPin
from shadow_sensor_skill.reporter import SensorDriver, TelemetryReporter
from shadow_sensor_skill.shadow import IotDataShadowClient, ShadowClient, create_iot_data_client

logger = logging.getLogger(__name__)

_TIMER_TICK = object()
_STOP = object()


class DeviceRuntime:
    """Hosts the telemetry reporter and the actuation reconciler of one device.

    A shadow transport registers ``deliver`` as its notification handler.

    Attributes:
        reporter: Telemetry reporter, None for devices without sensors
        reconciler: Actuation reconciler, None for devices without outputs
        report_interval: Seconds between timer ticks
        handler_timeout: Upper bound in seconds for handling one event
    """

    def __init__(
        self,
        reporter: TelemetryReporter | None = None,
        reconciler: ActuationReconciler | None = None,
        report_interval: float = 300.0,
        handler_timeout: float = 26.0,
    ) -> None:
        self.reporter = reporter
        self.reconciler = reconciler
        self.report_interval = report_interval
        self.handler_timeout = handler_timeout
        self.events: asyncio.Queue[object] = asyncio.Queue()
        self._tick_pending = False

    def deliver(self, event: ShadowEvent) -> None:
        """Queue a shadow notification for dispatch."""
        self.events.put_nowait(event)

    def stop(self) -> None:
        self.events.put_nowait(_STOP)

    async def _timer(self) -> None:
        while True:
            await asyncio.sleep(self.report_interval)
            # AIDEV-NOTE: At most one tick waits in the queue. Ticks that fall due while
            # one is pending are dropped, a slow report never builds a backlog.
            if self._tick_pending:
                logger.debug("Previous tick still pending, skipping")
                continue
            self._tick_pending = True
            self.events.put_nowait(_TIMER_TICK)

    async def dispatch(self, event: object) -> None:
        """Handle one event to completion.

        Failures of a handler are logged and swallowed so a single failed
        report or output write does not stop the device. There are no
        retries: the next tick or delta reports the full state again.
        """
        try:
            if event is _TIMER_TICK:
                self._tick_pending = False
                if self.reporter is not None:
                    await asyncio.wait_for(self.reporter.tick(), timeout=self.handler_timeout)
            elif isinstance(event, ShadowEvent):
                if self.reconciler is not None:
                    await asyncio.wait_for(self.reconciler.handle_event(event), timeout=self.handler_timeout)
            else:
                logger.warning("Dropping unknown event %r", event)
        except TransportError as e:
            logger.error("Shadow report failed: %s", e)
        except TimeoutError:
            logger.error("Handling %r exceeded %ss", event, self.handler_timeout)
        except Exception:
            logger.exception("Unexpected error while handling %r", event)

    async def run(self) -> None:
        """Dispatch events until ``stop`` is called."""
        if self.reconciler is not None:
            self.reconciler.setup()
        timer = asyncio.create_task(self._timer())
        logger.info("Device runtime started, reporting every %ss", self.report_interval)
        try:
            while True:
                event = await self.events.get()
                if event is _STOP:
                    break
                await self.dispatch(event)
        finally:
            timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await timer
            logger.info("Device runtime stopped")


def create_device_runtime(
    device_config: DeviceConfig,
    sensor: SensorDriver | None = None,
    output_factory: Callable[[int], OutputPin] | None = None,
    shadow: ShadowClient | None = None,
) -> DeviceRuntime:
    """Wire up the runtime of one device from its configuration.

    Args:
        device_config: Static configuration of the device
        sensor: Sensor driver, no telemetry is reported without one
        output_factory: Creates the output for ``device_config.switch_pin``
        shadow: Shadow client, an IoT data plane client for the thing if None
    """
    if shadow is None:
        iot_data = create_iot_data_client(
            device_config.aws_region, device_config.iot_endpoint, device_config.report_timeout
        )
        shadow = IotDataShadowClient(
            iot_data,
            thing_name=device_config.thing_name,
            timeout=device_config.report_timeout,
        )

    reporter = None
    if sensor is not None:
        reporter = TelemetryReporter(sensor, shadow, device_config.variant, device_config.sensor_timeout)

    reconciler = None
    if device_config.switch_pin is not None and output_factory is not None:
        reconciler = ActuationReconciler(
            DeviceState({SWITCH_STATE_KEY: device_config.initial_switch_state}),
            {SWITCH_STATE_KEY: output_factory(device_config.switch_pin)},
            shadow,
        )

    return DeviceRuntime(
        reporter=reporter,
        reconciler=reconciler,
        report_interval=device_config.effective_report_interval,
        handler_timeout=device_config.handler_timeout,
    )
