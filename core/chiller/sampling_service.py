"""
Status Sampling Service

Background service that samples the refrigerator once per interval.
Each tick reads the current configuration and sensors, builds a status
record, appends it to today's log and broadcasts it to live subscribers.
Runs independently of the UI, whether or not anyone is watching.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable

from .config_store import ConfigStore
from .controller import PIDController, derive_status
from .exceptions import NotFoundError
from .live import LiveChannel
from .models import StatusRecord
from .recorder import Recorder
from .sensors import SensorReader

logger = logging.getLogger(__name__)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with a 'Z' suffix, e.g. 2020-04-19T10:00:00Z."""
    moment = moment.astimezone(timezone.utc)
    timespec = "milliseconds" if moment.microsecond else "seconds"
    return moment.replace(tzinfo=None).isoformat(timespec=timespec) + "Z"


class SamplingService:
    """
    Periodic producer of status records.

    A failing tick (configuration unreadable, sensor fault) produces no
    record and leaves the following ticks unaffected. Recording and
    broadcasting are independent: one failing does not prevent the other.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        sensor_reader: SensorReader,
        recorder: Recorder,
        live_channel: LiveChannel,
        interval_seconds: float = 1.0,
        controller: PIDController | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config_store = config_store
        self.sensor_reader = sensor_reader
        self.recorder = recorder
        self.live_channel = live_channel
        self.interval_seconds = interval_seconds
        self.controller = controller
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.last_record: StatusRecord | None = None
        self.skipped_ticks = 0

        self._tick_lock = asyncio.Lock()
        self._config_missing_logged = False
        self._last_tick: float | None = None
        self._task: asyncio.Task | None = None
        self._running = False

    async def start(self):
        """Start the sampling loop."""
        if self._running:
            logger.warning("Sampling service already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"🧊 Sampling service started, interval: {self.interval_seconds} seconds")

    async def stop(self):
        """Stop the sampling loop."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("🧊 Sampling service stopped")

    async def _run_loop(self):
        """Main loop - one tick per interval, never two at once."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while self._running:
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Error in sampling loop: {e}", exc_info=True)

            next_tick += self.interval_seconds
            now = loop.time()
            if now > next_tick:
                missed = int((now - next_tick) // self.interval_seconds) + 1
                logger.warning(f"Sampling tick overran, skipping {missed} tick(s)")
                next_tick += missed * self.interval_seconds

            await asyncio.sleep(next_tick - now)

    async def tick(self, now: datetime | None = None) -> StatusRecord | None:
        """Sample once.

        Args:
            now: Tick time (defaults to the service clock)

        Returns:
            The record produced, or None if the tick was abandoned
        """
        async with self._tick_lock:
            moment = now or self.clock()

            try:
                config = await asyncio.to_thread(self.config_store.read)
            except NotFoundError as e:
                if self.config_store.default is None:
                    self.skipped_ticks += 1
                    if not self._config_missing_logged:
                        logger.warning(f"Skipping ticks until a configuration is stored: {e}")
                        self._config_missing_logged = True
                    return None
                if not self._config_missing_logged:
                    logger.info(f"{e}, sampling with the default configuration")
                    self._config_missing_logged = True
                config = self.config_store.default
            except Exception as e:
                self.skipped_ticks += 1
                logger.error(f"Skipping tick, cannot read configuration: {e}")
                return None
            else:
                self._config_missing_logged = False

            try:
                result = await asyncio.to_thread(self.sensor_reader.read)
            except Exception as e:
                self.skipped_ticks += 1
                logger.error(f"Skipping tick, sensor reader raised: {e}", exc_info=True)
                return None

            if not result.ok:
                self.skipped_ticks += 1
                logger.warning(f"Skipping tick, sensor fault: {result.error}")
                return None

            reading = result.reading
            if reading.inside_temp is None or reading.outside_temp is None:
                self.skipped_ticks += 1
                logger.warning(f"Skipping tick, missing inside/outside channel in {sorted(reading.temperatures)}")
                return None

            correction = reading.correction
            if self.controller is not None:
                correction = self.controller.update(reading.inside_temp, config, self._elapsed())

            record = StatusRecord(
                timestamp=format_timestamp(moment),
                status=derive_status(reading.status, reading.inside_temp, config.target_temp, correction),
                inside_temp=reading.inside_temp,
                outside_temp=reading.outside_temp,
                target_temp=config.target_temp,
                p=config.p,
                i=config.i,
                d=config.d,
                correction=correction,
            )

            try:
                await asyncio.to_thread(self.recorder.record, record)
            except Exception as e:
                logger.error(f"Failed to record status: {e}", exc_info=True)

            try:
                self.live_channel.publish(record)
            except Exception as e:
                logger.error(f"Failed to broadcast status: {e}", exc_info=True)

            self.last_record = record
            logger.debug(f"Sampled {record.to_csv_line()}")
            return record

    def _elapsed(self) -> float:
        now = time.monotonic()
        elapsed = 0.0 if self._last_tick is None else now - self._last_tick
        self._last_tick = now
        return elapsed
