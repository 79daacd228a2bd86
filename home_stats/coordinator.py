from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from .config import AutoBoostConfig, ThermostatConfig, WeatherConfig
from .const import MEASUREMENT_THERMOSTAT, MEASUREMENT_WEATHER
from .exceptions import ActionError, HomeStatsError, WriteError
from .hive import HiveApi
from .sink import InfluxSink, Measurement
from .weather import WeatherApi

_LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedCoordinator:
    """Runs one poll cycle of a feed per refresh and contains its failures.

    A failed cycle is logged with the feed name and the remote operation, then
    forgotten; the next refresh starts from scratch.
    """

    def __init__(
        self,
        name: str,
        sink: InfluxSink,
        update_interval: timedelta | None,
        *,
        enabled: bool = True,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.name = name
        self.sink = sink
        self.update_interval = update_interval
        self.enabled = enabled
        self._now = now

        self.data: Measurement | None = None
        self.last_update_success = True
        self.last_exception: HomeStatsError | None = None

        # one cycle at a time per feed
        self._refresh_lock = asyncio.Lock()

    async def async_refresh(self) -> bool:
        """Run one cycle. Returns True when every step of it succeeded."""
        if not self.enabled:
            _LOGGER.debug("%s: feed disabled, skipping cycle", self.name)
            return False

        async with self._refresh_lock:
            self.last_update_success = True
            self.last_exception = None

            try:
                self.data = await self._async_update_data()
            except HomeStatsError as err:
                self._report_failure(err)
            except Exception as err:
                self.last_update_success = False
                _LOGGER.exception("%s: unexpected error during cycle: %s", self.name, err)

        return self.last_update_success

    def _report_failure(self, err: HomeStatsError) -> None:
        self.last_update_success = False
        self.last_exception = err
        _LOGGER.error("%s: %s failed: %s", self.name, err.operation or "cycle", err)

    async def _async_update_data(self) -> Measurement:
        raise NotImplementedError


class ThermostatCoordinator(FeedCoordinator):
    def __init__(
        self,
        api: HiveApi,
        sink: InfluxSink,
        conf: ThermostatConfig,
        *,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(MEASUREMENT_THERMOSTAT, sink, conf.interval, enabled=conf.enabled, now=now)
        self.api = api
        self.thermostat_id = conf.thermostat_id
        self.auto_boost: AutoBoostConfig = conf.auto_boost

    async def _async_update_data(self) -> Measurement:
        _LOGGER.info("Getting thermostat statistics")

        # Auth and read failures abort the cycle
        await self.api.async_authenticate()
        temperature = await self.api.async_get_temperature(self.thermostat_id)

        measurement = Measurement.temperature(MEASUREMENT_THERMOSTAT, temperature, self._now())
        try:
            await self.sink.async_write(measurement)
        except WriteError as err:
            # the reading is good, the boost decision below still stands
            self._report_failure(err)

        if self.auto_boost.should_boost(temperature):
            _LOGGER.info(
                "Boosting heating (%.1f <= %.1f) to %s for %sm",
                temperature,
                self.auto_boost.min_temperature,
                self.auto_boost.target_temperature,
                self.auto_boost.target_duration,
            )
            try:
                await self.api.async_boost_heating(
                    self.thermostat_id,
                    self.auto_boost.target_duration,
                    self.auto_boost.target_temperature,
                )
            except ActionError as err:
                self._report_failure(err)

        return measurement


class WeatherCoordinator(FeedCoordinator):
    def __init__(
        self,
        api: WeatherApi,
        sink: InfluxSink,
        conf: WeatherConfig,
        *,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(MEASUREMENT_WEATHER, sink, conf.interval, enabled=conf.enabled, now=now)
        self.api = api

    async def _async_update_data(self) -> Measurement:
        _LOGGER.info("Getting weather statistics")

        temperature = await self.api.async_read_current()
        measurement = Measurement.temperature(MEASUREMENT_WEATHER, temperature, self._now())
        await self.sink.async_write(measurement)
        return measurement
