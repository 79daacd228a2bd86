from __future__ import annotations

import logging

import aiohttp

from .config import Config
from .coordinator import ThermostatCoordinator, WeatherCoordinator
from .hive import Authenticator, HiveApi
from .scheduler import PollScheduler
from .sink import InfluxSink
from .weather import WeatherApi

__version__ = "0.1.0"

_LOGGER = logging.getLogger(__name__)


def setup_scheduler(
    conf: Config,
    session: aiohttp.ClientSession,
    *,
    sink: InfluxSink | None = None,
    authenticator: Authenticator | None = None,
) -> PollScheduler:
    """Wire the capability clients, the sink and one coordinator per feed."""
    if sink is None:
        sink = InfluxSink(
            uri=conf.database.uri,
            username=conf.database.username,
            password=conf.database.password,
            database=conf.database.database,
        )

    t = conf.thermostat
    hive = HiveApi(
        session=session,
        username=t.username,
        password=t.password,
        pool_id=t.hive_sso.pool_id,
        client_id=t.hive_sso.client_id,
        authenticator=authenticator,
    )

    w = conf.weather
    weather = WeatherApi(
        session=session,
        city=w.city,
        country=w.country,
        api_key=w.api_key,
        units=w.units,
    )

    coordinators = [
        ThermostatCoordinator(hive, sink, t),
        WeatherCoordinator(weather, sink, w),
    ]
    for coordinator in coordinators:
        _LOGGER.debug("%s: enabled=%s interval=%s", coordinator.name, coordinator.enabled, coordinator.update_interval)

    return PollScheduler(coordinators)
