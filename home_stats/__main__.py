from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

import aiohttp

from . import setup_scheduler
from .config import Config, load_config
from .const import DEFAULT_CONFIG_PATH
from .exceptions import ConfigError

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


async def async_main(conf: Config) -> None:
    async with aiohttp.ClientSession() as session:
        scheduler = setup_scheduler(conf, session)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, scheduler.stop)
            except NotImplementedError:
                _LOGGER.debug("Signal handlers not supported here, relying on KeyboardInterrupt")
                break

        await scheduler.run()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="home-stats",
        description="Poll the Hive thermostat and OpenWeatherMap and store readings in InfluxDB.",
    )
    parser.add_argument("config", nargs="?", default=DEFAULT_CONFIG_PATH, help="path to the JSON settings file")
    args = parser.parse_args(argv)

    try:
        conf = load_config(args.config)
    except ConfigError as err:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        _LOGGER.critical("unable to initialise config: %s", err)
        return 1

    logging.basicConfig(level=conf.log_level, format=LOG_FORMAT)
    print(conf.summary())

    try:
        asyncio.run(async_main(conf))
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted, shutting down")

    return 0


if __name__ == "__main__":
    sys.exit(main())
