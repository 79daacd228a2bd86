from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from .const import FIELD_CURRENT, REQUEST_TIMEOUT, TAG_UNIT, UNIT_TEMPERATURE
from .exceptions import WriteError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Measurement:
    name: str
    tags: dict[str, str] = field(default_factory=dict)
    fields: dict[str, float] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def temperature(cls, name: str, value: float, timestamp: datetime | None = None) -> "Measurement":
        """The shape every feed writes: ``<name>,unit=temperature current=<value>``."""
        return cls(
            name=name,
            tags={TAG_UNIT: UNIT_TEMPERATURE},
            fields={FIELD_CURRENT: float(value)},
            timestamp=timestamp or datetime.now(timezone.utc),
        )

    def to_point(self) -> Point:
        point = Point(self.name)
        for key, value in self.tags.items():
            point.tag(key, value)
        for key, value in self.fields.items():
            point.field(key, float(value))
        return point.time(self.timestamp, WritePrecision.NS)


class InfluxSink:
    """Writes measurements to InfluxDB (1.8 compatibility API, bucket = database).

    A client is opened per write and closed again whatever the outcome.
    """

    def __init__(
        self,
        uri: str,
        username: str,
        password: str,
        database: str,
        *,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self._uri = uri
        self._token = f"{username}:{password}"
        self._database = database
        self._timeout = timeout

    def write(self, measurement: Measurement) -> None:
        point = measurement.to_point()
        try:
            with InfluxDBClient(url=self._uri, token=self._token, org="-", timeout=int(self._timeout * 1000)) as client:
                write_api = client.write_api(write_options=SYNCHRONOUS)
                write_api.write(bucket=self._database, record=point)
        except Exception as err:
            raise WriteError(
                f"error writing {measurement.name} to {self._uri}/{self._database}: {err}",
                operation="write",
            ) from err

        _LOGGER.debug("Stored point %s", point.to_line_protocol())

    async def async_write(self, measurement: Measurement) -> None:
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(loop.run_in_executor(None, self.write, measurement), timeout=self._timeout)
        except asyncio.TimeoutError as err:
            raise WriteError(
                f"write of {measurement.name} timed out after {self._timeout}s", operation="write"
            ) from err
