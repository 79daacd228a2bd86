from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from .const import OPENWEATHERMAP_ENDPOINT, REQUEST_TIMEOUT
from .exceptions import ReadError

_LOGGER = logging.getLogger(__name__)

# Decoding is lenient: anything missing or of the wrong type falls back to the
# zero value of the field instead of failing the read.


def _dict(data: Any, key: str) -> dict[str, Any]:
    value = data.get(key) if isinstance(data, dict) else None
    return value if isinstance(value, dict) else {}


def _float(data: dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    try:
        number = float(value)
    except OverflowError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _int(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)


def _str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return str(value) if value is not None else ""


@dataclass
class Coord:
    lon: float = 0.0
    lat: float = 0.0


@dataclass
class WeatherCondition:
    id: int = 0
    main: str = ""  # group of weather parameters (Rain, Snow, ...)
    description: str = ""
    icon: str = ""


@dataclass
class Main:
    temperature: float = 0.0
    feels_like: float = 0.0
    pressure: int = 0
    humidity: int = 0
    temperature_min: float = 0.0
    temperature_max: float = 0.0


@dataclass
class Wind:
    speed: float = 0.0
    direction: int = 0  # degrees
    gust: float = 0.0


@dataclass
class Clouds:
    all: int = 0


@dataclass
class Sys:
    country: str = ""
    sunrise: int = 0  # unix, UTC
    sunset: int = 0


@dataclass
class CurrentWeather:
    coord: Coord = field(default_factory=Coord)
    conditions: list[WeatherCondition] = field(default_factory=list)
    base: str = ""
    main: Main = field(default_factory=Main)
    visibility: int = 0
    wind: Wind = field(default_factory=Wind)
    clouds: Clouds = field(default_factory=Clouds)
    timestamp: int = 0  # time of data calculation, unix, UTC
    sys: Sys = field(default_factory=Sys)
    timezone: int = 0  # shift in seconds from UTC
    city_id: int = 0
    name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "CurrentWeather":
        if not isinstance(data, dict):
            return cls()

        coord = _dict(data, "coord")
        main = _dict(data, "main")
        wind = _dict(data, "wind")
        sys_ = _dict(data, "sys")
        conditions_raw = data.get("weather")

        return cls(
            coord=Coord(lon=_float(coord, "lon"), lat=_float(coord, "lat")),
            conditions=[
                WeatherCondition(
                    id=_int(c, "id"),
                    main=_str(c, "main"),
                    description=_str(c, "description"),
                    icon=_str(c, "icon"),
                )
                for c in (conditions_raw if isinstance(conditions_raw, list) else [])
                if isinstance(c, dict)
            ],
            base=_str(data, "base"),
            main=Main(
                temperature=_float(main, "temp"),
                feels_like=_float(main, "feels_like"),
                pressure=_int(main, "pressure"),
                humidity=_int(main, "humidity"),
                temperature_min=_float(main, "temp_min"),
                temperature_max=_float(main, "temp_max"),
            ),
            visibility=_int(data, "visibility"),
            wind=Wind(speed=_float(wind, "speed"), direction=_int(wind, "deg"), gust=_float(wind, "gust")),
            clouds=Clouds(all=_int(_dict(data, "clouds"), "all")),
            timestamp=_int(data, "dt"),
            sys=Sys(country=_str(sys_, "country"), sunrise=_int(sys_, "sunrise"), sunset=_int(sys_, "sunset")),
            timezone=_int(data, "timezone"),
            city_id=_int(data, "id"),
            name=_str(data, "name"),
        )


class WeatherApi:
    """OpenWeatherMap current weather for one city."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        city: str,
        country: str,
        api_key: str,
        units: str = "",
        *,
        endpoint: str = OPENWEATHERMAP_ENDPOINT,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self._session = session
        self._city = city
        self._country = country
        self._api_key = api_key
        self._units = units
        self._endpoint = endpoint
        self._timeout = timeout

    def _params(self) -> dict[str, str]:
        params = {"q": f"{self._city},{self._country}", "appid": self._api_key}
        if self._units:
            params["units"] = self._units
        return params

    async def async_get_current_weather(self) -> CurrentWeather:
        _LOGGER.debug("Weather REQ GET %s q=%s,%s", self._endpoint, self._city, self._country)

        try:
            async with self._session.request(
                "GET",
                self._endpoint,
                params=self._params(),
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                # undecodable bytes become U+FFFD and fall through to the JSON check
                text = await resp.text(errors="replace")
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise ReadError(f"GET {self._endpoint} failed: {err!r}", operation="read_current") from err

        _LOGGER.debug("Weather RESP %s body=%s", status, text)

        if status >= 400:
            raise ReadError(f"GET {self._endpoint} failed {status}: {text}", operation="read_current")

        try:
            data = json.loads(text) if text else {}
        except ValueError:
            _LOGGER.debug("Weather body is not JSON, decoding as empty")
            data = {}

        return CurrentWeather.from_dict(data)

    async def async_read_current(self) -> float:
        weather = await self.async_get_current_weather()
        return weather.main.temperature
