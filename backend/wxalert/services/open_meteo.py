"""Open-Meteo forecast client.

Fetches current conditions and the next-day hourly precipitation outlook for
one location.  A single GET per call: no caching and no retries; the polling
controller decides when to try again.

Open-Meteo API docs: https://open-meteo.com/en/docs
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

# HTTP timeout for Open-Meteo requests (seconds).
REQUEST_TIMEOUT = 15.0

REQUEST_HEADERS = {"Accept": "application/json"}

CURRENT_FIELDS = (
    "temperature_2m",
    "relative_humidity_2m",
    "rain",
    "weather_code",
    "wind_speed_10m",
)
HOURLY_FIELDS = ("precipitation_probability", "precipitation")

FORECAST_DAYS = 1


# --- Errors ---

class FetchError(Exception):
    """Base class for a failed forecast fetch."""


class NetworkError(FetchError):
    """No response was received (connect failure, timeout, reset)."""

    def __init__(self, detail: str):
        super().__init__(f"Network error: {detail}")
        self.detail = detail


class HttpStatusError(FetchError):
    """The provider answered with a non-2xx status."""

    def __init__(self, status_code: int):
        super().__init__(f"Weather API error: {status_code}")
        self.status_code = status_code


class MalformedResponseError(FetchError):
    """The body is not JSON or lacks the structure we need."""

    def __init__(self, detail: str):
        super().__init__(f"Malformed weather response: {detail}")
        self.detail = detail


# --- Reading ---

@dataclass(frozen=True)
class CurrentConditions:
    """The ``current`` block of a forecast response."""
    temperature_c: Optional[float] = None
    humidity_pct: Optional[float] = None
    wind_speed_kph: Optional[float] = None
    rain_mm: float = 0.0  # missing rain means no rain
    weather_code: Optional[int] = None
    observed_at: Optional[str] = None  # provider's local ISO time


@dataclass(frozen=True)
class HourlyPoint:
    """One hour of the forecast outlook."""
    time: Optional[str]
    precipitation_probability_pct: Optional[float]
    precipitation_mm: Optional[float]


@dataclass(frozen=True)
class HourlyForecast:
    """Hourly outlook, ordered from the current hour forward."""
    points: tuple[HourlyPoint, ...] = ()

    def next_hours(self, hours: int) -> tuple[HourlyPoint, ...]:
        return self.points[:hours]

    def probabilities(self, hours: int) -> list[float]:
        """Non-null precipitation probabilities for the first ``hours`` entries."""
        return [
            p.precipitation_probability_pct
            for p in self.next_hours(hours)
            if p.precipitation_probability_pct is not None
        ]

    def precipitation(self, hours: int) -> list[float]:
        """Precipitation amounts for the first ``hours`` entries (null as 0)."""
        return [p.precipitation_mm or 0.0 for p in self.next_hours(hours)]


@dataclass(frozen=True)
class Reading:
    """One fetched snapshot for the configured location."""
    current: CurrentConditions
    hourly: Optional[HourlyForecast] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# --- Parsing ---

def _number(block: dict, key: str) -> Optional[float]:
    value = block.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _parse_current(block: Any) -> CurrentConditions:
    if not isinstance(block, dict):
        raise MalformedResponseError("missing 'current' block")
    if not any(name in block for name in CURRENT_FIELDS):
        raise MalformedResponseError("'current' block has none of the requested fields")

    code = _number(block, "weather_code")
    rain = _number(block, "rain")
    observed = block.get("time")
    return CurrentConditions(
        temperature_c=_number(block, "temperature_2m"),
        humidity_pct=_number(block, "relative_humidity_2m"),
        wind_speed_kph=_number(block, "wind_speed_10m"),
        rain_mm=rain if rain is not None else 0.0,
        weather_code=int(code) if code is not None else None,
        observed_at=observed if isinstance(observed, str) else None,
    )


def _parse_hourly(block: Any) -> Optional[HourlyForecast]:
    """Parse the ``hourly`` block; columns must line up index by index."""
    if block is None:
        return None
    if not isinstance(block, dict):
        raise MalformedResponseError("'hourly' is not an object")

    columns: dict[str, list] = {}
    for name in ("time",) + HOURLY_FIELDS:
        values = block.get(name)
        if values is None:
            continue
        if not isinstance(values, list):
            raise MalformedResponseError(f"hourly '{name}' is not a list")
        columns[name] = values

    lengths = {len(v) for v in columns.values()}
    if len(lengths) > 1:
        raise MalformedResponseError(
            "hourly arrays differ in length: "
            + ", ".join(f"{k}={len(v)}" for k, v in columns.items())
        )
    size = lengths.pop() if lengths else 0

    def _col(name: str, i: int):
        values = columns.get(name)
        if values is None:
            return None
        value = values[i]
        if name == "time":
            return value if isinstance(value, str) else None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    points = tuple(
        HourlyPoint(
            time=_col("time", i),
            precipitation_probability_pct=_col("precipitation_probability", i),
            precipitation_mm=_col("precipitation", i),
        )
        for i in range(size)
    )
    return HourlyForecast(points=points)


def parse_reading(data: Any) -> Reading:
    """Build a Reading from a decoded forecast body.

    Raises MalformedResponseError when ``current`` is missing or the hourly
    columns are inconsistent.  A missing ``hourly`` block is allowed.
    """
    if not isinstance(data, dict):
        raise MalformedResponseError("body is not a JSON object")
    return Reading(
        current=_parse_current(data.get("current")),
        hourly=_parse_hourly(data.get("hourly")),
    )


# --- Fetch ---

def build_params(latitude: float, longitude: float) -> dict[str, Any]:
    return {
        "latitude": latitude,
        "longitude": longitude,
        "current": ",".join(CURRENT_FIELDS),
        "hourly": ",".join(HOURLY_FIELDS),
        "forecast_days": FORECAST_DAYS,
    }


async def fetch_reading(
    latitude: float,
    longitude: float,
    *,
    client: Optional[httpx.AsyncClient] = None,
    base_url: str = OPEN_METEO_URL,
    timeout: float = REQUEST_TIMEOUT,
) -> Reading:
    """Fetch one Reading for the given coordinates.

    Args:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        client: Optional shared client.  It is used as-is and not closed.
        base_url: Forecast endpoint.
        timeout: Request timeout when a client is created here.

    Raises:
        NetworkError: no response arrived.
        HttpStatusError: non-2xx status.
        MalformedResponseError: body unusable.
    """
    params = build_params(latitude, longitude)
    logger.debug("Fetching weather from %s (%s, %s)", base_url, latitude, longitude)

    try:
        if client is None:
            async with httpx.AsyncClient(
                headers=REQUEST_HEADERS,
                timeout=timeout,
                follow_redirects=True,
            ) as owned:
                resp = await owned.get(base_url, params=params)
        else:
            resp = await client.get(base_url, params=params, headers=REQUEST_HEADERS)
    except httpx.TransportError as exc:
        logger.warning("Open-Meteo request failed for (%s, %s): %s", latitude, longitude, exc)
        raise NetworkError(str(exc) or type(exc).__name__) from exc

    if not resp.is_success:
        logger.warning(
            "Open-Meteo returned HTTP %d for (%s, %s)", resp.status_code, latitude, longitude,
        )
        raise HttpStatusError(resp.status_code)

    try:
        data = resp.json()
    except ValueError as exc:
        logger.warning("Open-Meteo body is not JSON: %s", exc)
        raise MalformedResponseError("body is not valid JSON") from exc

    try:
        reading = parse_reading(data)
    except MalformedResponseError as exc:
        logger.warning("Open-Meteo response rejected: %s", exc)
        raise

    logger.debug(
        "Open-Meteo OK: temp=%s rain=%s wind=%s hourly=%s",
        reading.current.temperature_c,
        reading.current.rain_mm,
        reading.current.wind_speed_kph,
        len(reading.hourly.points) if reading.hourly else None,
    )
    return reading
