"""Pydantic schemas for the poll state API and WebSocket messages."""

from pydantic import BaseModel

from ..services.open_meteo import Reading
from ..services.poller import PollState, StrongAlertEvent
from ..services.weather_codes import describe_weather_code

# Hours of outlook shown alongside the alerts
OUTLOOK_HOURS = 12


class Location(BaseModel):
    name: str
    latitude: float
    longitude: float


class AlertOut(BaseModel):
    kind: str
    severity: str
    message: str


class CurrentOut(BaseModel):
    temperature_c: float | None = None
    humidity_pct: float | None = None
    wind_speed_kph: float | None = None
    rain_mm: float
    weather_code: int | None = None
    description: str
    observed_at: str | None = None


class HourlyPointOut(BaseModel):
    time: str | None = None
    precipitation_probability_pct: float | None = None
    precipitation_mm: float | None = None


class ReadingOut(BaseModel):
    timestamp: str
    current: CurrentOut
    outlook: list[HourlyPointOut] | None = None


class PollStateOut(BaseModel):
    status: str
    error: str | None = None
    last_updated: str | None = None
    auto_refresh_enabled: bool
    location: Location
    alerts: list[AlertOut]
    reading: ReadingOut | None = None


class StrongAlertOut(BaseModel):
    pattern_ms: list[int]
    alerts: list[AlertOut]


class AutoRefreshRequest(BaseModel):
    enabled: bool


def _reading_to_schema(reading: Reading) -> ReadingOut:
    cur = reading.current
    outlook = None
    if reading.hourly is not None:
        outlook = [
            HourlyPointOut(
                time=p.time,
                precipitation_probability_pct=p.precipitation_probability_pct,
                precipitation_mm=p.precipitation_mm,
            )
            for p in reading.hourly.next_hours(OUTLOOK_HOURS)
        ]
    return ReadingOut(
        timestamp=reading.timestamp.isoformat(),
        current=CurrentOut(
            temperature_c=cur.temperature_c,
            humidity_pct=cur.humidity_pct,
            wind_speed_kph=cur.wind_speed_kph,
            rain_mm=cur.rain_mm,
            weather_code=cur.weather_code,
            description=describe_weather_code(cur.weather_code),
            observed_at=cur.observed_at,
        ),
        outlook=outlook,
    )


def poll_state_to_schema(state: PollState, location: Location) -> PollStateOut:
    """Convert a PollState snapshot into its JSON response shape."""
    return PollStateOut(
        status=state.status.value,
        error=state.error,
        last_updated=state.last_updated.isoformat() if state.last_updated else None,
        auto_refresh_enabled=state.auto_refresh_enabled,
        location=location,
        alerts=[
            AlertOut(kind=a.kind.value, severity=a.severity.value, message=a.message)
            for a in state.alerts
        ],
        reading=_reading_to_schema(state.reading) if state.reading is not None else None,
    )


def strong_alert_to_schema(event: StrongAlertEvent) -> StrongAlertOut:
    return StrongAlertOut(
        pattern_ms=list(event.pattern_ms),
        alerts=[
            AlertOut(kind=a.kind.value, severity=a.severity.value, message=a.message)
            for a in event.alerts
        ],
    )
