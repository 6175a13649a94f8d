"""Hazard alert rules for a weather Reading.

Turns the current conditions and the six-hour outlook into a short list of
typed alerts.  Pure: no I/O and no state between calls, so the same Reading
always yields the same alerts.
"""

from dataclasses import dataclass
from enum import Enum

from .open_meteo import Reading

# Thresholds are fixed; all comparisons are strict (>).
RAIN_MM = 0.0
RAIN_HIGH_MM = 5.0
WIND_KPH = 30.0
WIND_HIGH_KPH = 40.0
FORECAST_PROB_MEDIUM_PCT = 50.0
FORECAST_PROB_HIGH_PCT = 70.0
FORECAST_VOLUME_HIGH_MM = 15.0

# Absorbs float summation noise (e.g. 15.000000000000002) in the volume rule
FLOAT_TOLERANCE = 1e-9

# Hours of hourly outlook the forecast rules look at
FORECAST_WINDOW_HOURS = 6


class AlertKind(str, Enum):
    RAIN = "rain"
    WIND = "wind"
    FORECAST = "forecast"


class Severity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Alert:
    """A derived hazard notice."""
    kind: AlertKind
    severity: Severity
    message: str


def _rain_alert(reading: Reading) -> Alert | None:
    rain = reading.current.rain_mm
    if not rain > RAIN_MM:
        return None
    return Alert(
        kind=AlertKind.RAIN,
        severity=Severity.HIGH if rain > RAIN_HIGH_MM else Severity.MEDIUM,
        message=f"Currently raining: {rain:.1f}mm",
    )


def _wind_alert(reading: Reading) -> Alert | None:
    wind = reading.current.wind_speed_kph
    if wind is None or not wind > WIND_KPH:
        return None
    return Alert(
        kind=AlertKind.WIND,
        severity=Severity.HIGH if wind > WIND_HIGH_KPH else Severity.MEDIUM,
        message=f"Strong winds: {wind:.1f} km/h",
    )


def _forecast_probability_alert(reading: Reading) -> Alert | None:
    if reading.hourly is None:
        return None
    probs = reading.hourly.probabilities(FORECAST_WINDOW_HOURS)
    if not probs:
        return None

    peak = max(probs)
    if peak > FORECAST_PROB_HIGH_PCT:
        return Alert(
            kind=AlertKind.FORECAST,
            severity=Severity.HIGH,
            message=f"High chance of rain soon ({peak:g}%)",
        )
    if peak > FORECAST_PROB_MEDIUM_PCT:
        return Alert(
            kind=AlertKind.FORECAST,
            severity=Severity.MEDIUM,
            message=f"Possible rain in next hours ({peak:g}%)",
        )
    return None


def _forecast_volume_alert(reading: Reading) -> Alert | None:
    if reading.hourly is None:
        return None
    total = sum(reading.hourly.precipitation(FORECAST_WINDOW_HOURS))
    if not total > FORECAST_VOLUME_HIGH_MM + FLOAT_TOLERANCE:
        return None
    return Alert(
        kind=AlertKind.FORECAST,
        severity=Severity.HIGH,
        message=f"Heavy rain expected ({total:.1f}mm)",
    )


# Emission order: current rain, wind, forecast probability, forecast volume
RULES = (
    _rain_alert,
    _wind_alert,
    _forecast_probability_alert,
    _forecast_volume_alert,
)


def derive_alerts(reading: Reading) -> tuple[Alert, ...]:
    """Evaluate every rule against ``reading`` in fixed order."""
    alerts = []
    for rule in RULES:
        alert = rule(reading)
        if alert is not None:
            alerts.append(alert)
    return tuple(alerts)


def has_strong_alert(alerts: tuple[Alert, ...] | list[Alert]) -> bool:
    """True if any alert is high severity."""
    return any(a.severity is Severity.HIGH for a in alerts)
