"""WMO weather interpretation codes used by Open-Meteo.

Only the codes the forecast endpoint reports for this location are mapped;
anything else (or a missing code) describes as "Unknown".
"""

from typing import Optional

UNKNOWN_DESCRIPTION = "Unknown"

WEATHER_DESCRIPTIONS: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Foggy",  # depositing rime fog
    51: "Light drizzle",
    53: "Drizzle",
    55: "Heavy drizzle",
    61: "Light rain",
    63: "Rain",
    65: "Heavy rain",
    80: "Rain showers",
    81: "Rain showers",
    82: "Heavy showers",
    95: "Thunderstorm",
    96: "Thunderstorm",  # with slight hail
    99: "Severe thunderstorm",
}


def describe_weather_code(code: Optional[int]) -> str:
    """Return the display description for a WMO weather code."""
    if code is None:
        return UNKNOWN_DESCRIPTION
    return WEATHER_DESCRIPTIONS.get(code, UNKNOWN_DESCRIPTION)
