"""Tests for the Open-Meteo forecast client."""

import asyncio

import httpx
import pytest
import respx

from wxalert.services.open_meteo import (
    OPEN_METEO_URL,
    HttpStatusError,
    MalformedResponseError,
    NetworkError,
    fetch_reading,
    parse_reading,
)
from wxalert.services.weather_codes import describe_weather_code

LAT, LON = 4.1755, 73.5093

SAMPLE_BODY = {
    "latitude": 4.1875,
    "longitude": 73.5,
    "current": {
        "time": "2026-10-17T06:00",
        "interval": 900,
        "temperature_2m": 29.4,
        "relative_humidity_2m": 78,
        "rain": 0.4,
        "weather_code": 61,
        "wind_speed_10m": 18.7,
    },
    "hourly": {
        "time": [f"2026-10-17T{h:02d}:00" for h in range(8)],
        "precipitation_probability": [10, 20, 35, 55, 60, 45, 90, 95],
        "precipitation": [0.0, 0.1, 0.4, 1.2, 2.0, 0.3, 6.0, 8.0],
    },
}


def _fetch(**kwargs):
    return asyncio.run(fetch_reading(LAT, LON, **kwargs))


class TestRequest:
    @respx.mock
    def test_sends_expected_query_and_headers(self):
        route = respx.get(OPEN_METEO_URL).mock(
            return_value=httpx.Response(200, json=SAMPLE_BODY)
        )
        _fetch()

        assert route.called
        request = route.calls.last.request
        params = dict(request.url.params)
        assert params == {
            "latitude": "4.1755",
            "longitude": "73.5093",
            "current": "temperature_2m,relative_humidity_2m,rain,weather_code,wind_speed_10m",
            "hourly": "precipitation_probability,precipitation",
            "forecast_days": "1",
        }
        assert request.headers["accept"] == "application/json"

    @respx.mock
    def test_injected_client_is_used_and_left_open(self):
        respx.get(OPEN_METEO_URL).mock(return_value=httpx.Response(200, json=SAMPLE_BODY))

        async def run():
            async with httpx.AsyncClient() as client:
                reading = await fetch_reading(LAT, LON, client=client)
                assert not client.is_closed
                return reading

        reading = asyncio.run(run())
        assert reading.current.temperature_c == 29.4


class TestParsing:
    @respx.mock
    def test_full_body(self):
        respx.get(OPEN_METEO_URL).mock(return_value=httpx.Response(200, json=SAMPLE_BODY))
        reading = _fetch()

        cur = reading.current
        assert cur.temperature_c == 29.4
        assert cur.humidity_pct == 78
        assert cur.rain_mm == 0.4
        assert cur.weather_code == 61
        assert cur.wind_speed_kph == 18.7
        assert cur.observed_at == "2026-10-17T06:00"

        assert reading.hourly is not None
        assert len(reading.hourly.points) == 8
        first = reading.hourly.points[0]
        assert first.time == "2026-10-17T00:00"
        assert first.precipitation_probability_pct == 10
        assert first.precipitation_mm == 0.0
        assert reading.hourly.probabilities(6) == [10, 20, 35, 55, 60, 45]
        assert reading.timestamp.tzinfo is not None

    def test_missing_rain_is_zero(self):
        body = {"current": {"temperature_2m": 28.0, "wind_speed_10m": 5.0}}
        reading = parse_reading(body)
        assert reading.current.rain_mm == 0.0
        assert reading.current.weather_code is None

    def test_missing_hourly_is_allowed(self):
        reading = parse_reading({"current": {"rain": 0}})
        assert reading.hourly is None

    def test_null_hourly_values_kept_as_none(self):
        body = {
            "current": {"rain": 0.0},
            "hourly": {
                "time": ["a", "b"],
                "precipitation_probability": [None, 40],
                "precipitation": [None, 1.5],
            },
        }
        reading = parse_reading(body)
        assert reading.hourly.points[0].precipitation_probability_pct is None
        assert reading.hourly.probabilities(6) == [40]
        assert reading.hourly.precipitation(6) == [0.0, 1.5]

    def test_missing_current_is_malformed(self):
        with pytest.raises(MalformedResponseError):
            parse_reading({"hourly": {"time": [], "precipitation": []}})

    def test_unequal_hourly_lengths_are_malformed(self):
        body = {
            "current": {"rain": 0.0},
            "hourly": {
                "time": ["a", "b", "c"],
                "precipitation_probability": [1, 2, 3],
                "precipitation": [0.0, 0.0],
            },
        }
        with pytest.raises(MalformedResponseError, match="differ in length"):
            parse_reading(body)

    def test_non_list_hourly_column_is_malformed(self):
        with pytest.raises(MalformedResponseError):
            parse_reading({"current": {"rain": 0.0}, "hourly": {"precipitation": 3}})

    def test_non_object_body_is_malformed(self):
        with pytest.raises(MalformedResponseError):
            parse_reading([1, 2, 3])

    def test_empty_current_block_is_malformed(self):
        with pytest.raises(MalformedResponseError, match="none of the requested fields"):
            parse_reading({"current": {"time": "2026-10-17T06:00", "interval": 900}})

    def test_current_with_only_rain_missing_is_accepted(self):
        reading = parse_reading({"current": {"temperature_2m": 30.1}})
        assert reading.current.rain_mm == 0.0
        assert reading.current.temperature_c == 30.1


class TestFailures:
    @respx.mock
    def test_server_error_carries_status(self):
        respx.get(OPEN_METEO_URL).mock(return_value=httpx.Response(503))
        with pytest.raises(HttpStatusError) as exc_info:
            _fetch()
        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == "Weather API error: 503"

    @respx.mock
    def test_client_error_carries_status(self):
        respx.get(OPEN_METEO_URL).mock(
            return_value=httpx.Response(400, json={"error": True, "reason": "bad"})
        )
        with pytest.raises(HttpStatusError) as exc_info:
            _fetch()
        assert exc_info.value.status_code == 400

    @respx.mock
    def test_timeout_is_network_error(self):
        respx.get(OPEN_METEO_URL).mock(side_effect=httpx.TimeoutException("timed out"))
        with pytest.raises(NetworkError):
            _fetch()

    @respx.mock
    def test_connect_error_is_network_error(self):
        respx.get(OPEN_METEO_URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(NetworkError, match="refused"):
            _fetch()

    @respx.mock
    def test_non_json_body_is_malformed(self):
        respx.get(OPEN_METEO_URL).mock(
            return_value=httpx.Response(200, text="<html>maintenance</html>")
        )
        with pytest.raises(MalformedResponseError):
            _fetch()

    @respx.mock
    def test_missing_current_block_is_malformed(self):
        respx.get(OPEN_METEO_URL).mock(
            return_value=httpx.Response(200, json={"hourly": SAMPLE_BODY["hourly"]})
        )
        with pytest.raises(MalformedResponseError, match="current"):
            _fetch()


class TestWeatherCodes:
    def test_known_codes(self):
        assert describe_weather_code(0) == "Clear sky"
        assert describe_weather_code(63) == "Rain"
        assert describe_weather_code(99) == "Severe thunderstorm"

    def test_every_listed_code_is_mapped(self):
        for code in (0, 1, 2, 3, 45, 48, 51, 53, 55, 61, 63, 65, 80, 81, 82, 95, 96, 99):
            assert describe_weather_code(code) != "Unknown"

    def test_unknown_and_missing(self):
        assert describe_weather_code(7) == "Unknown"
        assert describe_weather_code(None) == "Unknown"
