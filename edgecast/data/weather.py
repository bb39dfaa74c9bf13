"""Game-day weather from Open-Meteo (free, no key)."""
from __future__ import annotations

import logging
from typing import Optional

import requests

from edgecast.analytics.cache import WEATHER_TTL, ttl_cache
from edgecast.data._http_headers import JSON_HEADERS

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

DOME_WEATHER = {
    "condition": "Dome",
    "temperature": 72,
    "windSpeed": 0,
    "precipitation": 0,
    "isDome": True,
    "humidity": 50,
    "source": "Indoor Stadium",
}

UNKNOWN_WEATHER = {
    "condition": "Unknown",
    "temperature": 70,
    "windSpeed": 5,
    "precipitation": 0,
    "isDome": False,
    "source": "API Unavailable",
}


def condition_for(weather_code: int, precip_prob: float, wind_mph: float) -> str:
    """Map a WMO weather code to a display condition."""
    if weather_code == 0:
        condition = "Clear"
    elif weather_code <= 3:
        condition = "Cloudy"
    elif weather_code <= 67:
        condition = "Rain" if precip_prob > 50 else "Light Rain"
    elif weather_code <= 77:
        condition = "Snow"
    elif weather_code <= 82:
        condition = "Heavy Rain"
    elif weather_code >= 95:
        condition = "Thunderstorm"
    else:
        condition = "Clear"
    if wind_mph > 20 and weather_code <= 3:
        condition = "Windy"
    return condition


@ttl_cache(seconds=WEATHER_TTL, maxsize=64)
def _forecast(lat: float, lon: float) -> dict:
    resp = requests.get(
        OPEN_METEO_URL,
        params={
            "latitude": lat,
            "longitude": lon,
            "daily": "temperature_2m_max,temperature_2m_min,precipitation_probability_max,"
                     "windspeed_10m_max,weathercode",
            "temperature_unit": "fahrenheit",
            "windspeed_unit": "mph",
            "timezone": "America/New_York",
        },
        headers=JSON_HEADERS,
        timeout=5,
    )
    resp.raise_for_status()
    return resp.json()["daily"]


def _pick(series, idx, default):
    try:
        value = series[idx]
    except (IndexError, TypeError):
        return default
    return default if value is None else value


def parse_daily(daily: dict, date_str: Optional[str]) -> dict:
    times = daily.get("time") or []
    idx = times.index(date_str) if date_str in times else 0

    temp_max = _pick(daily.get("temperature_2m_max"), idx, 70)
    temp_min = _pick(daily.get("temperature_2m_min"), idx, 55)
    wind = round(_pick(daily.get("windspeed_10m_max"), idx, 5))
    precip = _pick(daily.get("precipitation_probability_max"), idx, 0)
    code = int(_pick(daily.get("weathercode"), idx, 0))

    return {
        "condition": condition_for(code, precip, wind),
        "temperature": round((temp_max + temp_min) / 2),
        "windSpeed": wind,
        "precipitation": precip,
        "isDome": False,
        "humidity": 60,
        "source": "Open-Meteo API",
        "tempHigh": round(temp_max),
        "tempLow": round(temp_min),
    }


def get_weather(lat: float, lon: float, date_str: Optional[str], is_dome: bool) -> dict:
    if is_dome:
        return dict(DOME_WEATHER)
    try:
        return parse_daily(_forecast(round(lat, 4), round(lon, 4)), date_str)
    except (requests.RequestException, ValueError, KeyError) as exc:
        logger.warning("Weather API error: %s", exc)
        return dict(UNKNOWN_WEATHER)
