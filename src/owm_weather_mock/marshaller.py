"""Render generated weather as OpenWeatherMap-compatible XML.

Empty elements are always written in expanded form (`<gusts></gusts>`),
because the game client consuming this output cannot parse `<gusts/>`.
"""

import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from owm_weather_mock.models import Current, Forecast, Station, Sun
from owm_weather_mock.symbols import beaufort_name, cloud_name, compass_point

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

UNITS = ("standard", "metric", "imperial")

# units -> (temperature unit label, wind speed unit label)
UNIT_LABELS: Dict[str, Tuple[str, str]] = {
    "standard": ("kelvin", "m/s"),
    "metric": ("celsius", "m/s"),
    "imperial": ("fahrenheit", "mph"),
}

MPS_TO_MPH = 2.2369362920544


def format_number(value: float, digits: int = 2) -> str:
    """Fixed-point with '.' separator and no grouping; never '-0'"""
    rounded = round(value, digits)
    if rounded == 0:
        rounded = 0.0
    if digits == 0:
        return str(int(rounded))
    return f"{rounded:.{digits}f}"


def format_time(when: datetime) -> str:
    return when.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


def convert_temperature(celsius: float, units: str) -> float:
    if units == "metric":
        return celsius
    if units == "imperial":
        return celsius * 9 / 5 + 32
    return celsius + 273.15


def convert_speed(mps: float, units: str) -> float:
    return mps * MPS_TO_MPH if units == "imperial" else mps


def _element(parent: Optional[ET.Element], tag: str, attrs: Optional[Dict[str, str]] = None, text=None) -> ET.Element:
    element = ET.Element(tag, attrs or {}) if parent is None else ET.SubElement(parent, tag, attrs or {})
    if text is not None:
        element.text = str(text)
    return element


def _sun(parent: ET.Element, sun: Sun) -> ET.Element:
    return _element(parent, "sun", {"rise": format_time(sun.rise), "set": format_time(sun.set)})


def render(root: ET.Element) -> str:
    """Serialise a tree with the XML declaration and no self-closing tags"""
    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
    return f"{XML_DECLARATION}\n{body}"


def current_element(current: Current, units: str = "standard") -> ET.Element:
    condition = current.condition
    temperature_unit, speed_unit = UNIT_LABELS[units]
    station: Station = current.station
    temperature = format_number(convert_temperature(condition.temperature_c, units))
    direction_code, direction_name = compass_point(condition.wind_direction_deg)

    root = _element(None, "current")
    city = _element(root, "city", {"id": str(station.id), "name": station.name})
    _element(city, "coord", {"lon": format_number(current.longitude, 4), "lat": format_number(current.latitude, 4)})
    _element(city, "country", text=station.country)
    _element(city, "timezone", text=station.timezone_seconds)
    _sun(city, current.sun)

    _element(root, "temperature", {"value": temperature, "min": temperature, "max": temperature, "unit": temperature_unit})
    _element(
        root,
        "feels_like",
        {"value": format_number(convert_temperature(current.feels_like_c, units)), "unit": temperature_unit},
    )
    _element(root, "humidity", {"value": str(condition.humidity_pct), "unit": "%"})
    _element(root, "pressure", {"value": format_number(condition.pressure_hpa, 0), "unit": "hPa"})

    wind = _element(root, "wind")
    _element(
        wind,
        "speed",
        {
            "value": format_number(convert_speed(condition.wind_speed, units)),
            "unit": speed_unit,
            "name": beaufort_name(condition.wind_speed),
        },
    )
    _element(wind, "gusts")
    _element(
        wind,
        "direction",
        {"value": format_number(condition.wind_direction_deg, 0), "code": direction_code, "name": direction_name},
    )

    _element(root, "clouds", {"value": str(condition.clouds_pct), "name": cloud_name(condition.clouds_pct)})
    _element(root, "visibility", {"value": str(condition.visibility_m)})
    if condition.rain_mm_per_hour > 0:
        _element(
            root,
            "precipitation",
            {"value": format_number(condition.rain_mm_per_hour), "mode": "rain", "unit": "1h"},
        )
    else:
        _element(root, "precipitation", {"mode": "no"})
    _element(
        root,
        "weather",
        {"number": str(current.symbol.number), "value": current.symbol.name, "icon": current.symbol.icon},
    )
    _element(root, "lastupdate", {"value": format_time(current.time)})
    return root


def _time_element(parent: ET.Element, sample: Current, step_hours: float, units: str) -> ET.Element:
    condition = sample.condition
    temperature_unit, speed_unit = UNIT_LABELS[units]
    temperature = format_number(convert_temperature(condition.temperature_c, units))
    direction_code, direction_name = compass_point(condition.wind_direction_deg)
    step_label = f"{step_hours:g}h"
    end = sample.time + timedelta(hours=step_hours)
    time = _element(parent, "time", {"from": format_time(sample.time), "to": format_time(end)})
    _element(
        time,
        "symbol",
        {"number": str(sample.symbol.number), "name": sample.symbol.name, "var": sample.symbol.icon},
    )
    if condition.rain_mm_per_hour > 0:
        _element(
            time,
            "precipitation",
            {
                "unit": step_label,
                "value": format_number(condition.rain_mm_per_hour * step_hours),
                "type": "rain",
            },
        )
    else:
        _element(time, "precipitation")
    _element(
        time,
        "windDirection",
        {"deg": format_number(condition.wind_direction_deg, 0), "code": direction_code, "name": direction_name},
    )
    _element(
        time,
        "windSpeed",
        {
            "mps": format_number(convert_speed(condition.wind_speed, units)),
            "unit": speed_unit,
            "name": beaufort_name(condition.wind_speed),
        },
    )
    _element(
        time,
        "temperature",
        {"unit": temperature_unit, "value": temperature, "min": temperature, "max": temperature},
    )
    _element(
        time,
        "feels_like",
        {"value": format_number(convert_temperature(sample.feels_like_c, units)), "unit": temperature_unit},
    )
    _element(time, "pressure", {"unit": "hPa", "value": format_number(condition.pressure_hpa, 0)})
    _element(time, "humidity", {"value": str(condition.humidity_pct), "unit": "%"})
    _element(
        time,
        "clouds",
        {"value": cloud_name(condition.clouds_pct), "all": str(condition.clouds_pct), "unit": "%"},
    )
    _element(time, "visibility", {"value": str(condition.visibility_m)})
    return time


def forecast_element(forecast: Forecast, units: str = "standard") -> ET.Element:
    station = forecast.station
    root = _element(None, "weatherdata")

    location = _element(root, "location")
    _element(location, "name", text=station.name)
    _element(location, "type")
    _element(location, "country", text=station.country)
    _element(location, "timezone", text=station.timezone_seconds)
    _element(
        location,
        "location",
        {
            "altitude": "0",
            "latitude": format_number(forecast.latitude, 4),
            "longitude": format_number(forecast.longitude, 4),
            "geobase": "geonames",
            "geobaseid": str(station.id),
        },
    )
    _element(root, "credit")
    meta = _element(root, "meta")
    _element(meta, "lastupdate", text=format_time(forecast.generated_at))
    _element(meta, "calctime", text="0")
    _element(meta, "nextupdate")
    _sun(root, forecast.sun)

    samples = _element(root, "forecast")
    for sample in forecast.samples:
        _time_element(samples, sample, forecast.step_hours, units)
    return root


def marshal_current(current: Current, units: str = "standard") -> str:
    return render(current_element(current, units))


def marshal_forecast(forecast: Forecast, units: str = "standard") -> str:
    return render(forecast_element(forecast, units))
