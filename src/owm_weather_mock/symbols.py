"""OpenWeatherMap condition codes and the descriptive names that go with them."""

from typing import Dict, Tuple

from owm_weather_mock.models import Symbol

CLEAR = 800
FEW_CLOUDS = 801
SCATTERED_CLOUDS = 802
BROKEN_CLOUDS = 803
OVERCAST_CLOUDS = 804
LIGHT_RAIN = 500
MODERATE_RAIN = 501
HEAVY_RAIN = 502
MIST = 701
FOG = 741

# code -> (name, icon prefix)
CONDITIONS: Dict[int, Tuple[str, str]] = {
    CLEAR: ("clear sky", "01"),
    FEW_CLOUDS: ("few clouds", "02"),
    SCATTERED_CLOUDS: ("scattered clouds", "03"),
    BROKEN_CLOUDS: ("broken clouds", "04"),
    OVERCAST_CLOUDS: ("overcast clouds", "04"),
    LIGHT_RAIN: ("light rain", "10"),
    MODERATE_RAIN: ("moderate rain", "10"),
    HEAVY_RAIN: ("heavy intensity rain", "10"),
    MIST: ("mist", "50"),
    FOG: ("fog", "50"),
}

# Upper bound in m/s for each Beaufort force, as named by the upstream service
BEAUFORT = [
    (0.5, "Calm"),
    (1.5, "Light air"),
    (3.3, "Light breeze"),
    (5.5, "Gentle Breeze"),
    (7.9, "Moderate breeze"),
    (10.7, "Fresh Breeze"),
    (13.8, "Strong breeze"),
    (17.1, "High wind, near gale"),
    (20.7, "Gale"),
    (24.4, "Severe Gale"),
    (28.4, "Storm"),
    (32.6, "Violent Storm"),
]

COMPASS = [
    ("N", "North"),
    ("NNE", "North-northeast"),
    ("NE", "NorthEast"),
    ("ENE", "East-northeast"),
    ("E", "East"),
    ("ESE", "East-southeast"),
    ("SE", "SouthEast"),
    ("SSE", "South-southeast"),
    ("S", "South"),
    ("SSW", "South-southwest"),
    ("SW", "Southwest"),
    ("WSW", "West-southwest"),
    ("W", "West"),
    ("WNW", "West-northwest"),
    ("NW", "Northwest"),
    ("NNW", "North-northwest"),
]


def condition_code(rain: float, visibility: int, clouds: int) -> int:
    """Map (rain mm/h, visibility m, cloud %) onto a condition code.

    Fog outranks everything, then rain by intensity, then mist, and
    finally the sky is bucketed by cloud cover.
    """
    if visibility <= 1000:
        return FOG
    if rain > 0:
        if rain < 2.5:
            return LIGHT_RAIN
        if rain < 7.6:
            return MODERATE_RAIN
        return HEAVY_RAIN
    if visibility <= 2000:
        return MIST
    if clouds < 15:
        return CLEAR
    if clouds < 30:
        return FEW_CLOUDS
    if clouds < 60:
        return SCATTERED_CLOUDS
    if clouds < 85:
        return BROKEN_CLOUDS
    return OVERCAST_CLOUDS


def symbol_for(rain: float, visibility: int, clouds: int, daytime: bool = True) -> Symbol:
    code = condition_code(rain, visibility, clouds)
    name, icon = CONDITIONS[code]
    return Symbol(number=code, name=name, icon=icon + ("d" if daytime else "n"))


def cloud_name(clouds: int) -> str:
    """Describe cloud cover alone, ignoring precipitation"""
    return CONDITIONS[condition_code(0.0, 10000, clouds)][0]


def beaufort_name(speed: float) -> str:
    for limit, name in BEAUFORT:
        if speed < limit:
            return name
    return "Hurricane"


def compass_point(degrees: float) -> Tuple[str, str]:
    index = int(((degrees % 360.0) + 11.25) // 22.5) % 16
    return COMPASS[index]
