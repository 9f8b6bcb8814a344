"""Low-fidelity sunrise/sunset model.

Day length follows a sinusoid over the year scaled by latitude, and is
centred on a solar noon approximated from longitude alone.
"""

from datetime import datetime, timedelta, timezone
from math import pi, radians, sin

from owm_weather_mock.models import Sun

AXIAL_TILT_DEG = 23.44


def day_length_hours(latitude: float, day_of_year: int) -> float:
    season = sin(2 * pi * (day_of_year - 80) / 365)
    hours = 12 + 4 * season * sin(radians(latitude)) / sin(radians(AXIAL_TILT_DEG))
    return min(max(hours, 0.0), 24.0)


def sun_times(latitude: float, longitude: float, when: datetime) -> Sun:
    """Sunrise and sunset for the UTC calendar day containing `when`"""
    when = when.astimezone(timezone.utc)
    midnight = when.replace(hour=0, minute=0, second=0, microsecond=0)
    half_day = timedelta(hours=day_length_hours(latitude, when.timetuple().tm_yday) / 2)
    noon = midnight + timedelta(hours=12 - longitude / 15)
    return Sun(rise=noon - half_day, set=noon + half_day)


def is_daytime(latitude: float, longitude: float, when: datetime) -> bool:
    sun = sun_times(latitude, longitude, when)
    # solar noon can fall on the neighbouring UTC day far from Greenwich
    for shift in (timedelta(0), timedelta(days=1), timedelta(days=-1)):
        if sun.rise + shift <= when < sun.set + shift:
            return True
    return False
