import logging
from datetime import datetime, timedelta, timezone
from math import exp, floor
from typing import Callable, Optional, Tuple

import numpy as np

from owm_weather_mock.models import Condition, Current, Forecast, Station
from owm_weather_mock.schedule import ScheduleStore
from owm_weather_mock.solar import is_daytime, sun_times
from owm_weather_mock.symbols import symbol_for

logger = logging.getLogger("weather_mock.generator")

# Cloud cover as a smoothed step function of relative humidity
HUMIDITY_KNOTS = [0, 65, 72, 88, 92, 100]
CLOUD_KNOTS = [10, 10, 50, 50, 80, 90]
CLOUD_JITTER = 10
MIN_RAIN_CLOUDS = 70

# Cloud jitter is stable within each bucket of this length
JITTER_BUCKET_SECONDS = 600


def clamp_coordinates(latitude: float, longitude: float) -> Tuple[float, float]:
    """Clamp latitude to [-90, 90] and wrap longitude into [-180, 180)"""
    latitude = min(max(latitude, -90.0), 90.0)
    longitude = ((longitude + 180.0) % 360.0) - 180.0
    return latitude, longitude


def lerp(start: float, end: float, fraction: float) -> float:
    return start + fraction * (end - start)


def lerp_direction(start: float, end: float, fraction: float) -> float:
    """Interpolate a bearing along the shorter arc"""
    delta = ((end - start + 540.0) % 360.0) - 180.0
    return (start + fraction * delta) % 360.0


def cloud_jitter(when: datetime, latitude: float, longitude: float) -> int:
    """Deterministic offset in [-10, 10] for a ten-minute bucket at a location"""
    bucket = floor(when.timestamp() / JITTER_BUCKET_SECONDS)
    seed = [
        bucket % 2**63,
        int(round(latitude * 10000)) + 900000,
        int(round(longitude * 10000)) + 1800000,
    ]
    rng = np.random.default_rng(seed)
    return int(rng.integers(-CLOUD_JITTER, CLOUD_JITTER + 1))


def derive_clouds(rain: float, humidity: float, jitter: int) -> int:
    clouds = float(np.interp(humidity, HUMIDITY_KNOTS, CLOUD_KNOTS)) + jitter
    if rain > 0:
        clouds = max(clouds, MIN_RAIN_CLOUDS)
    return int(round(min(max(clouds, 0.0), 100.0)))


def derive_visibility(rain: float, humidity: float, clouds: int) -> int:
    visibility = 10000
    if rain > 2.5:
        visibility = 2000
    elif rain > 0:
        visibility = 5000
    if clouds >= 95 and humidity >= 95:
        visibility = 1000
    return visibility


def apparent_temperature(temperature: float, humidity: float, wind_speed: float) -> float:
    """Australian apparent temperature, used for the feels_like reading"""
    vapour_pressure = humidity / 100 * 6.105 * exp(17.27 * temperature / (237.7 + temperature))
    return temperature + 0.33 * vapour_pressure - 0.70 * wind_speed - 4.00


class WeatherGenerator:
    """Samples the schedule store into observations and forecasts"""

    def __init__(self, store: ScheduleStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _resolve_time(self, when: Optional[datetime]) -> datetime:
        if when is None:
            return self._clock()
        if when.tzinfo is None:
            return when.replace(tzinfo=timezone.utc)
        return when.astimezone(timezone.utc)

    def sample(self, latitude: float, longitude: float, when: datetime) -> Condition:
        """Interpolated primaries plus derived clouds and visibility at `when`"""
        previous, following, fraction = self.store.lookup(latitude, longitude, when)

        temperature = lerp(previous.temperature_c, following.temperature_c, fraction)
        wind_speed = lerp(previous.wind_speed, following.wind_speed, fraction)
        wind_direction = lerp_direction(previous.wind_direction_deg, following.wind_direction_deg, fraction)
        rain = lerp(previous.rain_mm_per_hour, following.rain_mm_per_hour, fraction)
        pressure = lerp(previous.pressure_hpa, following.pressure_hpa, fraction)
        humidity = lerp(previous.humidity_pct, following.humidity_pct, fraction)

        if previous.clouds_pct is not None and following.clouds_pct is not None:
            clouds = int(round(lerp(previous.clouds_pct, following.clouds_pct, fraction)))
        else:
            clouds = derive_clouds(rain, humidity, cloud_jitter(when, latitude, longitude))

        if previous.visibility_m is not None and following.visibility_m is not None:
            visibility = int(round(lerp(previous.visibility_m, following.visibility_m, fraction)))
        else:
            visibility = derive_visibility(rain, humidity, clouds)

        return Condition(
            temperature_c=temperature,
            wind_speed=wind_speed,
            wind_direction_deg=wind_direction,
            rain_mm_per_hour=rain,
            pressure_hpa=pressure,
            humidity_pct=int(round(humidity)),
            clouds_pct=clouds,
            visibility_m=visibility,
            duration_minutes=previous.duration_minutes,
        )

    def _observe(self, latitude: float, longitude: float, when: datetime) -> Current:
        condition = self.sample(latitude, longitude, when)
        symbol = symbol_for(
            condition.rain_mm_per_hour,
            condition.visibility_m,
            condition.clouds_pct,
            is_daytime(latitude, longitude, when),
        )
        return Current(
            time=when,
            latitude=latitude,
            longitude=longitude,
            condition=condition,
            feels_like_c=apparent_temperature(
                condition.temperature_c, condition.humidity_pct, condition.wind_speed
            ),
            symbol=symbol,
            sun=sun_times(latitude, longitude, when),
            station=_station(longitude),
        )

    def get_weather(self, latitude: float, longitude: float, when: Optional[datetime] = None) -> Current:
        latitude, longitude = clamp_coordinates(latitude, longitude)
        when = self._resolve_time(when)
        current = self._observe(latitude, longitude, when)
        logger.debug(f"Generated {current.symbol.name} at ({latitude}, {longitude}) for {when.isoformat()}")
        return current

    def get_forecast(
        self,
        latitude: float,
        longitude: float,
        step_hours: float = 3.0,
        steps: int = 20,
        when: Optional[datetime] = None,
    ) -> Forecast:
        latitude, longitude = clamp_coordinates(latitude, longitude)
        when = self._resolve_time(when)
        step = timedelta(hours=step_hours)
        samples = [self._observe(latitude, longitude, when + i * step) for i in range(steps)]
        logger.debug(f"Generated {len(samples)} forecast samples at ({latitude}, {longitude}) from {when.isoformat()}")
        return Forecast(
            latitude=latitude,
            longitude=longitude,
            step_hours=step_hours,
            generated_at=when,
            sun=sun_times(latitude, longitude, when),
            station=_station(longitude),
            samples=samples,
        )


def _station(longitude: float) -> Station:
    return Station(timezone_seconds=int(round(longitude / 15)) * 3600)
