import logging
import threading
from bisect import bisect_right
from datetime import datetime, timedelta, timezone
from math import isfinite
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from pydantic import ValidationError

from owm_weather_mock.errors import InvalidSchedule
from owm_weather_mock.models import Condition

# Get logger for this module
logger = logging.getLogger("weather_mock.schedule")

# Temperate, clear-sky weather served until a schedule has been configured
DEFAULT_CONDITION = Condition(
    temperature_c=15.0,
    wind_speed=3.0,
    wind_direction_deg=225.0,
    rain_mm_per_hour=0.0,
    pressure_hpa=1013.0,
    humidity_pct=60,
    clouds_pct=0,
    visibility_m=10000,
)

# Per-location schedules are keyed on coordinates rounded to this many decimals
LOCATION_PRECISION = 1

# Field order of a slot token, "temp:wind:windDir:rain:humidity"
SLOT_FIELDS = ("temperature_c", "wind_speed", "wind_direction_deg", "rain_mm_per_hour", "humidity_pct")

LocationKey = Optional[Tuple[float, float]]


class Lookup(NamedTuple):
    previous: Condition
    next: Condition
    fraction: float


class Schedule:
    """Immutable cyclic sequence of anchors starting at a fixed instant"""

    def __init__(self, start: datetime, anchors: Sequence[Condition]):
        if not anchors:
            raise InvalidSchedule("a schedule needs at least one condition")
        self.start = start
        self.anchors: Tuple[Condition, ...] = tuple(anchors)

        offsets = []
        elapsed = timedelta(0)
        try:
            for anchor in self.anchors:
                offsets.append(elapsed)
                elapsed += timedelta(minutes=anchor.duration_minutes)
        except OverflowError as e:
            raise InvalidSchedule("schedule period is too long") from e
        self.offsets: Tuple[timedelta, ...] = tuple(offsets)
        self.period = elapsed

    def activation_times(self) -> List[datetime]:
        """Instants at which each anchor becomes active in the first cycle"""
        return [self.start + offset for offset in self.offsets]

    def locate(self, when: datetime) -> Lookup:
        elapsed = (when - self.start) % self.period
        index = bisect_right(self.offsets, elapsed) - 1
        previous = self.anchors[index]
        following = self.anchors[(index + 1) % len(self.anchors)]
        fraction = (elapsed - self.offsets[index]) / timedelta(minutes=previous.duration_minutes)
        return Lookup(previous, following, fraction)


def parse_slot_token(token: str) -> Condition:
    """Decode "temp:wind:windDir:rain:humidity"; empty or missing fields keep their defaults"""
    fields = token.strip().split(":")
    if not token.strip() or len(fields) > len(SLOT_FIELDS):
        raise InvalidSchedule(f"malformed slot token '{token}'")

    values: Dict[str, float] = {}
    for name, raw in zip(SLOT_FIELDS, fields):
        raw = raw.strip()
        if not raw:
            continue
        try:
            value = float(raw)
        except ValueError as e:
            raise InvalidSchedule(f"slot token '{token}': '{raw}' is not a number") from e
        if not isfinite(value):
            raise InvalidSchedule(f"slot token '{token}': '{raw}' is not a finite number")
        values[name] = value

    if "humidity_pct" in values:
        values["humidity_pct"] = int(round(values["humidity_pct"]))

    try:
        return Condition(**values)
    except ValidationError as e:
        raise InvalidSchedule(f"slot token '{token}' is out of range: {e.errors()[0]['msg']}") from e


def split_slot_tokens(values: Iterable[str]) -> List[str]:
    """Flatten repeated and comma-separated slot parameters into single tokens"""
    tokens = []
    for value in values:
        tokens.extend(value.split(","))
    return tokens


class ScheduleStore:
    """Holds the global schedule and any per-location overrides.

    Each put builds a complete Schedule before publishing it, so readers
    always see either the old or the new schedule, never a mix.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._schedules: Dict[LocationKey, Schedule] = {}

    @staticmethod
    def location_key(latitude: Optional[float], longitude: Optional[float]) -> LocationKey:
        if latitude is None and longitude is None:
            return None
        if latitude is None or longitude is None:
            raise InvalidSchedule("lat and lon must be given together")
        return (round(latitude, LOCATION_PRECISION), round(longitude, LOCATION_PRECISION))

    def put_from_conditions(
        self,
        latitude: Optional[float],
        longitude: Optional[float],
        minutes_between_samples: int,
        conditions: Sequence[Condition],
    ) -> Schedule:
        """Replace a schedule with one anchor per condition, evenly spaced from now"""
        if minutes_between_samples <= 0:
            raise InvalidSchedule("minutesBetweenSamples must be positive")
        if not conditions:
            raise InvalidSchedule("conditions must not be empty")

        key = self.location_key(latitude, longitude)
        anchors = [c.model_copy(update={"duration_minutes": minutes_between_samples}) for c in conditions]
        return self._publish(key, Schedule(self._clock(), anchors))

    def put_from_slots(
        self,
        slot_length_minutes: int,
        slot_tokens: Sequence[str],
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Schedule:
        """Replace a schedule with equal-length slots decoded from compact tokens"""
        if slot_length_minutes <= 0:
            raise InvalidSchedule("slotLength must be positive")
        if not slot_tokens:
            raise InvalidSchedule("at least one slot is required")

        key = self.location_key(latitude, longitude)
        anchors = [
            parse_slot_token(token).model_copy(update={"duration_minutes": slot_length_minutes})
            for token in slot_tokens
        ]
        return self._publish(key, Schedule(self._clock(), anchors))

    def _publish(self, key: LocationKey, schedule: Schedule) -> Schedule:
        with self._lock:
            schedules = dict(self._schedules)
            schedules[key] = schedule
            self._schedules = schedules

        scope = "global" if key is None else f"location {key}"
        logger.info(
            f"Replaced {scope} schedule: {len(schedule.anchors)} anchors, "
            f"period {schedule.period}, starting {schedule.start.isoformat()}"
        )
        return schedule

    def schedule_for(self, latitude: Optional[float], longitude: Optional[float]) -> Optional[Schedule]:
        schedules = self._schedules
        if latitude is not None and longitude is not None:
            key = (round(latitude, LOCATION_PRECISION), round(longitude, LOCATION_PRECISION))
            if key in schedules:
                return schedules[key]
        return schedules.get(None)

    def lookup(self, latitude: Optional[float], longitude: Optional[float], when: datetime) -> Lookup:
        """Bracketing anchors for `when` and the position between them in [0, 1)"""
        schedule = self.schedule_for(latitude, longitude)
        if schedule is None:
            return Lookup(DEFAULT_CONDITION, DEFAULT_CONDITION, 0.0)
        return schedule.locate(when)
