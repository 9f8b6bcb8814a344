from datetime import timedelta

import pytest

from owm_weather_mock.errors import InvalidSchedule
from owm_weather_mock.models import Condition
from owm_weather_mock.schedule import (
    DEFAULT_CONDITION,
    Schedule,
    ScheduleStore,
    parse_slot_token,
    split_slot_tokens,
)

from .conftest import START


def test_lookup_before_any_schedule_returns_default(store):
    previous, following, fraction = store.lookup(10.0, 20.0, START)
    assert previous == DEFAULT_CONDITION
    assert following == DEFAULT_CONDITION
    assert fraction == 0.0


def test_put_from_conditions_starts_at_first_anchor(store):
    conditions = [Condition(temperature_c=10), Condition(temperature_c=20), Condition(temperature_c=30)]
    store.put_from_conditions(None, None, 60, conditions)

    previous, following, fraction = store.lookup(0.0, 0.0, START)
    assert previous.temperature_c == 10
    assert following.temperature_c == 20
    assert fraction == 0.0


def test_put_from_conditions_spaces_anchors_evenly(store):
    conditions = [Condition(temperature_c=10, duration_minutes=5), Condition(temperature_c=20)]
    schedule = store.put_from_conditions(None, None, 30, conditions)

    assert [a.duration_minutes for a in schedule.anchors] == [30, 30]
    assert schedule.activation_times() == [START, START + timedelta(minutes=30)]
    assert schedule.period == timedelta(hours=1)


def test_lookup_fraction_between_anchors(store):
    store.put_from_conditions(None, None, 60, [Condition(temperature_c=10), Condition(temperature_c=20)])

    previous, following, fraction = store.lookup(None, None, START + timedelta(minutes=15))
    assert (previous.temperature_c, following.temperature_c) == (10, 20)
    assert fraction == pytest.approx(0.25)


def test_lookup_wraps_around_period(store):
    store.put_from_conditions(None, None, 60, [Condition(temperature_c=10), Condition(temperature_c=20)])

    previous, following, fraction = store.lookup(None, None, START + timedelta(minutes=90))
    assert (previous.temperature_c, following.temperature_c) == (20, 10)
    assert fraction == pytest.approx(0.5)

    previous, _, fraction = store.lookup(None, None, START + timedelta(hours=2))
    assert previous.temperature_c == 10
    assert fraction == 0.0


def test_lookup_before_start_wraps_backwards(store):
    store.put_from_conditions(None, None, 60, [Condition(temperature_c=10), Condition(temperature_c=20)])

    previous, following, fraction = store.lookup(None, None, START - timedelta(minutes=30))
    assert (previous.temperature_c, following.temperature_c) == (20, 10)
    assert fraction == pytest.approx(0.5)


def test_single_anchor_schedule_brackets_itself(store):
    store.put_from_conditions(None, None, 60, [Condition(temperature_c=5)])
    previous, following, _ = store.lookup(None, None, START + timedelta(minutes=45))
    assert previous is following


def test_daily_window_covers_every_anchor(store):
    conditions = [Condition(temperature_c=t) for t in (1, 2, 3, 4, 5)]
    store.put_from_conditions(None, None, 90, conditions)

    seen = set()
    for minute in range(0, 24 * 60, 10):
        previous, _, _ = store.lookup(None, None, START + timedelta(hours=7, minutes=minute))
        seen.add(previous.temperature_c)
    assert seen == {1, 2, 3, 4, 5}


@pytest.mark.parametrize("minutes", [0, -5])
def test_put_from_conditions_rejects_non_positive_spacing(store, minutes):
    with pytest.raises(InvalidSchedule):
        store.put_from_conditions(None, None, minutes, [Condition()])


def test_put_from_conditions_rejects_empty_list(store):
    with pytest.raises(InvalidSchedule):
        store.put_from_conditions(None, None, 60, [])


def test_put_requires_both_coordinates(store):
    with pytest.raises(InvalidSchedule):
        store.put_from_conditions(51.5, None, 60, [Condition()])


def test_per_location_schedule_overrides_global(store):
    store.put_from_conditions(None, None, 60, [Condition(temperature_c=10)])
    store.put_from_conditions(51.52, -0.13, 60, [Condition(temperature_c=-5)])

    assert store.lookup(51.5, -0.1, START).previous.temperature_c == -5
    assert store.lookup(40.0, 3.0, START).previous.temperature_c == 10


def test_put_from_slots_builds_equal_slots(store):
    schedule = store.put_from_slots(45, ["0:0:0:0:50", "20:5:180:5:90"])

    assert len(schedule.anchors) == 2
    assert schedule.period == timedelta(minutes=90)
    second = schedule.anchors[1]
    assert second.temperature_c == 20
    assert second.wind_speed == 5
    assert second.wind_direction_deg == 180
    assert second.rain_mm_per_hour == 5
    assert second.humidity_pct == 90
    assert second.duration_minutes == 45


@pytest.mark.parametrize("length", [0, -60])
def test_put_from_slots_rejects_non_positive_length(store, length):
    with pytest.raises(InvalidSchedule):
        store.put_from_slots(length, ["10"])


def test_rejected_put_keeps_previous_schedule(store):
    store.put_from_slots(60, ["12:1:0:0:40"])

    with pytest.raises(InvalidSchedule):
        store.put_from_slots(60, ["10:2", "warm:3"])

    assert store.lookup(None, None, START).previous.temperature_c == 12


def test_parse_slot_token_defaults_missing_fields():
    condition = parse_slot_token("7.5::270")
    assert condition.temperature_c == 7.5
    assert condition.wind_speed == 0.0
    assert condition.wind_direction_deg == 270
    assert condition.rain_mm_per_hour == 0.0
    assert condition.humidity_pct == 60
    assert condition.clouds_pct is None
    assert condition.visibility_m is None


@pytest.mark.parametrize("token", ["", "1:2:3:4:5:6", "x", "10:-3", "10:1:1:1:150", "nan"])
def test_parse_slot_token_rejects_bad_tokens(token):
    with pytest.raises(InvalidSchedule):
        parse_slot_token(token)


def test_split_slot_tokens_flattens_commas():
    assert split_slot_tokens(["1:2,3:4", "5"]) == ["1:2", "3:4", "5"]


def test_schedule_requires_anchors():
    with pytest.raises(InvalidSchedule):
        Schedule(START, [])


def test_store_defaults_to_wall_clock():
    store = ScheduleStore()
    schedule = store.put_from_conditions(None, None, 10, [Condition()])
    assert schedule.start.tzinfo is not None


def test_put_from_slots_rejects_overlong_slots(store):
    store.put_from_slots(60, ["8"])

    with pytest.raises(InvalidSchedule):
        store.put_from_slots(10**13, ["10"])

    assert store.lookup(None, None, START).previous.temperature_c == 8


def test_put_from_conditions_rejects_overlong_spacing(store):
    with pytest.raises(InvalidSchedule):
        store.put_from_conditions(None, None, 10**13, [Condition()])
