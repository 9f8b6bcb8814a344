from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from owm_weather_mock.config import Settings
from owm_weather_mock.generator import WeatherGenerator
from owm_weather_mock.schedule import ScheduleStore
from owm_weather_mock.server import create_app

START = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
START_MS = int(START.timestamp() * 1000)


@pytest.fixture
def clock():
    return lambda: START


@pytest.fixture
def store(clock):
    return ScheduleStore(clock=clock)


@pytest.fixture
def generator(store, clock):
    return WeatherGenerator(store, clock=clock)


@pytest.fixture
def client(clock):
    app = create_app(Settings(), clock=clock)
    return TestClient(app)
