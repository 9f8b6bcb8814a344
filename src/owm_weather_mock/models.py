from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Condition(BaseModel):
    """One scheduled weather state.

    Clouds and visibility are optional: when left unset they are derived
    from the primaries at sampling time.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    temperature_c: float = Field(15.0, alias="temperatureC", ge=-100, le=100)
    wind_speed: float = Field(0.0, alias="windSpeed", ge=0)
    wind_direction_deg: float = Field(0.0, alias="windDirectionDeg")
    rain_mm_per_hour: float = Field(0.0, alias="rainMmPerHour", ge=0)
    pressure_hpa: float = Field(1013.0, alias="pressureHpa", gt=0)
    humidity_pct: int = Field(60, alias="humidityPct", ge=0, le=100)
    clouds_pct: Optional[int] = Field(None, alias="cloudsPct", ge=0, le=100)
    visibility_m: Optional[int] = Field(None, alias="visibilityM", ge=0, le=10000)
    duration_minutes: int = Field(60, alias="durationMinutes", gt=0)

    @field_validator("wind_direction_deg")
    @classmethod
    def _wrap_direction(cls, value: float) -> float:
        return value % 360.0


class CreateConditions(BaseModel):
    """Request body of the create/conditions endpoint"""

    model_config = ConfigDict(populate_by_name=True)

    minutes_between_samples: int = Field(..., alias="minutesBetweenSamples")
    conditions: List[Condition]


class Symbol(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int
    name: str
    icon: str


class Sun(BaseModel):
    rise: datetime
    set: datetime


class Station(BaseModel):
    id: int = 0
    name: str = "Weather Mock"
    country: str = "XX"
    timezone_seconds: int = 0


class Current(BaseModel):
    """A single generated observation"""

    time: datetime
    latitude: float
    longitude: float
    condition: Condition
    feels_like_c: float
    symbol: Symbol
    sun: Sun
    station: Station


class Forecast(BaseModel):
    latitude: float
    longitude: float
    step_hours: float
    generated_at: datetime
    sun: Sun
    station: Station
    samples: List[Current]
