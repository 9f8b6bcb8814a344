import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import uvicorn
from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, Response
from pydantic import ValidationError

from owm_weather_mock.config import Settings, load_settings
from owm_weather_mock.errors import (
    ConfigurationError,
    InternalError,
    InvalidQueryParameter,
    InvalidSchedule,
    UpstreamUnavailable,
    WeatherMockError,
)
from owm_weather_mock.generator import WeatherGenerator
from owm_weather_mock.marshaller import UNITS, marshal_current, marshal_forecast
from owm_weather_mock.models import CreateConditions
from owm_weather_mock.proxy import ProxyClient
from owm_weather_mock.schedule import ScheduleStore, split_slot_tokens

logger = logging.getLogger("weather_mock")

XML_MEDIA_TYPE = "application/xml; charset=utf-8"
FORECAST_STEPS = 20
FORECAST_STEP_HOURS = 3.0
MAX_FORECAST_STEPS = 40

# Queries must leave room for forecast steps and sunrise/sunset on neighbouring days
EARLIEST_QUERY_TIME = datetime(1, 1, 8, tzinfo=timezone.utc)
LATEST_QUERY_TIME = datetime(9999, 12, 20, tzinfo=timezone.utc)

router = APIRouter()


def configure_logging(level: str = "INFO", log_file: str = "logs/weather_mock.log") -> None:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
    )


def response_headers(endpoint: str, app_id: str, latitude: float, longitude: float) -> Dict[str, str]:
    """Headers copied from the upstream service so clients see no difference"""
    return {
        "Server": "openresty",
        "X-Cache-Key": f"{endpoint}?APPID={app_id}&lat={latitude}&lon={longitude}&mode=xml",
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST",
        "Connection": "keep-alive",
    }


def get_store(request: Request) -> ScheduleStore:
    return request.app.state.store


def get_generator(request: Request) -> WeatherGenerator:
    return request.app.state.generator


def get_proxy(request: Request) -> Optional[ProxyClient]:
    return request.app.state.proxy


def check_coordinates(latitude: float, longitude: float) -> None:
    if not -90 <= latitude <= 90:
        raise InvalidQueryParameter(f"lat {latitude} is outside [-90, 90]")
    if not -180 <= longitude <= 180:
        raise InvalidQueryParameter(f"lon {longitude} is outside [-180, 180]")


def parse_time(millis: Optional[int]) -> Optional[datetime]:
    if millis is None:
        return None
    try:
        when = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise InvalidQueryParameter(f"time {millis} is not a valid epoch millisecond value") from e
    if not EARLIEST_QUERY_TIME <= when <= LATEST_QUERY_TIME:
        raise InvalidQueryParameter(f"time {millis} is outside the supported range")
    return when


def check_format(units: str, mode: str) -> None:
    if units not in UNITS:
        raise InvalidQueryParameter(f"units must be one of {', '.join(UNITS)}")
    if mode != "xml":
        raise InvalidQueryParameter("only mode=xml is supported")


def xml_response(render: Callable[..., str], data, units: str, headers: Dict[str, str]) -> Response:
    try:
        body = render(data, units)
    except Exception as e:
        logger.exception("Failed to serialise weather data")
        raise InternalError("failed to serialise weather data") from e
    logger.debug(body)
    return Response(content=body, media_type=XML_MEDIA_TYPE, headers=headers)


async def proxied_response(proxy: ProxyClient, endpoint: str, latitude: float, longitude: float, headers) -> Response:
    try:
        body = await proxy.fetch(endpoint, latitude, longitude)
    except UpstreamUnavailable as e:
        e.headers = headers
        raise
    return Response(content=body, media_type=XML_MEDIA_TYPE, headers=headers)


@router.get("/data/2.5/weather")
async def get_weather(
    lat: float = Query(...),
    lon: float = Query(...),
    app_id: str = Query(..., alias="APPID"),
    time: Optional[int] = Query(None),
    units: str = Query("standard"),
    mode: str = Query("xml"),
    generator: WeatherGenerator = Depends(get_generator),
    proxy: Optional[ProxyClient] = Depends(get_proxy),
) -> Response:
    """Current conditions at a location"""
    check_coordinates(lat, lon)
    check_format(units, mode)
    when = parse_time(time)
    headers = response_headers("/data/2.5/weather", app_id, lat, lon)
    logger.info(f"Weather requested for ({lat}, {lon}) with APPID {app_id}")

    if proxy is not None:
        return await proxied_response(proxy, "weather", lat, lon, headers)

    current = generator.get_weather(lat, lon, when)
    logger.info("Got generated current conditions")
    return xml_response(marshal_current, current, units, headers)


@router.get("/data/2.5/forecast")
async def get_forecast(
    lat: float = Query(...),
    lon: float = Query(...),
    app_id: str = Query(..., alias="APPID"),
    time: Optional[int] = Query(None),
    units: str = Query("standard"),
    mode: str = Query("xml"),
    cnt: int = Query(FORECAST_STEPS),
    generator: WeatherGenerator = Depends(get_generator),
    proxy: Optional[ProxyClient] = Depends(get_proxy),
) -> Response:
    """Forecast in 3 hour steps"""
    check_coordinates(lat, lon)
    check_format(units, mode)
    if not 1 <= cnt <= MAX_FORECAST_STEPS:
        raise InvalidQueryParameter(f"cnt must be between 1 and {MAX_FORECAST_STEPS}")
    when = parse_time(time)
    headers = response_headers("/data/2.5/forecast", app_id, lat, lon)
    logger.info(f"Forecast requested for ({lat}, {lon}) with APPID {app_id}")

    if proxy is not None:
        return await proxied_response(proxy, "forecast", lat, lon, headers)

    forecast = generator.get_forecast(lat, lon, FORECAST_STEP_HOURS, cnt, when)
    logger.info("Got generated forecast")
    return xml_response(marshal_forecast, forecast, units, headers)


@router.post("/weather/create/conditions")
async def create_conditions(
    request: Request,
    lat: Optional[float] = Query(None),
    lon: Optional[float] = Query(None),
    store: ScheduleStore = Depends(get_store),
) -> Response:
    """Replace a schedule with evenly spaced conditions from a JSON body"""
    try:
        body = await request.json()
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError
        raise InvalidSchedule(f"body is not valid JSON: {str(e)}") from e

    try:
        payload = CreateConditions.model_validate(body)
    except ValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        raise InvalidSchedule(f"{location}: {error['msg']}") from e

    store.put_from_conditions(lat, lon, payload.minutes_between_samples, payload.conditions)
    return Response(status_code=200)


@router.put("/weather/create/slots")
async def create_slots(
    slot_length: int = Query(..., alias="slotLength"),
    slots: List[str] = Query(..., alias="slot"),
    lat: Optional[float] = Query(None),
    lon: Optional[float] = Query(None),
    store: ScheduleStore = Depends(get_store),
) -> Response:
    """Replace a schedule with equal-length slots, e.g. ?slotLength=60&slot=10:2:90:0:60,12:3:100:1:80"""
    store.put_from_slots(slot_length, split_slot_tokens(slots), lat, lon)
    return Response(status_code=200)


async def weather_error_handler(request: Request, exc: WeatherMockError) -> PlainTextResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return PlainTextResponse(exc.message, status_code=exc.status_code, headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> PlainTextResponse:
    error = exc.errors()[0]
    name = error["loc"][-1] if error.get("loc") else "request"
    error_type = InvalidSchedule if request.url.path.startswith("/weather/create") else InvalidQueryParameter
    return await weather_error_handler(request, error_type(f"{name}: {error['msg']}"))


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ScheduleStore] = None,
    proxy: Optional[ProxyClient] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """Wire the schedule store, generator and (in proxy mode) the upstream client"""
    settings = settings or Settings()
    settings.validate_startup()

    store = store or ScheduleStore(clock=clock)
    if settings.proxy.enabled:
        proxy = proxy or ProxyClient(settings.proxy.url, settings.proxy.user.app_id, timeout=settings.proxy.timeout)
        logger.info(
            f"Running in proxy mode, using openweathermap location {settings.proxy.url} "
            f"and user's APPID {settings.proxy.user.app_id}"
        )
    else:
        proxy = None
        logger.info("Running in local mode, weather data will be generated locally")

    app = FastAPI(title="OpenWeatherMap mock")
    app.state.settings = settings
    app.state.store = store
    app.state.generator = WeatherGenerator(store, clock=clock)
    app.state.proxy = proxy
    app.include_router(router)
    app.add_exception_handler(WeatherMockError, weather_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    return app


def main(argv: Optional[Sequence[str]] = None) -> None:
    load_dotenv()
    settings = load_settings(sys.argv[1:] if argv is None else argv)
    configure_logging(settings.log_level, settings.log_file)

    try:
        app = create_app(settings)
    except ConfigurationError as e:
        logger.critical(f"\n\n{e}\n\n")
        sys.exit(1)

    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
        server_header=False,
    )


if __name__ == "__main__":
    main()
