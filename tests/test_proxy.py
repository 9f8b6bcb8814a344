import httpx
import pytest

from owm_weather_mock.errors import UpstreamUnavailable
from owm_weather_mock.proxy import ProxyClient

UPSTREAM_XML = '<?xml version="1.0" encoding="UTF-8"?>\n<current><city id="1" name="Reykjavik"></city></current>'


def make_client(handler, timeout=10.0):
    return ProxyClient("https://upstream.example/", "secret-key", timeout=timeout, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_weather_returns_body_verbatim():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text=UPSTREAM_XML)

    body = await make_client(handler).fetch("weather", 51.5, -0.1)

    assert body == UPSTREAM_XML
    request = requests[0]
    assert request.url.path == "/data/2.5/weather"
    assert dict(request.url.params) == {"lat": "51.5", "lon": "-0.1", "mode": "xml", "APPID": "secret-key"}


@pytest.mark.asyncio
async def test_fetch_forecast_asks_for_eight_samples():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text="<weatherdata></weatherdata>")

    await make_client(handler).fetch("forecast", 10.0, 20.0)

    assert requests[0].url.path == "/data/2.5/forecast"
    assert requests[0].url.params["cnt"] == "8"


@pytest.mark.asyncio
async def test_non_2xx_raises_upstream_unavailable():
    client = make_client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(UpstreamUnavailable) as excinfo:
        await client.fetch("weather", 0.0, 0.0)
    assert excinfo.value.upstream_status == 500
    assert "500" in excinfo.value.message


@pytest.mark.asyncio
async def test_timeout_raises_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamUnavailable) as excinfo:
        await make_client(handler, timeout=0.5).fetch("weather", 0.0, 0.0)
    assert excinfo.value.upstream_status is None


@pytest.mark.asyncio
async def test_connection_error_raises_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamUnavailable):
        await make_client(handler).fetch("forecast", 0.0, 0.0)
