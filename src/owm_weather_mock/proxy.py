import logging
from typing import Dict, Optional, Union

import httpx

from owm_weather_mock.errors import UpstreamUnavailable

logger = logging.getLogger("weather_mock.proxy")

# Extra query parameters the upstream expects per endpoint
ENDPOINT_PARAMS: Dict[str, Dict[str, Union[str, int]]] = {
    "weather": {},
    "forecast": {"cnt": 8},
}


class ProxyClient:
    """Forwards weather requests to the real OpenWeatherMap service"""

    def __init__(
        self,
        base_url: str,
        app_id: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.app_id = app_id
        self.timeout = timeout
        self._transport = transport

    def build_params(self, endpoint: str, latitude: float, longitude: float) -> Dict[str, Union[str, int, float]]:
        params: Dict[str, Union[str, int, float]] = {"lat": latitude, "lon": longitude, "mode": "xml"}
        params.update(ENDPOINT_PARAMS[endpoint])
        params["APPID"] = self.app_id
        return params

    async def fetch(self, endpoint: str, latitude: float, longitude: float) -> str:
        """GET /data/2.5/{endpoint} upstream and return the XML body untouched"""
        url = f"{self.base_url}/data/2.5/{endpoint}"
        params = self.build_params(endpoint, latitude, longitude)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            logger.error(f"Upstream request to {url} timed out after {self.timeout}s")
            raise UpstreamUnavailable(f"upstream timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"Upstream request to {url} failed: {str(e)}")
            raise UpstreamUnavailable(f"upstream unreachable: {str(e)}") from e

        if not response.is_success:
            logger.error(f"Upstream {url} answered HTTP {response.status_code}")
            raise UpstreamUnavailable(
                f"upstream returned HTTP {response.status_code}", upstream_status=response.status_code
            )

        logger.info(f"Got {endpoint} from upstream weather server")
        return response.text
