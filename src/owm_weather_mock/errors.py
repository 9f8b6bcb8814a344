from typing import Dict, Optional


class WeatherMockError(Exception):
    """Base class for errors surfaced to HTTP callers"""

    status_code = 500

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class InvalidSchedule(WeatherMockError):
    status_code = 400


class InvalidQueryParameter(WeatherMockError):
    status_code = 400


class UpstreamUnavailable(WeatherMockError):
    """The proxied service timed out, was unreachable or answered non-2xx"""

    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message, headers)
        self.upstream_status = upstream_status


class InternalError(WeatherMockError):
    status_code = 500


class ConfigurationError(Exception):
    """Raised at startup when the settings cannot run the service"""
