"""Mock OpenWeatherMap XML service."""

__version__ = "0.1.0"
