"""API components for the weather engine."""

from .rest import WeatherRestAPI

__all__ = [
    "WeatherRestAPI",
]
