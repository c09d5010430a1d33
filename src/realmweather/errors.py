"""Error taxonomy and audit records for the weather engine.

``InvalidDate`` is the only condition that fails a query. Missing climate
fields and unevaluable replay hours are recovered locally and kept as audit
records so callers can inspect replay and profile quality afterwards.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class WeatherError(Exception):
    """Base class for all weather engine errors."""


class InvalidDate(WeatherError, ValueError):
    """Raised when a game date has non-normalized or out-of-range fields."""

    def __init__(self, message: str, fields: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.fields = fields or {}


class UnknownTemplate(WeatherError, KeyError):
    """Raised when a region template id is not present in the template set."""


class UnknownRegion(WeatherError, KeyError):
    """Raised when a region id has not been registered with the simulator."""


@dataclass(frozen=True)
class MissingProfileField:
    """A climate profile field that was absent and replaced by a default."""
    table: str
    season: str
    attribute: str
    default: float

    def to_dict(self) -> dict:
        """Convert to a flat dict for logging and export."""
        return {
            "table": self.table,
            "season": self.season,
            "attribute": self.attribute,
            "default": self.default,
        }


@dataclass(frozen=True)
class ReplayGap:
    """A single replayed hour that could not be generated.

    The hour is substituted with a dry hour at the previous temperature.
    """
    region_id: str
    hour_index: int
    error: str
    substituted_temperature: float = field(default=0.0)

    def to_dict(self) -> dict:
        """Convert to a flat dict for logging and export."""
        return {
            "region_id": self.region_id,
            "hour_index": self.hour_index,
            "error": self.error,
            "substituted_temperature": self.substituted_temperature,
        }
