"""Runtime components for the weather engine."""

from .state import RegionCache

__all__ = [
    "RegionCache",
]
