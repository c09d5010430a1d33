"""Validation checks and the batch validation harness."""

from .checks import (
    THRESHOLDS,
    find_direct_transitions,
    flood_alert_violations,
    seasonal_transition_jumps,
    validate_sample,
)
from .harness import HarnessConfig, PrecipitationAnalysisConfig, ValidationHarness

__all__ = [
    "THRESHOLDS",
    "find_direct_transitions",
    "flood_alert_violations",
    "seasonal_transition_jumps",
    "validate_sample",
    "HarnessConfig",
    "PrecipitationAnalysisConfig",
    "ValidationHarness",
]
