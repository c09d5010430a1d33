"""Invariant checks for generated weather, snow and hazard series.

Every function here is pure: it inspects samples or records and returns the
problems it found, leaving aggregation to the caller.
"""
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.precipitation import TRANSITION_LOOKBACK_HOURS
from ..model.samples import WeatherSample

THRESHOLDS = {
    "temperature": {"min": -100, "max": 150},
    "humidity": {"min": 0, "max": 100},
    "pressure": {"min": 28, "max": 32},
    "cloud_cover": {"min": 0, "max": 100},
    "max_temp_change_per_hour": 15,
    "max_weekly_seasonal_jump": 12,
    "expected_temp_deviation": 15,
    "biome_similarity_threshold": 3,
    "rapid_melt_drop": 3.0,
}

# Day of year at the centre of each seasonal transition window
SEASONAL_WINDOWS = {
    "spring_equinox": 80,
    "summer_solstice": 172,
    "fall_equinox": 266,
    "winter_solstice": 356,
}

# Inclusive temperature bands for each precipitation type; rain is strictly above 35
PRECIPITATION_BANDS = {
    "snow": (None, 35),
    "sleet": (29, 38),
    "freezing-rain": (28, 35),
}


def _out_of_range(value: float, key: str) -> bool:
    bounds = THRESHOLDS[key]
    return value < bounds["min"] or value > bounds["max"]


def validate_sample(sample: WeatherSample) -> List[str]:
    """Check one sample against the range and physical-consistency rules.

    Args:
        sample: The weather sample to check

    Returns:
        Human-readable issues; empty when the sample is valid
    """
    issues = []
    if _out_of_range(sample.temperature, "temperature"):
        issues.append(f"Temp out of range: {sample.temperature}°F")
    if _out_of_range(sample.humidity, "humidity"):
        issues.append(f"Humidity out of range: {sample.humidity}%")
    if _out_of_range(sample.pressure, "pressure"):
        issues.append(f"Pressure out of range: {sample.pressure} inHg")
    if _out_of_range(sample.cloud_cover, "cloud_cover"):
        issues.append(f"Cloud cover out of range: {sample.cloud_cover}%")
    if sample.dew_point > sample.temperature:
        issues.append(f"Dew point {sample.dew_point}°F above temperature {sample.temperature}°F")
    if sample.feels_like < sample.temperature:
        issues.append(f"Feels-like {sample.feels_like}°F below temperature {sample.temperature}°F")

    if sample.precipitation and sample.precipitation_type:
        issues.extend(precipitation_type_issues(sample.precipitation_type, sample.temperature))
    return issues


def precipitation_type_issues(precip_type: str, temperature: float) -> List[str]:
    """Check a precipitation type against its valid temperature band."""
    if precip_type == "rain":
        return [f"Rain at {temperature}°F"] if temperature <= 35 else []
    band = PRECIPITATION_BANDS.get(precip_type)
    if band is None:
        return [f"Unknown precipitation type: {precip_type}"]
    lo, hi = band
    if (lo is not None and temperature < lo) or (hi is not None and temperature > hi):
        return [f"{precip_type} at {temperature}°F"]
    return []


def temperature_change_ok(previous: float, current: float, hours: int) -> bool:
    """True when a temperature change stays within the per-hour limit."""
    return abs(current - previous) <= THRESHOLDS["max_temp_change_per_hour"]*max(hours, 1)


def find_direct_transitions(
    series: Iterable[Tuple[int, WeatherSample]],
    window: int = TRANSITION_LOOKBACK_HOURS,
) -> List[Dict]:
    """Find snow/rain pairs with no sleet or freezing rain between them.

    Consecutive precipitating samples are compared; dry samples in between
    are skipped, and pairs further apart than ``window`` hours are ignored.

    Args:
        series: (hour index, sample) pairs in time order
        window: Maximum hour gap to consider

    Returns:
        One dict per offending pair
    """
    found = []
    last: Optional[Tuple[int, str]] = None
    for hour_index, sample in series:
        if not sample.precipitation:
            continue
        ptype = sample.precipitation_type
        if last is not None and {last[1], ptype} == {"snow", "rain"} and hour_index - last[0] <= window:
            found.append({"from_hour": last[0], "to_hour": hour_index, "from": last[1], "to": ptype})
        last = (hour_index, ptype)
    return found


def weekly_mean(daily_means: Mapping[int, float], start_day: int, days: int = 7) -> Optional[float]:
    """Mean over ``days`` consecutive days of year, wrapping at year end."""
    values = []
    for i in range(days):
        doy = (start_day - 1 + i) % 365 + 1
        if doy not in daily_means:
            return None
        values.append(daily_means[doy])
    return sum(values)/len(values)


def seasonal_transition_jumps(
    daily_means: Mapping[int, float],
    windows: Mapping[str, int] = SEASONAL_WINDOWS,
) -> Dict[str, float]:
    """Absolute difference of the weekly means either side of each boundary.

    Args:
        daily_means: Mean temperature keyed by 1-based day of year
        windows: Boundary day of year by name

    Returns:
        Jump in °F by boundary name, for boundaries with full coverage
    """
    jumps = {}
    for name, day in windows.items():
        before = weekly_mean(daily_means, day - 7)
        after = weekly_mean(daily_means, day)
        if before is not None and after is not None:
            jumps[name] = abs(after - before)
    return jumps


def flood_alert_violations(records: Sequence[Mapping]) -> Dict[str, List[Mapping]]:
    """Check flood levels against snow-depth history.

    Each record needs ``hour_index``, ``temperature``, ``snow_depth``,
    ``precipitation_type`` and ``flood_level``. Records must be hourly and
    in order.

    Returns:
        ``false_positives``: alerts while the pack grows below freezing
        without rain; ``missed_alerts``: no alert despite a rapid 3-day drop
        above freezing
    """
    by_hour = {r["hour_index"]: r for r in records}
    false_positives, missed = [], []
    for prev, cur in zip(records, records[1:]):
        if (cur["flood_level"] > 0 and cur["snow_depth"] > prev["snow_depth"]
                and cur["temperature"] <= 32 and cur["precipitation_type"] != "rain"):
            false_positives.append(cur)
    for r in records:
        earlier = by_hour.get(r["hour_index"] - 72)
        if earlier is None:
            continue
        drop = earlier["snow_depth"] - r["snow_depth"]
        if drop >= THRESHOLDS["rapid_melt_drop"] and r["temperature"] > 32 and r["flood_level"] == 0:
            missed.append(r)
    return {"false_positives": false_positives, "missed_alerts": missed}
