"""Batch validation harness that sweeps every region template over a year."""

from collections import Counter
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
import asyncio
import logging
import math

from pydantic import BaseModel, Field

from ..core.timebase import HOURS_PER_YEAR, GameDate, Timebase, hour_range
from ..model.regions import Region, RegionTemplate, load_templates
from ..simulator import WeatherSimulator
from .checks import (
    THRESHOLDS,
    find_direct_transitions,
    seasonal_transition_jumps,
    temperature_change_ok,
    validate_sample,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class HarnessConfig(BaseModel):
    """Sweep configuration for the validation harness."""
    year: int = 1
    hours: Tuple[int, ...] = (0, 6, 12, 18)
    templates: Optional[List[str]] = None
    chunk_size: int = Field(1000, ge=1)
    tracking_hour: int = Field(12, ge=0, le=23)


class PrecipitationAnalysisConfig(BaseModel):
    """Hourly cold-climate analysis configuration."""
    start: str = "0001-01-15T00:00"
    hours: int = Field(720, ge=1)
    freezing_threshold: float = 32.0
    templates: Optional[List[str]] = None


def _season(month: int) -> str:
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "fall"
    return "winter"


def _std(values: List[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values)/len(values)
    return math.sqrt(sum((v - mean)**2 for v in values)/len(values))


def _new_biome_stats(template: RegionTemplate) -> Dict[str, Any]:
    annual = (template.parameters.get("temperatureProfile") or {}).get("annual") or {}
    return {
        "name": template.name,
        "latitude_band": template.latitude_band,
        "expected_annual_temp": annual.get("mean"),
        "temp_min": math.inf,
        "temp_max": -math.inf,
        "temp_sum": 0.0,
        "count": 0,
        "precip_count": 0,
        "daily_temps": [],
        "seasonal_temps": {"winter": [], "spring": [], "summer": [], "fall": []},
    }


def _new_streaks() -> Dict[str, int]:
    return {"longest_dry": 0, "longest_wet": 0, "current_dry": 0, "current_wet": 0}


def _new_snow_stats() -> Dict[str, Any]:
    return {
        "max_snow_depth": 0.0,
        "max_ice_accumulation": 0.0,
        "days_with_snow": 0,
        "days_with_ice": 0,
        "ground_conditions": Counter(),
    }


class ValidationHarness:
    """Sweep all region templates and collect validation statistics.

    Each template is instantiated as a fresh region and sampled at the
    configured hours of every day of the year. A failing sample is recorded
    as an anomaly and never aborts the sweep.
    """

    def __init__(
        self,
        simulator: Optional[WeatherSimulator] = None,
        config: Optional[HarnessConfig] = None,
    ):
        """Initialize the harness.

        Args:
            simulator: Engine to validate (default: a fresh WeatherSimulator)
            config: Sweep configuration
        """
        self.simulator = simulator or WeatherSimulator()
        self.config = config or HarnessConfig()
        self.reset()

    def reset(self) -> None:
        """Discard collected statistics."""
        self.stats: Dict[str, Any] = {
            "total_tests": 0,
            "successful_tests": 0,
            "anomalies": [],
            "transition_anomalies": [],
            "direct_transitions": [],
            "seasonal_transition_anomalies": [],
            "biome_stats": {},
            "precipitation_streaks": {},
            "biome_similarities": [],
            "problem_biomes": [],
            "environmental_stats": {},
            "snow_stats": {},
        }

    def templates(self) -> Dict[str, RegionTemplate]:
        """Templates selected for the sweep, keyed by template id."""
        available = load_templates()
        if self.config.templates is None:
            return available
        return {tid: available[tid] for tid in self.config.templates if tid in available}

    def total_tests(self) -> int:
        return len(self.templates())*len(list(Timebase(self.config.year).days()))*len(self.config.hours)

    def _region(self, template_id: str, template: RegionTemplate) -> Region:
        return template.to_region(f"test-{template.latitude_band}-{template_id}", f"Test {template.name}")

    def iter_run(self, progress: Optional[ProgressCallback] = None) -> Iterator[float]:
        """Run the sweep, yielding the completed percentage after each chunk.

        Args:
            progress: Optional callback receiving the same percentages

        Yields:
            Percent complete (0-100)
        """
        self.reset()
        total = max(self.total_tests(), 1)
        completed = 0
        for template_id, template in self.templates().items():
            region = self._region(template_id, template)
            self.stats["biome_stats"][template_id] = _new_biome_stats(template)
            self.stats["precipitation_streaks"][template_id] = _new_streaks()
            self.stats["environmental_stats"][template_id] = {}
            self.stats["snow_stats"][template_id] = _new_snow_stats()
            previous: Optional[Tuple[GameDate, Any]] = None
            for day in Timebase(self.config.year).days():
                for hour in self.config.hours:
                    date = GameDate(day.year, day.month, day.day, hour)
                    sample = self._process(template_id, template, region, date, previous)
                    if sample is not None:
                        previous = (date, sample)
                    completed += 1
                    if completed % self.config.chunk_size == 0:
                        pct = completed/total*100
                        if progress:
                            progress(pct)
                        yield pct
            self._record_direct_transitions(template_id, template, region)
            self.simulator.clear_cache(region.id)
        self._post_process()
        if progress:
            progress(100.0)
        yield 100.0

    def run(self, progress: Optional[ProgressCallback] = None) -> Dict[str, Any]:
        """Run the full sweep synchronously and return the statistics."""
        for _ in self.iter_run(progress):
            pass
        return self.stats

    async def run_async(self, progress: Optional[ProgressCallback] = None) -> Dict[str, Any]:
        """Run the sweep, yielding to the event loop between chunks."""
        for _ in self.iter_run(progress):
            await asyncio.sleep(0)
        return self.stats

    def _process(self, template_id, template, region, date, previous):
        context = {
            "biome": template_id,
            "latitude_band": template.latitude_band,
            "date": date.isoformat(),
        }
        try:
            sample = self.simulator.generate_weather(region, date)
        except Exception as e:
            logger.warning(f"Sample failed for {template_id} at {date.isoformat()}: {e}")
            self.stats["anomalies"].append({**context, "issues": [f"Exception: {e}"]})
            return None

        self.stats["total_tests"] += 1
        issues = validate_sample(sample)
        if issues:
            self.stats["anomalies"].append({**context, "issues": issues})
        else:
            self.stats["successful_tests"] += 1

        if previous is not None:
            prev_date, prev_sample = previous
            hours = date.hour_index - prev_date.hour_index
            if hours == 6 and not temperature_change_ok(prev_sample.temperature, sample.temperature, hours):
                self.stats["transition_anomalies"].append({
                    "biome": template_id,
                    "latitude_band": template.latitude_band,
                    "from": prev_date.isoformat(),
                    "to": date.isoformat(),
                    "temp_change": f"{prev_sample.temperature}°F -> {sample.temperature}°F",
                    "condition_change": f"{prev_sample.condition} -> {sample.condition}",
                })

        b = self.stats["biome_stats"][template_id]
        b["temp_min"] = min(b["temp_min"], sample.temperature)
        b["temp_max"] = max(b["temp_max"], sample.temperature)
        b["temp_sum"] += sample.temperature
        b["count"] += 1
        if sample.precipitation:
            b["precip_count"] += 1

        if date.hour == self.config.tracking_hour:
            self._track_day(template_id, region, date, sample)
        return sample

    def _track_day(self, template_id, region, date, sample) -> None:
        b = self.stats["biome_stats"][template_id]
        b["daily_temps"].append((date.day_of_year, sample.temperature))
        b["seasonal_temps"][_season(date.month)].append(sample.temperature)

        streaks = self.stats["precipitation_streaks"][template_id]
        if sample.precipitation:
            streaks["current_wet"] += 1
            streaks["current_dry"] = 0
            streaks["longest_wet"] = max(streaks["longest_wet"], streaks["current_wet"])
        else:
            streaks["current_dry"] += 1
            streaks["current_wet"] = 0
            streaks["longest_dry"] = max(streaks["longest_dry"], streaks["current_dry"])

        context = {"biome": template_id, "latitude_band": region.latitude_band, "date": date.isoformat()}
        try:
            env = self.simulator.get_environmental_conditions(region, date)
            self._track_environment(template_id, env)
        except Exception as e:
            logger.warning(f"Environmental check failed for {template_id}: {e}")
            self.stats["anomalies"].append({**context, "issues": [f"Exception: {e}"]})
        try:
            snow = self.simulator.get_accumulation(region, date)
            self._track_snow(template_id, snow)
        except Exception as e:
            logger.warning(f"Snow check failed for {template_id}: {e}")
            self.stats["anomalies"].append({**context, "issues": [f"Exception: {e}"]})

    def _track_environment(self, template_id: str, env) -> None:
        out = self.stats["environmental_stats"][template_id]
        for kind in ("drought", "flooding", "heat_wave", "cold_snap", "wildfire_risk"):
            h = getattr(env, kind)
            entry = out.setdefault(kind, {"days": Counter(), "max_level": 0})
            entry["days"][h.name] += 1
            entry["max_level"] = max(entry["max_level"], h.level)

    def _track_snow(self, template_id: str, snow) -> None:
        s = self.stats["snow_stats"][template_id]
        s["max_snow_depth"] = max(s["max_snow_depth"], snow.snow_depth)
        s["max_ice_accumulation"] = max(s["max_ice_accumulation"], snow.ice_accumulation)
        if snow.snow_depth >= 0.5:
            s["days_with_snow"] += 1
        if snow.ice_accumulation >= 0.1:
            s["days_with_ice"] += 1
        s["ground_conditions"][snow.ground_condition] += 1

    def _record_direct_transitions(self, template_id, template, region) -> None:
        # Transitional precipitation can fall between sampled hours, so the
        # check walks every hour of the year.
        series = []
        for date in hour_range(GameDate(self.config.year, 1, 1, 0), HOURS_PER_YEAR):
            try:
                series.append((date.hour_index, self.simulator.generate_weather(region, date)))
            except Exception as e:
                logger.warning(f"Skipping {template_id} at {date.isoformat()} in transition scan: {e}")
        for t in find_direct_transitions(series):
            self.stats["direct_transitions"].append({
                "biome": template_id,
                "latitude_band": template.latitude_band,
                **t,
            })

    # post-processing

    def _post_process(self) -> None:
        self._analyze_seasonal_transitions()
        self._find_biome_similarities()
        self._identify_problem_biomes()

    def _analyze_seasonal_transitions(self) -> None:
        for template_id, b in self.stats["biome_stats"].items():
            daily = dict(b["daily_temps"])
            for season, jump in seasonal_transition_jumps(daily).items():
                if jump > THRESHOLDS["max_weekly_seasonal_jump"]:
                    self.stats["seasonal_transition_anomalies"].append({
                        "biome": template_id,
                        "latitude_band": b["latitude_band"],
                        "season": season,
                        "weekly_change": round(jump, 1),
                    })
            b["daily_temp_variance"] = _std([t for _, t in b["daily_temps"]])
            b["seasonal_variance"] = {k: _std(v) for k, v in b["seasonal_temps"].items()}
            if b["count"]:
                b["actual_annual_temp"] = b["temp_sum"]/b["count"]
                if b["expected_annual_temp"] is not None:
                    b["temp_deviation"] = b["actual_annual_temp"] - b["expected_annual_temp"]

    def _find_biome_similarities(self) -> None:
        items = [(k, b) for k, b in self.stats["biome_stats"].items() if b["count"]]
        for i, (k1, b1) in enumerate(items):
            for k2, b2 in items[i + 1:]:
                temp_diff = abs(b1["temp_sum"]/b1["count"] - b2["temp_sum"]/b2["count"])
                precip_diff = abs(b1["precip_count"]/b1["count"] - b2["precip_count"]/b2["count"])*100
                if temp_diff < THRESHOLDS["biome_similarity_threshold"] and precip_diff < 5:
                    self.stats["biome_similarities"].append({
                        "biome1": k1,
                        "biome2": k2,
                        "avg_temp_diff": round(temp_diff, 1),
                        "precip_diff": round(precip_diff, 1),
                        "band1": b1["latitude_band"],
                        "band2": b2["latitude_band"],
                    })

    def _identify_problem_biomes(self) -> None:
        for template_id, b in self.stats["biome_stats"].items():
            problems = []
            deviation = b.get("temp_deviation")
            if deviation is not None and abs(deviation) > THRESHOLDS["expected_temp_deviation"]:
                problems.append(f"Temp deviation: {deviation:+.1f}°F from expected")

            anomalies = [a for a in self.stats["anomalies"] if a["biome"] == template_id]
            if len(anomalies) > 10:
                problems.append(f"{len(anomalies)} validation anomalies")
            transitions = [a for a in self.stats["transition_anomalies"] if a["biome"] == template_id]
            if len(transitions) > 5:
                problems.append(f"{len(transitions)} hourly transition anomalies")
            direct = [a for a in self.stats["direct_transitions"] if a["biome"] == template_id]
            if direct:
                problems.append(f"{len(direct)} direct snow/rain transition(s)")
            seasonal = [a for a in self.stats["seasonal_transition_anomalies"] if a["biome"] == template_id]
            if seasonal:
                problems.append(f"{len(seasonal)} abrupt seasonal transition(s)")

            if b["count"]:
                rate = b["precip_count"]/b["count"]
                wet_limit = min(60, max(14, round(14/(1 - rate + 0.01))))
                dry_limit = min(90, max(14, round(14/(rate + 0.01))))
                streaks = self.stats["precipitation_streaks"][template_id]
                if streaks["longest_wet"] > wet_limit:
                    problems.append(f"Long wet streak: {streaks['longest_wet']} days (threshold: {wet_limit})")
                if streaks["longest_dry"] > dry_limit:
                    problems.append(f"Long dry streak: {streaks['longest_dry']} days (threshold: {dry_limit})")

            if problems:
                self.stats["problem_biomes"].append({
                    "biome": template_id,
                    "latitude_band": b["latitude_band"],
                    "problems": problems,
                })

    def summary(self) -> Dict[str, Any]:
        """Headline counts of the last run."""
        return {
            "total_tests": self.stats["total_tests"],
            "successful_tests": self.stats["successful_tests"],
            "anomalies": len(self.stats["anomalies"]),
            "transition_anomalies": len(self.stats["transition_anomalies"]),
            "direct_transitions": len(self.stats["direct_transitions"]),
            "seasonal_transition_anomalies": len(self.stats["seasonal_transition_anomalies"]),
            "biome_similarities": len(self.stats["biome_similarities"]),
            "problem_biomes": len(self.stats["problem_biomes"]),
        }

    def run_precipitation_analysis(
        self,
        config: Optional[PrecipitationAnalysisConfig] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        """Hourly precipitation and snowpack time series for cold biomes.

        Only templates whose winter mean is at or below the freezing
        threshold are analyzed.

        Args:
            config: Analysis configuration
            progress: Optional callback receiving percent complete

        Returns:
            Per-biome time series and stats plus an overall summary
        """
        config = config or PrecipitationAnalysisConfig()
        start = GameDate.parse(config.start)
        cold = {}
        for tid, t in load_templates().items():
            if config.templates is not None and tid not in config.templates:
                continue
            winter = ((t.parameters.get("temperatureProfile") or {}).get("winter") or {}).get("mean")
            if winter is not None and winter <= config.freezing_threshold:
                cold[tid] = (t, winter)

        results = {
            "config": {
                "hours_analyzed": config.hours,
                "start_date": start.isoformat(),
                "freezing_threshold": config.freezing_threshold,
                "biomes_analyzed": len(cold),
            },
            "biomes": {},
            "summary": {
                "total_precip_type_changes": 0,
                "total_rain_on_snow_events": 0,
                "max_snow_depth_observed": 0.0,
                "biomes_with_full_melt": [],
            },
        }
        total = max(len(cold)*config.hours, 1)
        completed = 0
        for tid, (template, winter) in cold.items():
            region = template.to_region(f"precip-test-{template.latitude_band}-{tid}", f"Test {template.name}")
            self.simulator.clear_cache(region.id)
            stats = {
                "hours_with_precip": 0,
                "precip_type_breakdown": Counter(),
                "precip_type_changes": 0,
                "rain_on_snow_events": 0,
                "max_snow_depth": 0.0,
                "max_melt_rate": 0.0,
                "hours_above_freezing": 0,
                "hours_below_freezing": 0,
                "temp_range": {"min": math.inf, "max": -math.inf},
            }
            series = []
            prev_type, prev_depth = None, 0.0
            for i, date in enumerate(hour_range(start, config.hours)):
                try:
                    w = self.simulator.generate_weather(region, date)
                    snow = self.simulator.get_accumulation(region, date)
                except Exception as e:
                    series.append({"hour": i, "date": date.isoformat(), "error": str(e)})
                else:
                    ptype = w.precipitation_type if w.precipitation else "none"
                    melt = max(0.0, prev_depth - snow.snow_depth)
                    series.append({
                        "hour": i,
                        "date": date.isoformat(),
                        "temperature": w.temperature,
                        "precip_type": ptype,
                        "precip_intensity": w.precipitation_intensity,
                        "snow_depth": snow.snow_depth,
                        "snow_depth_change": round(snow.snow_depth - prev_depth, 2),
                        "melt_amount": round(melt, 2),
                        "ground_condition": snow.ground_condition,
                    })
                    if w.precipitation:
                        stats["hours_with_precip"] += 1
                    stats["precip_type_breakdown"][ptype] += 1
                    if prev_type not in (None, "none") and ptype != "none" and ptype != prev_type:
                        stats["precip_type_changes"] += 1
                    if ptype == "rain" and prev_depth >= 0.5:
                        stats["rain_on_snow_events"] += 1
                    stats["max_snow_depth"] = max(stats["max_snow_depth"], snow.snow_depth)
                    stats["max_melt_rate"] = max(stats["max_melt_rate"], round(melt, 2))
                    if w.temperature > 32:
                        stats["hours_above_freezing"] += 1
                    else:
                        stats["hours_below_freezing"] += 1
                    stats["temp_range"]["min"] = min(stats["temp_range"]["min"], w.temperature)
                    stats["temp_range"]["max"] = max(stats["temp_range"]["max"], w.temperature)
                    prev_type, prev_depth = ptype, snow.snow_depth
                completed += 1
                if progress and completed % 50 == 0:
                    progress(completed/total*100)

            last_depth = next((e["snow_depth"] for e in reversed(series) if "snow_depth" in e), None)
            if stats["max_snow_depth"] >= 5 and last_depth is not None and last_depth < 0.5:
                results["summary"]["biomes_with_full_melt"].append(tid)
            results["summary"]["total_precip_type_changes"] += stats["precip_type_changes"]
            results["summary"]["total_rain_on_snow_events"] += stats["rain_on_snow_events"]
            results["summary"]["max_snow_depth_observed"] = max(
                results["summary"]["max_snow_depth_observed"], stats["max_snow_depth"])
            results["biomes"][tid] = {
                "biome_name": template.name,
                "latitude_band": template.latitude_band,
                "winter_mean": winter,
                "time_series": series,
                "stats": stats,
            }
            self.simulator.clear_cache(region.id)

        if progress:
            progress(100.0)
        return results
