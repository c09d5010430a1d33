from dataclasses import dataclass
import logging
import math

import numpy as np

from ..model.samples import EnvironmentalState, HazardLevel
from ..runtime.state import RegionCache
from .timebase import DAYS_PER_YEAR, GameDate, Timebase

logger = logging.getLogger(__name__)

SYNOPTIC_HOURS = (0, 6, 12, 18)
HEAT_HOUR = 14
COLD_HOUR = 6

LEVEL_NAMES = {
  "drought": ("Normal", "Abnormally Dry", "Moderate Drought", "Severe Drought", "Extreme Drought"),
  "flooding": ("Normal", "Elevated", "Moderate Risk", "High Risk", "Extreme Risk"),
  "heat_wave": ("Normal", "Heat Advisory", "Heat Warning", "Extreme Heat", "Extreme Heat Emergency"),
  "cold_snap": ("Normal", "Cold Advisory", "Cold Warning", "Extreme Cold", "Extreme Cold Emergency"),
  "wildfire_risk": ("Low", "Moderate", "High", "Very High", "Extreme"),
}

DESCRIPTIONS = {
  "drought": (
    "Water sources normal",
    "Streams running low; foraging slightly harder",
    "Small springs dry up; water must be carried",
    "Crops failing; wells run dry and livestock suffer",
    "Rivers reduced to pools; famine and unrest",
  ),
  "flooding": (
    "Rivers within their banks",
    "Streams swollen; fords are risky",
    "Lowlands flooding; fords impassable",
    "Roads washed out; bridges at risk",
    "Widespread flooding; settlements evacuating",
  ),
  "heat_wave": (
    "Seasonal temperatures",
    "Unusually hot; travelers tire quickly",
    "Dangerous heat; extra water needed",
    "Exhaustion checks during any exertion",
    "Lethal heat; travel only at night",
  ),
  "cold_snap": (
    "Seasonal temperatures",
    "Unusually cold; warm clothing needed",
    "Dangerous cold; shelter needed at night",
    "Frostbite risk on exposed skin",
    "Lethal cold; exposure kills within hours",
  ),
  "wildfire_risk": (
    "Fire unlikely to spread",
    "Campfires need watching",
    "Fires spread readily in dry brush",
    "Fires spread fast and jump roads",
    "Any spark can start an uncontrollable blaze",
  ),
}

STREAK_THRESHOLDS = (3, 5, 7, 10)
DROUGHT_MULTIPLIERS = (3, 6, 10, 15)
DROUGHT_FLOORS = (7, 14, 21, 30)
MELT_DROP_THRESHOLDS = (3.0, 6.0, 10.0, 16.0)
RAIN_ON_SNOW_THRESHOLDS = (2.0, 5.0, 9.0, 14.0)
SUSTAINED_RAIN_RATIOS = (1.5, 2.25, 3.0, 4.0)
WILDFIRE_THRESHOLDS = (20.0, 40.0, 60.0, 80.0)
SIGNIFICANT_SNOWPACK = 2.0
RAIN_WEIGHTS = {"light": 0.5, "moderate": 1.0, "heavy": 2.0}


def level_for(value: float, thresholds) -> int:
  """Number of thresholds reached; non-decreasing in value."""
  return sum(1 for t in thresholds if value >= t)


def hazard(kind: str, level: int, driver: float = 0.0) -> HazardLevel:
  level = max(0, min(4, int(level)))
  return HazardLevel(
    level=level,
    name=LEVEL_NAMES[kind][level],
    description=DESCRIPTIONS[kind][level],
    driver=round(float(driver), 2),
  )


@dataclass(frozen=True)
class Climatology:
  """Per-region reference statistics used to make hazards region-relative."""
  wet_day_fraction: float
  precip_rate: float
  heat_threshold: float
  cold_threshold: float

  @property
  def typical_dry_spell(self) -> float:
    return 1.0/max(self.wet_day_fraction, 1.0/DAYS_PER_YEAR)

  def drought_thresholds(self) -> tuple:
    spell = self.typical_dry_spell
    return tuple(max(floor, mult*spell) for floor, mult in zip(DROUGHT_FLOORS, DROUGHT_MULTIPLIERS))


class EnvironmentalConditionsService:
  """Hazard levels derived from rolling weather and snowpack history."""

  def __init__(self, weather, snow, drought_lookback_days: int = 120, streak_lookback_days: int = 30,
               reference_year: int = 1, cache: RegionCache = None):
    self.weather = weather
    self.snow = snow
    self.drought_lookback_days = drought_lookback_days
    self.streak_lookback_days = streak_lookback_days
    self.reference_year = reference_year
    self.cache = cache if cache is not None else RegionCache()
    weather.cache.add_listener(self._on_weather_cleared)

  def _on_weather_cleared(self, region_id):
    self.cache.clear(region_id)

  def clear_cache(self, region_id=None) -> int:
    return self.cache.clear(region_id)

  def _sample(self, region, date):
    # History samples are isolated: a failing hour reads as dry
    try:
      return self.weather.generate_weather(region, date)
    except Exception as e:
      logger.warning(f"Skipping {region.id} at {date.isoformat()} in hazard history: {e}")
      return None

  # climatology

  def climatology(self, region) -> Climatology:
    return self.cache.get_or_compute(region.id, "climatology", self.reference_year,
                                     lambda: self._climatology(region))

  def _climatology(self, region) -> Climatology:
    wet_days = 0
    precip = 0
    samples = 0
    heat, cold = [], []
    for d in Timebase(self.reference_year).days():
      wet = False
      for hour in SYNOPTIC_HOURS:
        s = self._sample(region, GameDate(d.year, d.month, d.day, hour))
        if s is None:
          continue
        samples += 1
        if s.precipitation:
          precip += 1
          wet = True
      wet_days += wet
      heat.append(self._deviation(region, d.day_index*24 + HEAT_HOUR))
      cold.append(self._deviation(region, d.day_index*24 + COLD_HOUR))
    clim = Climatology(
      wet_day_fraction=wet_days/DAYS_PER_YEAR,
      precip_rate=precip/max(samples, 1),
      heat_threshold=float(np.percentile(heat, 90)),
      cold_threshold=float(np.percentile(cold, 10)),
    )
    logger.debug(f"Climatology for {region.id}: {clim}")
    return clim

  def _deviation(self, region, hour_index: int) -> float:
    return self.weather.temperature(region, hour_index) - self.weather.baseline_temperature(region, hour_index)

  # drought

  def _is_wet_day(self, region, day_index: int, through_hour: int = 23) -> bool:
    if through_hour >= SYNOPTIC_HOURS[-1]:
      return self.cache.get_or_compute(region.id, "wet", day_index,
                                       lambda: self._wet(region, day_index, SYNOPTIC_HOURS))
    hours = tuple(h for h in SYNOPTIC_HOURS if h <= through_hour)
    return self._wet(region, day_index, hours)

  def _wet(self, region, day_index: int, hours) -> bool:
    for hour in hours:
      s = self._sample(region, GameDate.from_day_index(day_index, hour))
      if s is not None and s.precipitation:
        return True
    return False

  def dry_days(self, region, date) -> int:
    """Consecutive days without precipitation at the synoptic hours, ending at date."""
    date = GameDate.coerce(date)
    clim = self.climatology(region)
    lookback = min(DAYS_PER_YEAR, max(self.drought_lookback_days, math.ceil(clim.drought_thresholds()[-1])))
    today = date.day_index
    if self._is_wet_day(region, today, date.hour):
      return 0
    n = 1
    while n < lookback and not self._is_wet_day(region, today - n):
      n += 1
    return n

  def _drought(self, region, dry_days: int, snow_now) -> HazardLevel:
    if snow_now.snow_depth >= SIGNIFICANT_SNOWPACK:
      # snow cover is standing precipitation; the ground beneath stays wet
      return hazard("drought", 0, dry_days)
    level = level_for(dry_days, self.climatology(region).drought_thresholds())
    return hazard("drought", level, dry_days)

  # flooding

  def _depth_at(self, region, hour_index: int) -> float:
    return self.snow.get_accumulation(region, GameDate.from_hour_index(hour_index)).snow_depth

  def _flooding(self, region, date, sample, snow_now) -> HazardLevel:
    h = date.hour_index
    depth_now = snow_now.snow_depth
    depth_prev = self._depth_at(region, h - 1)
    if sample.temperature <= 32 and sample.precipitation_type != "rain" and depth_now >= depth_prev:
      # frozen and not raining with an intact or growing pack releases no water
      return hazard("flooding", 0, 0.0)

    recent = self.snow.recent_hours(region, date)
    last_day = recent[-24:]

    drop = self._depth_at(region, h - 72) - depth_now
    melt_level = 0
    if sample.temperature > 32:
      melt_level = level_for(drop, MELT_DROP_THRESHOLDS)
      if melt_level and any(r.precip_type in ("rain", "sleet", "freezing-rain") for r in last_day):
        melt_level += 1

    rain_on_snow = 0
    if self._depth_at(region, h - 24) >= SIGNIFICANT_SNOWPACK:
      score = sum(RAIN_WEIGHTS[r.intensity] for r in last_day if r.precip_type == "rain")
      rain_on_snow = level_for(score, RAIN_ON_SNOW_THRESHOLDS)

    amount = sum(RAIN_WEIGHTS[r.intensity] for r in recent if r.precip_type == "rain")
    expected = max(6.0, 72*self.climatology(region).precip_rate)
    sustained = level_for(amount/expected, SUSTAINED_RAIN_RATIOS) if amount >= 6.0 else 0

    level = max(melt_level, rain_on_snow, sustained)
    return hazard("flooding", level, max(drop, 0.0) if melt_level >= max(rain_on_snow, sustained) else amount)

  # heat and cold

  def _streak(self, region, date, hour: int, hot: bool) -> int:
    clim = self.climatology(region)
    n = 0
    for back in range(1, self.streak_lookback_days + 1):
      dev = self._deviation(region, (date.day_index - back)*24 + hour)
      if (dev > clim.heat_threshold) if hot else (dev < clim.cold_threshold):
        n += 1
      else:
        break
    return n

  def _heat_wave(self, region, date) -> HazardLevel:
    streak = self._streak(region, date, HEAT_HOUR, True)
    return hazard("heat_wave", level_for(streak, STREAK_THRESHOLDS), streak)

  def _cold_snap(self, region, date) -> HazardLevel:
    streak = self._streak(region, date, COLD_HOUR, False)
    return hazard("cold_snap", level_for(streak, STREAK_THRESHOLDS), streak)

  # wildfire

  def wildfire_score(self, region, date, dry_days: int) -> float:
    if region.ground_type == "water" or region.flag("isOcean") or region.factor("standingWater") >= 0.5:
      return 0.0
    peak = self._sample(region, GameDate.from_day_index(date.day_index, HEAT_HOUR))
    if peak is None:
      return 0.0
    spell = self.climatology(region).typical_dry_spell
    score = min(40.0, dry_days*40.0/max(10.0, 6*spell))
    score += min(max((60 - peak.humidity)/40.0, 0.0), 1.0)*25
    score += min(max((peak.temperature - 60)/40.0, 0.0), 1.0)*20
    score += min(peak.wind_speed/40.0, 1.0)*15
    score *= 1 + 0.2*min(region.factor("forestDensity"), 1.0)
    if region.ground_type in ("permafrost", "peat"):
      score *= 0.3
    return score

  def _wildfire(self, region, date, sample, snow_now, dry_days: int, cold_snap: HazardLevel) -> HazardLevel:
    if snow_now.snow_depth >= SIGNIFICANT_SNOWPACK:
      return hazard("wildfire_risk", 0, 0.0)
    if cold_snap.level > 0 and sample.temperature <= 32:
      return hazard("wildfire_risk", 0, 0.0)
    score = self.wildfire_score(region, date, dry_days)
    level = level_for(score, WILDFIRE_THRESHOLDS)
    if region.ground_type in ("permafrost", "peat"):
      level = min(level, 1)
    return hazard("wildfire_risk", level, score)

  # public

  def get_environmental_conditions(self, region, date) -> EnvironmentalState:
    date = GameDate.coerce(date)
    return self.cache.get_or_compute(region.id, "environment", date.hour_index,
                                     lambda: self._conditions(region, date))

  def _conditions(self, region, date) -> EnvironmentalState:
    sample = self.weather.generate_weather(region, date)
    snow_now = self.snow.get_accumulation(region, date)
    dry = self.dry_days(region, date)
    cold_snap = self._cold_snap(region, date)
    return EnvironmentalState(
      drought=self._drought(region, dry, snow_now),
      flooding=self._flooding(region, date, sample, snow_now),
      heat_wave=self._heat_wave(region, date),
      cold_snap=cold_snap,
      wildfire_risk=self._wildfire(region, date, sample, snow_now, dry, cold_snap),
    )
