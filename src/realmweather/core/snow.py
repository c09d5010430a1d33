from dataclasses import dataclass
import logging
from typing import Optional, Tuple

from ..errors import ReplayGap
from ..model.samples import SnowState
from ..runtime.state import RegionCache
from .daylight import Daylight
from .timebase import HOURS_PER_DAY, GameDate

logger = logging.getLogger(__name__)

SNOW_RATES = {"light": 0.2, "moderate": 0.5, "heavy": 1.0}   # in/hr
ICE_RATES = {"light": 0.02, "moderate": 0.05, "heavy": 0.1}  # in/hr
SNOW_MELT_RATE = 0.06   # in per degree-hour above freezing
ICE_MELT_RATE = 0.02
DAYTIME_MELT = 1.5
RAIN_ON_SNOW_MELT = 2.5
HEAVY_RAIN_MELT = 0.5
SUBLIMATION_RATE = 0.01
SNOW_TO_WATER = 10.0

# Settling: fresh 10:1 powder packs down toward 5:1 over about three days
COMPACTION_RATE = 0.03
MAX_COMPACTION = 0.65
COMPACTION_HOURS = 72
PACKED_RATIO = 5.0

# Share of the pack lost every hour to wind redistribution and firn
# settling. Depth can never pass (1 - PACK_LOSS_RATE)/PACK_LOSS_RATE inches
# even under endless heavy snow, and a season's starting pack is forgotten
# within the spin-up.
PACK_LOSS_RATE = 0.004

SNOW_COVERED_DEPTH = 0.5
ICY_THRESHOLD = 0.1
RECENT_HOURS = 72

# (thermal inertia, melt modifier)
GROUND_TYPES = {
  "permafrost": (0.98, 0.5),
  "rock": (0.95, 1.3),
  "clay": (0.90, 0.85),
  "soil": (0.85, 1.0),
  "peat": (0.85, 0.7),
  "sand": (0.70, 1.5),
  "water": (0.97, 1.0),
}


@dataclass(frozen=True)
class HourRecord:
  temperature: float
  precip_type: Optional[str]
  intensity: Optional[str]
  melt: float


@dataclass(frozen=True)
class AccumulationState:
  """Unrounded replay state after a given hour."""
  hour_index: int
  snow_depth: float = 0.0
  swe: float = 0.0
  ice: float = 0.0
  snow_age: int = 0
  ground_temperature: Optional[float] = None
  temperature: Optional[float] = None
  gaps: int = 0
  recent: Tuple[HourRecord, ...] = ()


def sticking_factor(ground_temperature: float) -> float:
  if ground_temperature <= 33:
    return 1.0
  if ground_temperature >= 38:
    return 0.0
  return (38 - ground_temperature)/5.0


def step(state: AccumulationState, region, temperature: float, precip_type, intensity,
         humidity: float, daytime: bool, gap: bool = False) -> AccumulationState:
  """Advance the accumulation state by one hour."""
  inertia, melt_mod = GROUND_TYPES.get(region.ground_type, GROUND_TYPES["soil"])
  on_water = region.ground_type == "water" or region.flag("isOcean")

  gt = temperature if state.ground_temperature is None else state.ground_temperature
  gt = inertia*gt + (1 - inertia)*temperature
  if state.snow_depth >= 4:
    # deep snow insulates the ground toward freezing
    gt += (32 - gt)*0.1*min(state.snow_depth, 12)/12

  depth, swe, ice, age = state.snow_depth, state.swe, state.ice, state.snow_age
  stick = 0.0 if on_water else sticking_factor(gt)

  fresh = False
  if precip_type == "snow":
    added = SNOW_RATES[intensity]*stick
    if added > 0:
      depth += added
      swe += added/SNOW_TO_WATER
      age = 0
      fresh = True
  elif precip_type == "freezing-rain":
    ice += ICE_RATES[intensity]*(0.0 if on_water else 1.0 if gt <= 33 else stick)
  elif precip_type == "sleet":
    ice += ICE_RATES[intensity]*0.5*stick

  dry_air = min(region.factor("dryAir"), 1.0)
  melted = 0.0
  if temperature > 32:
    degrees = temperature - 32
    rate = SNOW_MELT_RATE*degrees*melt_mod*(1 + 0.4*dry_air)
    if daytime:
      rate *= DAYTIME_MELT
    if precip_type == "rain" and depth > 0:
      rate *= RAIN_ON_SNOW_MELT + (HEAVY_RAIN_MELT if intensity == "heavy" else 0.0)
    snow_melt = min(depth, rate)
    if snow_melt > 0:
      swe *= (depth - snow_melt)/depth
      depth -= snow_melt
    ice_rate = ICE_MELT_RATE*degrees*melt_mod*(DAYTIME_MELT if daytime else 1.0)
    ice_melt = min(ice, ice_rate)
    ice -= ice_melt
    melted = snow_melt + ice_melt

  sublimation_below = 25 if dry_air > 0.5 else 20
  if depth > 0 and temperature < sublimation_below and humidity < 40:
    loss = min(depth, SUBLIMATION_RATE)
    swe *= (depth - loss)/depth
    depth -= loss

  depth *= 1 - PACK_LOSS_RATE
  swe *= 1 - PACK_LOSS_RATE
  ice *= 1 - PACK_LOSS_RATE

  if depth > 0 and not fresh:
    age += 1
    compaction = min(MAX_COMPACTION, COMPACTION_RATE*min(age, COMPACTION_HOURS))
    depth = max(swe*PACKED_RATIO, depth*(1 - compaction*0.5))
  if depth < 0.005:
    depth, swe, age = 0.0, 0.0, 0
  ice = 0.0 if ice < 0.0005 else ice

  record = HourRecord(temperature, precip_type, intensity, melted)
  recent = (state.recent + (record,))[-RECENT_HOURS:]
  return AccumulationState(
    hour_index=state.hour_index + 1,
    snow_depth=depth,
    swe=swe,
    ice=ice,
    snow_age=age,
    ground_temperature=gt,
    temperature=temperature,
    gaps=state.gaps + (1 if gap else 0),
    recent=recent,
  )


def ground_condition(snow_depth: float, ice: float, temperature: float, ground_temperature: float,
                     recent: Tuple[HourRecord, ...]) -> str:
  if snow_depth >= SNOW_COVERED_DEPTH:
    return "snowCovered"
  if ice >= ICY_THRESHOLD:
    return "icy"
  last_day = recent[-24:]
  recent_precip = any(r.precip_type for r in last_day)
  last_two = recent[-48:]
  freezing_share = sum(1 for r in last_two if r.temperature <= 32)/len(last_two) if last_two else 0.0
  if temperature <= 32 and (recent_precip or freezing_share > 0.7):
    return "frozen"
  if sum(r.melt for r in last_day) > 0.001:
    return "thawing"
  if any(r.precip_type == "rain" for r in last_day) and ground_temperature > 32:
    return "muddy"
  return "dry"


def travel_impact(condition: str, depth: float) -> str:
  if condition == "snowCovered":
    if depth >= 12:
      return "severe"
    if depth >= 6:
      return "difficult"
    return "slowed"
  if condition == "icy":
    return "hazardous"
  if condition in ("muddy", "thawing"):
    return "slowed"
  return "normal"


def gameplay_effects(condition: str, depth: float, ice: float) -> tuple:
  effects = []
  if depth >= 24:
    effects.append("Deep snow: movement quartered without snowshoes")
  elif depth >= 12:
    effects.append("Heavy snow cover: movement halved")
  elif depth >= 4:
    effects.append("Snow cover: difficult terrain")
  if ice >= 0.25:
    effects.append("Glazed surfaces: footing checks required")
  elif ice >= ICY_THRESHOLD:
    effects.append("Slick ice: careful movement")
  if condition == "muddy":
    effects.append("Muddy ground: wagons and carts slowed")
  if condition == "thawing":
    effects.append("Thawing ground: soft footing")
  return tuple(effects)


class SnowAccumulationService:
  """Snow depth, ice and ground condition by hourly replay.

  Each season starts on its epoch day (mid-July by default). A season's
  replay begins from bare ground ``spinup_days`` before its epoch, so the
  two replays that meet at an epoch have walked the same weather for the
  whole spin-up, and the hourly pack loss has erased whatever the earlier
  one started with. The pack therefore carries across the season boundary
  with no step, even where it never melts out.

  Replay resumes from the nearest cached checkpoint in the same season, so
  incremental and full replays walk exactly the same hourly steps.
  """

  def __init__(self, weather, checkpoint_hours: int = 24, epoch_month: int = 7, epoch_day: int = 15,
               spinup_days: int = 120, cache: RegionCache = None):
    self.weather = weather
    self.checkpoint_hours = checkpoint_hours
    self.epoch_month = epoch_month
    self.epoch_day = epoch_day
    self.spinup_days = spinup_days
    self.cache = cache if cache is not None else RegionCache()
    weather.cache.add_listener(self._on_weather_cleared)

  def _on_weather_cleared(self, region_id):
    self.cache.clear(region_id)

  def clear_cache(self, region_id=None) -> int:
    return self.cache.clear(region_id)

  def epoch_for(self, date) -> GameDate:
    date = GameDate.coerce(date)
    epoch = GameDate(date.year, self.epoch_month, self.epoch_day, 0)
    if date < epoch:
      epoch = GameDate(date.year - 1, self.epoch_month, self.epoch_day, 0)
    return epoch

  def origin_for(self, date) -> GameDate:
    """First replayed hour for the season containing ``date``."""
    return self.epoch_for(date).advance(-self.spinup_days*HOURS_PER_DAY)

  def gaps(self, region_id: str) -> list:
    """Replay gaps recorded for a region, ordered by hour."""
    keys = sorted(self.cache.keys(region_id, "gap"))
    return [self.cache.get(region_id, "gap", k) for k in keys]

  def _hour_inputs(self, region, state: AccumulationState, hour_index: int):
    date = GameDate.from_hour_index(hour_index)
    try:
      s = self.weather.generate_weather(region, date)
      ptype = s.precipitation_type if s.precipitation else None
      return s.temperature, ptype, s.precipitation_intensity, s.humidity, False
    except Exception as e:
      previous = state.temperature if state.temperature is not None else 32.0
      gap = ReplayGap(region.id, hour_index, f"{type(e).__name__}: {e}", previous)
      self.cache.put(region.id, "gap", hour_index, gap)
      logger.warning(f"Replay gap for {region.id} at {date.isoformat()}: {gap.error}")
      return previous, None, None, 50.0, True

  def _advance(self, region, state: AccumulationState, target_index: int, epoch_index: int,
               origin_index: int, daylight: Daylight, checkpoint: bool) -> AccumulationState:
    # state.hour_index is the next hour to apply
    while state.hour_index <= target_index:
      h = state.hour_index
      temperature, ptype, intensity, humidity, gap = self._hour_inputs(region, state, h)
      daytime = daylight.is_daytime(GameDate.from_hour_index(h))
      state = step(state, region, temperature, ptype, intensity, humidity, daytime, gap)
      if checkpoint and (state.hour_index - origin_index) % self.checkpoint_hours == 0:
        self.cache.put(region.id, f"checkpoint:{epoch_index}", state.hour_index, state)
    return state

  def replay(self, region, date) -> AccumulationState:
    """Full replay from the season's spin-up origin, bypassing checkpoints."""
    date = GameDate.coerce(date)
    epoch = self.epoch_for(date).hour_index
    origin = self.origin_for(date).hour_index
    daylight = Daylight(region.climate.latitude)
    return self._advance(region, AccumulationState(origin), date.hour_index, epoch, origin, daylight, False)

  def state_at(self, region, date) -> AccumulationState:
    """Replay state after the hour at ``date``, resuming from a checkpoint."""
    date = GameDate.coerce(date)
    h = date.hour_index
    epoch = self.epoch_for(date).hour_index
    origin = self.origin_for(date).hour_index
    namespace = f"checkpoint:{epoch}"
    start = AccumulationState(origin)
    usable = [k for k in self.cache.keys(region.id, namespace) if k <= h + 1]
    if usable:
      start = self.cache.get(region.id, namespace, max(usable), start)
    daylight = Daylight(region.climate.latitude)
    return self._advance(region, start, h, epoch, origin, daylight, True)

  def to_snow_state(self, state: AccumulationState) -> SnowState:
    depth = round(state.snow_depth, 2)
    ice = round(state.ice, 2)
    temperature = state.temperature if state.temperature is not None else 32.0
    gt = state.ground_temperature if state.ground_temperature is not None else temperature
    condition = ground_condition(depth, ice, temperature, gt, state.recent)
    return SnowState(
      snow_depth=depth,
      ice_accumulation=ice,
      ground_condition=condition,
      snow_water_equivalent=round(state.swe, 2),
      ground_temperature=round(gt, 1),
      snow_age_hours=state.snow_age,
      replay_gaps=state.gaps,
      travel_impact=travel_impact(condition, depth),
      gameplay_effects=gameplay_effects(condition, depth, ice),
    )

  def get_accumulation(self, region, date) -> SnowState:
    date = GameDate.coerce(date)
    return self.cache.get_or_compute(
      region.id, "snow", date.hour_index, lambda: self.to_snow_state(self.state_at(region, date)))

  def recent_hours(self, region, date) -> Tuple[HourRecord, ...]:
    return self.state_at(region, date).recent
