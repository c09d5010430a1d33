from dataclasses import dataclass
import math

from .rng import RNG

BLOCK_DAYS = 4
BLOCK_HOURS = BLOCK_DAYS*24
BLEND_HOURS = 24


@dataclass(frozen=True)
class WeatherPattern:
  key: str
  name: str
  precipitation: float
  clear_skies: float
  wind: float
  temp_mod: float
  pressure: tuple
  humidity_boost: float


PATTERNS = {
  "HIGH_PRESSURE": WeatherPattern("HIGH_PRESSURE", "High Pressure", 0.1, 0.8, 0.6, 2.0, (30.2, 30.7), -8.0),
  "LOW_PRESSURE": WeatherPattern("LOW_PRESSURE", "Low Pressure", 0.7, 0.2, 1.3, -2.0, (29.2, 29.7), 10.0),
  "WARM_FRONT": WeatherPattern("WARM_FRONT", "Warm Front", 0.5, 0.4, 0.8, 4.0, (29.7, 30.0), 5.0),
  "COLD_FRONT": WeatherPattern("COLD_FRONT", "Cold Front", 0.6, 0.3, 1.5, -5.0, (29.4, 29.8), 0.0),
  "STABLE": WeatherPattern("STABLE", "Stable", 0.3, 0.6, 0.7, 0.0, (29.8, 30.1), 0.0),
}
PATTERN_KEYS = tuple(PATTERNS)


def moisture_factor(humidity_mean: float) -> float:
  return min(1.6, max(0.1, (humidity_mean - 20.0)/50.0))


def region_precip_multiplier(region, season: str) -> float:
  """Regional scaling of precipitation chance from special factors."""
  m = 1.0
  dry_air = region.factor("dryAir")
  if dry_air > 0:
    m *= 1 - 0.8*min(dry_air, 1.0)
  if region.factor("permanentIce") > 0.7:
    m *= 0.15
  cold_current = region.factor("coldOceanCurrent")
  if cold_current > 0:
    m *= 1 - 0.85*min(cold_current, 1.0)
  if region.flag("highRainfall"):
    m *= 1.6
  if region.flag("hasMonsoonSeason"):
    if season == "summer":
      m *= 2.5
    elif season == "winter":
      m *= 0.3
  return m


def pattern_weights(region) -> list:
  m = moisture_factor(region.climate.humidity.annual.mean)
  w = {
    "HIGH_PRESSURE": 1.5 - 0.5*m,
    "LOW_PRESSURE": 0.5 + 0.5*m,
    "WARM_FRONT": 1.0,
    "COLD_FRONT": 1.0,
    "STABLE": 1.0,
  }
  total = sum(w.values())
  return [w[k]/total for k in PATTERN_KEYS]


def block_of(hour_index: int) -> int:
  return hour_index // BLOCK_HOURS


def choose_pattern(region, block: int) -> WeatherPattern:
  rng = RNG.for_key(region.id, block, "pattern")
  return PATTERNS[rng.choice(PATTERN_KEYS, p=pattern_weights(region))]


def blended_modifier(current: WeatherPattern, upcoming: WeatherPattern, hour_index: int) -> float:
  # Ease into the next block's modifier over the last day of the block
  pos = hour_index - block_of(hour_index)*BLOCK_HOURS
  start = BLOCK_HOURS - BLEND_HOURS
  if pos < start:
    return current.temp_mod
  t = (pos - start)/BLEND_HOURS
  w = (1 - math.cos(math.pi*t))/2
  return current.temp_mod + (upcoming.temp_mod - current.temp_mod)*w


def pressure_base(region, block: int, pattern: WeatherPattern) -> float:
  lo, hi = pattern.pressure
  return lo + (hi - lo)*RNG.for_key(region.id, block, "pressure").random()
