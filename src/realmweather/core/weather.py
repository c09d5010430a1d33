import logging
import math

from ..model.samples import WeatherSample
from ..runtime.state import RegionCache
from .patterns import (
  block_of,
  blended_modifier,
  choose_pattern,
  moisture_factor,
  pressure_base,
  region_precip_multiplier,
)
from .precipitation import PERSISTENCE_HOURS, TRANSITION_LOOKBACK_HOURS, PrecipitationStateMachine
from .rng import RNG
from .seasons import season_for_month, seasonal_max, seasonal_value
from .timebase import GameDate

logger = logging.getLogger(__name__)

TEMP_RANGE = (-100, 150)
PRESSURE_RANGE = (28.5, 31.5)
COMPASS = ("N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
           "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW")

SNOW_CONDITIONS = {"light": "Light Snow", "moderate": "Snow", "heavy": "Heavy Snow"}
RAIN_CONDITIONS = {"light": "Light Rain", "moderate": "Rain", "heavy": "Heavy Rain"}
VISIBILITY = {
  "Fog": 0.25, "Mist": 2.0, "Blizzard": 0.1, "Thunderstorm": 1.5,
  "Heavy Snow": 0.5, "Heavy Rain": 1.5, "Snow": 2.0, "Freezing Rain": 2.0, "Sleet": 2.5,
  "Rain": 4.0, "Light Snow": 4.0, "Light Rain": 6.0, "Overcast": 8.0,
}


def clamp(v, lo, hi):
  return max(lo, min(hi, v))


def heat_index(t: float, rh: float) -> float:
  # Rothfusz regression (NWS), degrees F and percent
  return (-42.379 + 2.04901523*t + 10.14333127*rh - 0.22475541*t*rh
          - 0.00683783*t*t - 0.05481717*rh*rh + 0.00122874*t*t*rh
          + 0.00085282*t*rh*rh - 0.00000199*t*t*rh*rh)


def wind_intensity(speed: float) -> str:
  if speed < 5:
    return "Calm"
  if speed < 13:
    return "Light"
  if speed < 25:
    return "Moderate"
  if speed < 39:
    return "Strong"
  if speed < 55:
    return "Gale"
  return "Storm"


def sky_condition(cloud_cover: int) -> str:
  if cloud_cover < 20:
    return "Clear"
  if cloud_cover < 50:
    return "Partly Cloudy"
  if cloud_cover < 80:
    return "Cloudy"
  return "Overcast"


def weather_effects(temperature, wind_speed, condition, intensity=None, ptype=None) -> tuple:
  effects = []
  if temperature <= 0:
    effects.append("Extreme Cold")
  elif temperature <= 20:
    effects.append("Severe Cold")
  if temperature >= 100:
    effects.append("Extreme Heat")
  elif temperature >= 90:
    effects.append("Severe Heat")
  if wind_speed >= 40:
    effects.append("High Winds")
  elif wind_speed >= 25:
    effects.append("Strong Winds")
  if intensity == "heavy" and ptype == "snow":
    effects.append("Heavy Snow")
  if intensity == "heavy" and ptype == "rain":
    effects.append("Heavy Rain")
  if ptype == "freezing-rain":
    effects.append("Freezing Rain")
  if condition == "Fog":
    effects.append("Heavy Fog")
  if condition == "Thunderstorm":
    effects.append("Lightning")
  if condition == "Blizzard":
    effects.append("Whiteout")
  return tuple(effects)


class WeatherGenerator:
  """Deterministic hourly weather for a region.

  Every random draw comes from a generator seeded by (region id, linear
  index, stream), so a sample depends only on the region and the date.
  Results are memoized per region; call clear_cache after changing a
  region's climate or special factors.
  """

  def __init__(self, persistence_hours: int = PERSISTENCE_HOURS,
               transition_lookback_hours: int = TRANSITION_LOOKBACK_HOURS, cache: RegionCache = None):
    self.machine = PrecipitationStateMachine(persistence_hours, transition_lookback_hours)
    self.cache = cache if cache is not None else RegionCache()

  def clear_cache(self, region_id=None) -> int:
    return self.cache.clear(region_id)

  # temperature

  def _diurnal(self, region, day_of_year: float, hour: int) -> float:
    variance = seasonal_value(region.climate.temperature, "variance", day_of_year)
    amp = clamp(variance*0.5, 2.0, 15.0)
    amp *= 1 + 0.5*clamp(region.factor("highDiurnalVariation"), 0.0, 1.0)
    amp *= 1 - 0.4*clamp(region.climate.maritime_influence, 0.0, 1.0)
    # warmest mid-afternoon
    return amp*math.cos(2*math.pi*(hour - 15)/24)

  def baseline_temperature(self, region, hour_index: int) -> float:
    """Seasonal mean plus diurnal curve, without weather noise."""
    date = GameDate.from_hour_index(hour_index)
    doy = date.day_of_year + date.hour/24
    mean = seasonal_value(region.climate.temperature, "mean", doy)
    return mean + self._diurnal(region, doy, date.hour)

  def _knot(self, region, day_index: int) -> float:
    def compute():
      doy = GameDate.from_day_index(day_index).day_of_year + 0.5
      variance = seasonal_value(region.climate.temperature, "variance", doy)
      amp = min(variance*0.3, 6.0)*(1 - 0.3*clamp(region.climate.maritime_influence, 0.0, 1.0))
      return RNG.for_key(region.id, day_index, "anomaly").uniform(-amp, amp)
    return self.cache.get_or_compute(region.id, "knot", day_index, compute)

  def _anomaly(self, region, hour_index: int) -> float:
    # Multi-day swing: one knot per day at noon, cosine-eased between knots
    day_index, hour = divmod(hour_index, 24)
    if hour >= 12:
      d0, t = day_index, (hour - 12)/24
    else:
      d0, t = day_index - 1, (hour + 12)/24
    k0, k1 = self._knot(region, d0), self._knot(region, d0 + 1)
    return k0 + (k1 - k0)*(1 - math.cos(math.pi*t))/2

  def _pattern_for_block(self, region, block: int):
    return self.cache.get_or_compute(region.id, "pattern", block, lambda: choose_pattern(region, block))

  def pattern(self, region, hour_index: int):
    return self._pattern_for_block(region, block_of(hour_index))

  def _pattern_modifier(self, region, hour_index: int) -> float:
    block = block_of(hour_index)
    return blended_modifier(
      self._pattern_for_block(region, block), self._pattern_for_block(region, block + 1), hour_index)

  def _temperature(self, region, hour_index: int) -> int:
    jitter = RNG.for_key(region.id, hour_index, "temperature").bounded_normal(0.0, 0.8, 2.0)
    t = (self.baseline_temperature(region, hour_index)
         + self._anomaly(region, hour_index)
         + self._pattern_modifier(region, hour_index)
         + jitter)
    return int(clamp(round(t), *TEMP_RANGE))

  def temperature(self, region, hour_index: int) -> int:
    return self.cache.get_or_compute(
      region.id, "temperature", hour_index, lambda: self._temperature(region, hour_index))

  # precipitation type

  def precipitation_state(self, region, date):
    """Precipitation-type state at an hour, rebuilt from trailing temperatures."""
    h = GameDate.coerce(date).hour_index
    n = self.machine.history_hours
    return self.machine.state([self.temperature(region, i) for i in range(h - n, h + 1)])

  def precipitation_chance(self, region, date: GameDate, pattern) -> float:
    doy = date.day_of_year + date.hour/24
    hum_mean = seasonal_value(region.climate.humidity, "mean", doy)
    chance = pattern.precipitation*moisture_factor(hum_mean)
    chance *= region_precip_multiplier(region, season_for_month(date.month))
    if 14 <= date.hour <= 20:
      chance *= 1.3
    return min(chance, 0.95)

  def _candidate(self, region, hour_index: int):
    # what the phase and the hourly draw would let fall, before settling
    def compute():
      date = GameDate.from_hour_index(hour_index)
      state = self.precipitation_state(region, date)
      if not state.allows_precipitation:
        return None
      draw = RNG.for_key(region.id, hour_index, "precipitation").random()
      if draw >= self.precipitation_chance(region, date, self.pattern(region, hour_index)):
        return None
      return state.phase
    return self.cache.get_or_compute(region.id, "candidate", hour_index, compute)

  def precipitation_type(self, region, date):
    """Type of precipitation falling at an hour, or None when dry."""
    h = GameDate.coerce(date).hour_index
    lookback = self.machine.transition_lookback_hours
    earlier = (self._candidate(region, i) for i in range(h - 1, h - lookback - 1, -1))
    return self.machine.settle(self._candidate(region, h), self.temperature(region, h), earlier)

  # samples

  def generate_weather(self, region, date) -> WeatherSample:
    date = GameDate.coerce(date)
    return self.cache.get_or_compute(
      region.id, "sample", date.hour_index, lambda: self._generate(region, date))

  def _generate(self, region, date: GameDate) -> WeatherSample:
    h = date.hour_index
    doy = date.day_of_year + date.hour/24
    climate = region.climate
    rng = RNG.for_key(region.id, h, "sample")
    r_hum, r_dew, r_intensity, r_storm, r_severity, r_cloud, r_wind, r_dir = (
      rng.random() for _ in range(8))

    temperature = self.temperature(region, h)
    block = block_of(h)
    pattern = self.pattern(region, h)

    hum_mean = seasonal_value(climate.humidity, "mean", doy)
    hum_var = seasonal_value(climate.humidity, "variance", doy)
    day_offset = self.cache.get_or_compute(
      region.id, "humidity", date.day_index,
      lambda: RNG.for_key(region.id, date.day_index, "humidity").uniform(-0.3, 0.3))
    humidity = (hum_mean + day_offset*hum_var + pattern.humidity_boost
                - min(8.0, hum_var*0.5)*math.cos(2*math.pi*(date.hour - 15)/24)
                + (r_hum - 0.5)*0.2*hum_var)

    ptype = self.precipitation_type(region, date)
    precipitation = ptype is not None
    intensity = None
    if precipitation:
      intensity = "light" if r_intensity < 0.4 else "moderate" if r_intensity < 0.85 else "heavy"
      humidity = max(humidity, 80.0 if intensity == "heavy" else 72.0)
    humidity = int(clamp(round(humidity), 0, 100))

    dp = seasonal_value(climate.dew_point, "mean", doy) + (r_dew - 0.5)*seasonal_value(climate.dew_point, "variance", doy)
    if precipitation:
      dp = max(dp, temperature - 3)
    dew_point = int(round(dp))
    dp_max = seasonal_max(climate.dew_point, doy)
    if dp_max is not None:
      dew_point = min(dew_point, math.floor(dp_max))
    dew_point = min(dew_point, temperature)

    pressure = self.cache.get_or_compute(
      region.id, "pressure", block, lambda: pressure_base(region, block, pattern))
    pressure += 0.05*math.sin(2*math.pi*date.hour/12)
    if precipitation:
      pressure -= 0.1 if intensity == "heavy" else 0.05
    pressure = round(clamp(pressure, *PRESSURE_RANGE), 2)

    if precipitation:
      cloud = 85 + r_cloud*15
    else:
      cloud = (1 - pattern.clear_skies)*80 + (humidity - 50)*0.4 + (r_cloud - 0.5)*30
    cloud_cover = int(clamp(round(cloud), 0, 100))

    speed = (5 + r_wind*10)*pattern.wind
    speed *= (1 + 0.3*clamp(climate.maritime_influence, 0.0, 1.0))*(0.8 + 0.4*clamp(climate.terrain_roughness, 0.0, 1.0))
    speed *= 1 + region.factor("highWinds")
    if intensity == "heavy":
      speed *= 1.3
    wind_speed = int(clamp(round(speed), 0, 150))
    prevailing = self.cache.get_or_compute(
      region.id, "prevailing", block, lambda: int(RNG.for_key(region.id, block, "wind").random()*16))
    wind_direction = COMPASS[(prevailing + int(r_dir*5) - 2) % 16]

    severity = None
    if ptype == "snow":
      condition = SNOW_CONDITIONS[intensity]
      if intensity == "heavy" and wind_speed >= 35:
        condition = "Blizzard"
    elif ptype == "rain":
      condition = RAIN_CONDITIONS[intensity]
      storms = clamp(region.factor("thunderstorms"), 0.0, 1.0)
      if condition == "Heavy Rain" and r_storm < storms:
        condition = "Thunderstorm"
        severity = "severe" if r_severity < storms*0.2 else "strong" if r_severity < storms*0.5 else "normal"
    elif ptype == "sleet":
      condition = "Sleet"
    elif ptype == "freezing-rain":
      condition = "Freezing Rain"
    else:
      fog_at = 90 if region.flag("hasFog") else 95
      if humidity >= fog_at and wind_speed < 8 and temperature - dew_point <= 3:
        condition = "Fog"
      elif humidity >= fog_at - 5 and wind_speed < 10:
        condition = "Mist"
      else:
        condition = sky_condition(cloud_cover)

    feels_like = temperature
    if temperature >= 80:
      hi = heat_index(temperature, humidity)
      if hi - temperature >= 2:
        feels_like = int(round(hi))

    return WeatherSample(
      temperature=temperature,
      humidity=humidity,
      dew_point=dew_point,
      pressure=pressure,
      cloud_cover=cloud_cover,
      wind_speed=wind_speed,
      wind_direction=wind_direction,
      wind_intensity=wind_intensity(wind_speed),
      precipitation=precipitation,
      precipitation_type=ptype,
      precipitation_intensity=intensity,
      condition=condition,
      effects=weather_effects(temperature, wind_speed, condition, intensity, ptype),
      feels_like=feels_like,
      pattern=pattern.key,
      thunderstorm_severity=severity,
      visibility=VISIBILITY.get(condition, 10.0),
    )

  def hourly_series(self, region, start, hours: int):
    start = GameDate.coerce(start)
    for i in range(hours):
      d = start.advance(i)
      yield d, self.generate_weather(region, d)
