from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

GROUND_CONDITIONS = ("dry", "muddy", "thawing", "frozen", "icy", "snowCovered")


class WeatherSample(BaseModel):
  model_config = ConfigDict(frozen=True)

  temperature: int
  humidity: int
  dew_point: int
  pressure: float
  cloud_cover: int
  wind_speed: int
  wind_direction: str
  wind_intensity: str
  precipitation: bool
  precipitation_type: Optional[str] = None
  precipitation_intensity: Optional[str] = None
  condition: str
  effects: Tuple[str, ...] = ()
  feels_like: int
  pattern: str = "STABLE"
  thunderstorm_severity: Optional[str] = None
  visibility: float = 10.0


class SnowState(BaseModel):
  model_config = ConfigDict(frozen=True)

  snow_depth: float
  ice_accumulation: float
  ground_condition: str
  snow_water_equivalent: float = 0.0
  ground_temperature: float = 32.0
  snow_age_hours: int = 0
  replay_gaps: int = 0
  travel_impact: str = "normal"
  gameplay_effects: Tuple[str, ...] = ()


class HazardLevel(BaseModel):
  model_config = ConfigDict(frozen=True)

  level: int
  name: str
  description: str = ""
  driver: float = 0.0


class EnvironmentalState(BaseModel):
  model_config = ConfigDict(frozen=True)

  drought: HazardLevel
  flooding: HazardLevel
  heat_wave: HazardLevel
  cold_snap: HazardLevel
  wildfire_risk: HazardLevel

  @property
  def active_alerts(self) -> Tuple[str, ...]:
    out = []
    for key in ("drought", "flooding", "heat_wave", "cold_snap", "wildfire_risk"):
      h = getattr(self, key)
      if h.level > 0:
        out.append(f"{key}: {h.name}")
    return tuple(out)
