from typing import Optional

from pydantic import BaseModel


class WeatherRow(BaseModel):
  region_id: str
  date: str
  hour_index: int
  temperature: int
  humidity: int
  dew_point: int
  pressure: float
  cloud_cover: int
  wind_speed: int
  wind_direction: str
  precipitation: bool
  precipitation_type: Optional[str]
  precipitation_intensity: Optional[str]
  condition: str
  feels_like: int
  pattern: str
  effects: str


class AccumulationRow(BaseModel):
  region_id: str
  date: str
  snow_depth: float
  ice_accumulation: float
  ground_condition: str
  drought: int
  flooding: int
  heat_wave: int
  cold_snap: int
  wildfire_risk: int


def weather_row(region_id: str, date, sample) -> dict:
  return WeatherRow(
    region_id=region_id,
    date=date.isoformat(),
    hour_index=date.hour_index,
    temperature=sample.temperature,
    humidity=sample.humidity,
    dew_point=sample.dew_point,
    pressure=sample.pressure,
    cloud_cover=sample.cloud_cover,
    wind_speed=sample.wind_speed,
    wind_direction=sample.wind_direction,
    precipitation=sample.precipitation,
    precipitation_type=sample.precipitation_type,
    precipitation_intensity=sample.precipitation_intensity,
    condition=sample.condition,
    feels_like=sample.feels_like,
    pattern=sample.pattern,
    effects=";".join(sample.effects),
  ).model_dump()


def accumulation_row(region_id: str, date, snow, env) -> dict:
  return AccumulationRow(
    region_id=region_id,
    date=date.isoformat(),
    snow_depth=snow.snow_depth,
    ice_accumulation=snow.ice_accumulation,
    ground_condition=snow.ground_condition,
    drought=env.drought.level,
    flooding=env.flooding.level,
    heat_wave=env.heat_wave.level,
    cold_snap=env.cold_snap.level,
    wildfire_risk=env.wildfire_risk.level,
  ).model_dump()
