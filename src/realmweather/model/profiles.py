import logging
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ..errors import MissingProfileField

logger = logging.getLogger(__name__)

SEASONS = ("winter", "spring", "summer", "fall")

# Temperate fallback used for any field absent from authoring data
DEFAULT_TABLES = {
  "temperature": {
    "winter": {"mean": 35.0, "variance": 12.0},
    "spring": {"mean": 55.0, "variance": 12.0},
    "summer": {"mean": 75.0, "variance": 10.0},
    "fall": {"mean": 55.0, "variance": 12.0},
    "annual": {"mean": 55.0, "variance": 20.0},
  },
  "humidity": {
    "winter": {"mean": 70.0, "variance": 12.0},
    "spring": {"mean": 65.0, "variance": 15.0},
    "summer": {"mean": 60.0, "variance": 15.0},
    "fall": {"mean": 65.0, "variance": 15.0},
    "annual": {"mean": 65.0, "variance": 15.0},
  },
  "dew_point": {
    "winter": {"mean": 25.0, "variance": 8.0, "max": 40.0},
    "spring": {"mean": 42.0, "variance": 10.0, "max": 58.0},
    "summer": {"mean": 60.0, "variance": 8.0, "max": 70.0},
    "fall": {"mean": 44.0, "variance": 10.0, "max": 60.0},
    "annual": {"mean": 43.0, "variance": 12.0, "max": 70.0},
  },
}

_AUTHORING_KEYS = {
  "temperature": "temperatureProfile",
  "humidity": "humidityProfile",
  "dew_point": "dewPointProfile",
}


class SeasonStats(BaseModel):
  model_config = ConfigDict(frozen=True)

  mean: float
  variance: float
  max: Optional[float] = None


class ClimateTable(BaseModel):
  model_config = ConfigDict(frozen=True)

  winter: SeasonStats
  spring: SeasonStats
  summer: SeasonStats
  fall: SeasonStats
  annual: SeasonStats

  def season(self, name: str) -> SeasonStats:
    return getattr(self, name)


class ClimateProfile(BaseModel):
  model_config = ConfigDict(frozen=True)

  temperature: ClimateTable
  humidity: ClimateTable
  dew_point: ClimateTable
  latitude: float = 45.0
  elevation: float = 0.0
  maritime_influence: float = 0.5
  terrain_roughness: float = 0.5
  defaulted_fields: Tuple[MissingProfileField, ...] = ()

  @classmethod
  def temperate(cls) -> "ClimateProfile":
    return build_profile({})


def _derive_annual(seasons: dict, table: str) -> dict:
  means = [seasons[s]["mean"] for s in SEASONS]
  variances = [seasons[s]["variance"] for s in SEASONS]
  out = {
    "mean": sum(means)/4.0,
    "variance": sum(variances)/4.0 + (max(means) - min(means))/2.0,
  }
  if table == "dew_point":
    out["max"] = max(seasons[s]["max"] for s in SEASONS)
  return out


def build_table(table: str, raw: Optional[dict], missing: list) -> ClimateTable:
  raw = raw if isinstance(raw, dict) else {}
  defaults = DEFAULT_TABLES[table]
  seasons = {}
  for season in SEASONS:
    entry = raw.get(season) if isinstance(raw.get(season), dict) else {}
    stats = {}
    for attr, default in defaults[season].items():
      v = entry.get(attr)
      if v is None:
        missing.append(MissingProfileField(table, season, attr, default))
        v = default
      stats[attr] = float(v)
    if table != "dew_point" and entry.get("max") is not None:
      stats["max"] = float(entry["max"])
    seasons[season] = stats
  annual = raw.get("annual") if isinstance(raw.get("annual"), dict) else None
  if annual is None or annual.get("mean") is None:
    derived = _derive_annual(seasons, table)
    missing.append(MissingProfileField(table, "annual", "mean", derived["mean"]))
    seasons["annual"] = derived
  else:
    derived = _derive_annual(seasons, table)
    seasons["annual"] = {
      "mean": float(annual["mean"]),
      "variance": float(annual.get("variance", derived["variance"])),
    }
    if table == "dew_point":
      seasons["annual"]["max"] = float(annual.get("max", derived["max"]))
  return ClimateTable(**{k: SeasonStats(**v) for k, v in seasons.items()})


def build_profile(params: dict, region_id: str = "") -> ClimateProfile:
  """Build a climate profile from authoring parameters, defaulting missing fields."""
  missing = []
  tables = {name: build_table(name, params.get(key), missing) for name, key in _AUTHORING_KEYS.items()}
  for m in missing:
    logger.warning(f"Region {region_id or '?'}: {m.table}.{m.season}.{m.attribute} missing, using {m.default:.1f}")
  return ClimateProfile(
    **tables,
    latitude=float(params.get("latitude", 45.0)),
    elevation=float(params.get("elevation", 0.0)),
    maritime_influence=float(params.get("maritimeInfluence", 0.5)),
    terrain_roughness=float(params.get("terrainRoughness", 0.5)),
    defaulted_fields=tuple(missing),
  )
