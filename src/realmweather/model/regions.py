from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
import yaml

from ..errors import UnknownTemplate
from .profiles import ClimateProfile, build_profile

TEMPLATES_PATH = Path(__file__).parent.parent / "config" / "region_templates.yaml"

GROUND_TYPES = ("permafrost", "rock", "clay", "soil", "peat", "sand", "water")


class Region(BaseModel):
  model_config = ConfigDict(frozen=True)

  id: str
  name: str = ""
  latitude_band: str = "temperate"
  climate: ClimateProfile
  special_factors: Dict[str, Union[bool, float, str]] = Field(default_factory=dict)
  biome: str = ""

  def factor(self, name: str, default: float = 0.0) -> float:
    v = self.special_factors.get(name)
    if isinstance(v, bool):
      return 1.0 if v else 0.0
    if isinstance(v, (int, float)):
      return float(v)
    return default

  def flag(self, name: str) -> bool:
    return self.factor(name) > 0

  @property
  def ground_type(self) -> str:
    gt = self.special_factors.get("groundType")
    return gt if gt in GROUND_TYPES else "soil"


class RegionTemplate(BaseModel):
  model_config = ConfigDict(frozen=True)

  id: str
  latitude_band: str
  name: str
  description: str = ""
  parameters: dict
  default_biome: str = ""

  def to_region(self, region_id: Optional[str] = None, name: Optional[str] = None) -> Region:
    return region_from_parameters(
      region_id or self.id,
      self.parameters,
      latitude_band=self.latitude_band,
      name=name or self.name,
      biome=self.default_biome,
    )


def region_from_parameters(region_id: str, params: dict, latitude_band: str = "temperate",
                           name: str = "", biome: str = "") -> Region:
  return Region(
    id=region_id,
    name=name or region_id,
    latitude_band=latitude_band,
    climate=build_profile(params, region_id),
    special_factors=dict(params.get("specialFactors") or {}),
    biome=biome,
  )


def parse_templates(raw: dict) -> Dict[str, RegionTemplate]:
  """Flatten band -> template id -> template into a dict keyed by template id."""
  out = {}
  for band, templates in (raw or {}).items():
    for tid, t in (templates or {}).items():
      out[tid] = RegionTemplate(
        id=tid,
        latitude_band=band,
        name=t.get("name", tid),
        description=t.get("description", ""),
        parameters=t.get("parameters") or {},
        default_biome=t.get("defaultBiome", ""),
      )
  return out


@lru_cache(maxsize=4)
def _load(path: str) -> Dict[str, RegionTemplate]:
  raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
  return parse_templates(raw)


def load_templates(path: Optional[str] = None) -> Dict[str, RegionTemplate]:
  return dict(_load(str(path or TEMPLATES_PATH)))


def get_template(template_id: str, path: Optional[str] = None) -> RegionTemplate:
  templates = load_templates(path)
  if template_id not in templates:
    raise UnknownTemplate(template_id)
  return templates[template_id]


def region_from_template(template_id: str, region_id: Optional[str] = None) -> Region:
  return get_template(template_id).to_region(region_id)
