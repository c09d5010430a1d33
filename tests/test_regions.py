import pytest

from realmweather.errors import UnknownTemplate
from realmweather.model.regions import (
  GROUND_TYPES,
  get_template,
  load_templates,
  parse_templates,
  region_from_parameters,
  region_from_template,
)


def test_packaged_templates_load_with_complete_profiles():
  templates = load_templates()
  assert len(templates) >= 12
  for tid, t in templates.items():
    region = t.to_region()
    assert region.id == tid
    assert region.ground_type in GROUND_TYPES
    assert region.climate.defaulted_fields == (), tid


def test_unknown_template_raises():
  with pytest.raises(UnknownTemplate):
    get_template("no-such-biome")


def test_region_factors_and_flags():
  region = region_from_parameters("r1", {"specialFactors": {"dryAir": 0.6, "highRainfall": True, "groundType": "lava"}})
  assert region.factor("dryAir") == 0.6
  assert region.flag("highRainfall")
  assert not region.flag("isOcean")
  assert region.ground_type == "soil"


def test_region_from_template_uses_band_and_biome():
  region = region_from_template("boreal-forest", "north-woods")
  assert region.id == "north-woods"
  assert region.latitude_band == "boreal"
  assert region.biome


def test_parse_templates_flattens_bands():
  raw = {"polar": {"a": {"name": "A", "parameters": {}}}, "tropical": {"b": {"parameters": {}}}}
  out = parse_templates(raw)
  assert out["a"].latitude_band == "polar"
  assert out["b"].name == "b"
