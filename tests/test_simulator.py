import pytest

from realmweather.core.timebase import GameDate
from realmweather.errors import InvalidDate, UnknownRegion, UnknownTemplate
from realmweather.model.regions import region_from_template
from realmweather.model.settings import load_settings
from realmweather.simulator import WeatherSimulator


def test_query_by_id_or_region_object():
  sim = WeatherSimulator()
  region = sim.register_template("maritime-forest", "coast")
  by_id = sim.generate_weather("coast", {"year": 1, "month": 3, "day": 4, "hour": 9})
  by_obj = sim.generate_weather(region, "0001-03-04T09:00")
  assert by_id == by_obj


def test_invalid_date_fails_query():
  sim = WeatherSimulator()
  sim.register_template("maritime-forest", "coast")
  with pytest.raises(InvalidDate):
    sim.generate_weather("coast", {"year": 1, "month": 2, "day": 30})
  with pytest.raises(InvalidDate):
    sim.get_accumulation("coast", "not a date")


def test_unknown_region_and_template():
  sim = WeatherSimulator()
  with pytest.raises(UnknownRegion):
    sim.generate_weather("nowhere", GameDate(1, 1, 1))
  with pytest.raises(UnknownTemplate):
    sim.register_template("atlantis")


def test_clear_cache_per_region():
  sim = WeatherSimulator()
  sim.register_template("boreal-forest", "a")
  sim.register_template("temperate-desert", "b")
  d = GameDate(1, 8, 1, 12)
  sim.generate_weather("a", d)
  sim.generate_weather("b", d)
  assert sim.clear_cache("a") > 0
  stats = sim.get_stats()
  assert stats["cached_regions"] == ["b"]
  assert sim.clear_cache() > 0
  assert sim.get_stats()["weather_entries"] == 0


def test_reregistering_region_drops_stale_results():
  sim = WeatherSimulator()
  sim.register_region(region_from_template("boreal-forest", "x"))
  d = GameDate(1, 8, 1, 12)
  before = sim.generate_weather("x", d)
  sim.register_region(region_from_template("rainforest-basin", "x"))
  after = sim.generate_weather("x", d)
  assert after.temperature > before.temperature


def test_settings_overrides():
  settings = load_settings(precipitation_persistence_hours=4)
  sim = WeatherSimulator(settings)
  assert sim.weather.machine.persistence_hours == 4
  assert sim.snow.checkpoint_hours == 24
