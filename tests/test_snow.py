import pytest

from realmweather.core.daylight import Daylight
from realmweather.core.snow import (
  PACK_LOSS_RATE,
  PACKED_RATIO,
  SNOW_TO_WATER,
  AccumulationState,
  SnowAccumulationService,
  ground_condition,
  step,
  sticking_factor,
)
from realmweather.core.timebase import GameDate, hour_range
from realmweather.core.weather import WeatherGenerator
from realmweather.errors import ReplayGap
from realmweather.model.regions import region_from_parameters, region_from_template
from realmweather.model.samples import GROUND_CONDITIONS


def _cold_region(region_id="cold-valley"):
  season = lambda mean: {"mean": mean, "variance": 10}
  return region_from_parameters(region_id, {
    "latitude": 55,
    "temperatureProfile": {
      "winter": season(20), "spring": season(38), "summer": season(62), "fall": season(40),
      "annual": {"mean": 40, "variance": 25},
    },
    "humidityProfile": {
      "winter": season(78), "spring": season(70), "summer": season(65), "fall": season(72),
      "annual": {"mean": 72, "variance": 12},
    },
    "dewPointProfile": {
      "winter": {"mean": 12, "variance": 8, "max": 30},
      "spring": {"mean": 28, "variance": 8, "max": 45},
      "summer": {"mean": 50, "variance": 8, "max": 62},
      "fall": {"mean": 30, "variance": 8, "max": 48},
      "annual": {"mean": 30, "variance": 15, "max": 62},
    },
  })


class FlakyWeather(WeatherGenerator):
  def __init__(self, bad_hours):
    super().__init__()
    self.bad_hours = set(bad_hours)

  def generate_weather(self, region, date):
    if GameDate.coerce(date).hour_index in self.bad_hours:
      raise RuntimeError("sensor offline")
    return super().generate_weather(region, date)


def test_sticking_factor_ramps_down():
  assert sticking_factor(30) == 1.0
  assert sticking_factor(38) == 0.0
  assert 0 < sticking_factor(35) < 1


def test_step_accumulates_and_melts():
  region = region_from_template("boreal-forest")
  s = AccumulationState(0, ground_temperature=25.0)
  s = step(s, region, 20, "snow", "heavy", 80, False)
  assert s.snow_depth > 0.9
  assert s.swe > 0
  assert s.hour_index == 1
  depth = s.snow_depth
  s = step(s, region, 45, "rain", "moderate", 90, True)
  assert s.snow_depth < depth
  assert s.recent[-1].melt > 0


def test_ground_condition_precedence():
  assert ground_condition(2.0, 0.5, 20, 20, ()) == "snowCovered"
  assert ground_condition(0.0, 0.2, 20, 20, ()) == "icy"
  assert ground_condition(0.0, 0.0, 60, 60, ()) == "dry"


def test_epoch_is_mid_july_and_replay_starts_before_it():
  snow = SnowAccumulationService(WeatherGenerator())
  assert snow.epoch_for(GameDate(5, 1, 10)) == GameDate(4, 7, 15)
  assert snow.epoch_for(GameDate(5, 7, 15, 3)) == GameDate(5, 7, 15)
  assert snow.origin_for(GameDate(5, 7, 15, 3)) == GameDate(5, 3, 17)
  assert SnowAccumulationService(WeatherGenerator(), spinup_days=30).origin_for(GameDate(5, 8, 1)) == GameDate(5, 6, 15)


def test_incremental_replay_matches_full_replay():
  region = _cold_region()
  incremental = SnowAccumulationService(WeatherGenerator())
  for d in (GameDate(2, 12, 1), GameDate(2, 12, 20, 7), GameDate(3, 1, 5, 13), GameDate(3, 1, 5, 14)):
    incremental.state_at(region, d)
  full = SnowAccumulationService(WeatherGenerator())
  for d in (GameDate(3, 1, 5, 14), GameDate(3, 1, 6, 2), GameDate(2, 12, 20, 7)):
    assert incremental.state_at(region, d) == full.replay(region, d)


def test_january_snowpack_builds_and_stays_non_negative():
  region = _cold_region()
  snow = SnowAccumulationService(WeatherGenerator())
  states = [snow.get_accumulation(region, d) for d in hour_range(GameDate(3, 1, 1), 24*31)]
  assert all(s.snow_depth >= 0 and s.ice_accumulation >= 0 for s in states)
  assert all(s.ground_condition in GROUND_CONDITIONS for s in states)
  assert any(s.ground_condition == "snowCovered" for s in states)
  assert max(s.snow_depth for s in states) >= 0.5


def test_tropics_never_accumulate():
  region = region_from_template("rainforest-basin")
  snow = SnowAccumulationService(WeatherGenerator())
  s = snow.get_accumulation(region, GameDate(1, 2, 1, 12))
  assert s.snow_depth == 0
  assert s.ice_accumulation == 0


def test_replay_gap_substitutes_previous_hour():
  region = _cold_region("gappy")
  bad = GameDate(3, 1, 2, 5).hour_index
  snow = SnowAccumulationService(FlakyWeather([bad]))
  state = snow.get_accumulation(region, GameDate(3, 1, 3))
  assert state.replay_gaps == 1
  gaps = snow.gaps(region.id)
  assert len(gaps) == 1
  assert isinstance(gaps[0], ReplayGap)
  assert gaps[0].hour_index == bad
  assert "sensor offline" in gaps[0].error


def test_clearing_weather_cache_clears_snow_cache():
  region = _cold_region()
  weather = WeatherGenerator()
  snow = SnowAccumulationService(weather)
  snow.get_accumulation(region, GameDate(2, 8, 1))
  assert snow.cache.entry_count(region.id) > 0
  weather.clear_cache(region.id)
  assert snow.cache.entry_count(region.id) == 0


def test_old_snow_settles_to_packed_density():
  region = region_from_template("boreal-forest")
  s = AccumulationState(0, snow_depth=10.0, swe=10.0/SNOW_TO_WATER, ground_temperature=20.0)
  for _ in range(120):
    s = step(s, region, 20, None, None, 80, False)
  assert s.snow_depth == pytest.approx(s.swe*PACKED_RATIO)
  assert s.snow_depth < 5.0


def test_depth_is_bounded_under_endless_heavy_snow():
  region = region_from_template("tundra-plain")
  ceiling = (1 - PACK_LOSS_RATE)/PACK_LOSS_RATE
  s = AccumulationState(0, ground_temperature=10.0)
  for _ in range(5000):
    s = step(s, region, 10, "snow", "heavy", 85, False)
    assert s.snow_depth < ceiling
  assert s.snow_depth > 0.95*ceiling


@pytest.mark.parametrize("template_id", ["tundra-plain", "ice-sheet"])
def test_pack_carries_across_season_boundary(template_id):
  region = region_from_template(template_id)
  weather = WeatherGenerator()
  snow = SnowAccumulationService(weather)
  last_hour, first_hour = GameDate(3, 7, 14, 23), GameDate(3, 7, 15, 0)
  before = snow.state_at(region, last_hour)
  after = snow.state_at(region, first_hour)
  s = weather.generate_weather(region, first_hour)
  daytime = Daylight(region.climate.latitude).is_daytime(first_hour)
  carried = step(before, region, s.temperature, s.precipitation_type, s.precipitation_intensity, s.humidity, daytime)
  assert carried.snow_depth == pytest.approx(after.snow_depth, abs=0.01)
  assert carried.ice == pytest.approx(after.ice, abs=0.01)
  assert after.hour_index == before.hour_index + 1


@pytest.mark.parametrize("template_id", ["tundra-plain", "ice-sheet"])
def test_permafrost_peak_depth_stays_plausible(template_id):
  region = region_from_template(template_id)
  snow = SnowAccumulationService(WeatherGenerator())
  depths = [snow.get_accumulation(region, d).snow_depth for d in hour_range(GameDate(2, 7, 15, 12), 24*365)
            if d.hour == 12]
  assert len(depths) == 365
  assert all(d >= 0 for d in depths)
  assert max(depths) < 150
