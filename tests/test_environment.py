import pytest

from realmweather.core.environment import (
  LEVEL_NAMES,
  SIGNIFICANT_SNOWPACK,
  STREAK_THRESHOLDS,
  WILDFIRE_THRESHOLDS,
  Climatology,
  hazard,
  level_for,
)
from realmweather.core.timebase import GameDate, hour_range
from realmweather.model.samples import SnowState
from realmweather.simulator import WeatherSimulator
from realmweather.validation.checks import flood_alert_violations


@pytest.fixture(scope="module")
def sim():
  return WeatherSimulator()


def test_level_for_is_monotonic():
  values = [x/2 for x in range(0, 200)]
  levels = [level_for(v, WILDFIRE_THRESHOLDS) for v in values]
  assert levels == sorted(levels)
  assert level_for(0, STREAK_THRESHOLDS) == 0
  assert level_for(3, STREAK_THRESHOLDS) == 1
  assert level_for(100, STREAK_THRESHOLDS) == 4


def test_hazard_names_and_clamping():
  h = hazard("flooding", 7, 3.14159)
  assert h.level == 4
  assert h.name == LEVEL_NAMES["flooding"][4]
  assert h.driver == 3.14
  assert hazard("drought", -1).name == LEVEL_NAMES["drought"][0]


def test_drought_thresholds_scale_with_dry_spell():
  wet = Climatology(wet_day_fraction=0.5, precip_rate=0.3, heat_threshold=5, cold_threshold=-5)
  arid = Climatology(wet_day_fraction=0.05, precip_rate=0.01, heat_threshold=5, cold_threshold=-5)
  assert wet.drought_thresholds() == (7, 14, 21, 30)
  assert arid.drought_thresholds() == (60, 120, 200, 300)


def test_conditions_have_all_hazards(sim):
  region = sim.register_template("continental-prairie")
  env = sim.get_environmental_conditions(region.id, GameDate(1, 7, 20, 14))
  for kind in LEVEL_NAMES:
    h = getattr(env, kind)
    assert 0 <= h.level <= 4
    assert h.name == LEVEL_NAMES[kind][h.level]
  assert env.heat_wave.level == level_for(env.heat_wave.driver, STREAK_THRESHOLDS)
  assert env.cold_snap.level == level_for(env.cold_snap.driver, STREAK_THRESHOLDS)


def test_dry_days_count_up_or_reset(sim):
  region = sim.register_template("tropical-desert")
  prev = None
  for d in range(1, 60):
    date = GameDate.from_day_index(GameDate(2, 3, 1).day_index + d, 23)
    n = sim.environment.dry_days(region, date)
    if prev is not None:
      assert n == 0 or n == prev + 1 or n == prev
    prev = n
  assert prev >= 0


@pytest.mark.parametrize("template_id", ["polar-seas", "peatland-muskeg"])
def test_wildfire_suppressed_on_water(sim, template_id):
  region = sim.register_template(template_id)
  for month in (2, 6, 8):
    env = sim.get_environmental_conditions(region.id, GameDate(1, month, 10, 14))
    assert env.wildfire_risk.level == 0


@pytest.mark.parametrize("template_id", ["boreal-forest", "continental-prairie"])
def test_flood_alerts_consistent_with_snowpack(template_id):
  sim = WeatherSimulator()
  region = sim.register_template(template_id)
  records = []
  for date in hour_range(GameDate(2, 1, 1), 24*151):
    sample = sim.generate_weather(region.id, date)
    snow = sim.get_accumulation(region.id, date)
    env = sim.get_environmental_conditions(region.id, date)
    records.append({
      "hour_index": date.hour_index,
      "temperature": sample.temperature,
      "precipitation_type": sample.precipitation_type,
      "snow_depth": snow.snow_depth,
      "flood_level": env.flooding.level,
    })
  result = flood_alert_violations(records)
  assert result["false_positives"] == []
  assert result["missed_alerts"] == []


def test_drought_suppressed_under_snowpack(sim):
  region = sim.register_template("continental-prairie")
  bare = SnowState(snow_depth=0.0, ice_accumulation=0.0, ground_condition="dry")
  covered = SnowState(snow_depth=SIGNIFICANT_SNOWPACK, ice_accumulation=0.0, ground_condition="snowCovered")
  assert sim.environment._drought(region, 400, bare).level == 4
  held = sim.environment._drought(region, 400, covered)
  assert held.level == 0
  assert held.driver == 400


def test_snow_covered_days_never_report_drought():
  sim = WeatherSimulator()
  region = sim.register_template("tundra-plain")
  covered = 0
  for date in hour_range(GameDate(3, 1, 1, 12), 24*90):
    if date.hour != 12:
      continue
    if sim.get_accumulation(region.id, date).snow_depth >= SIGNIFICANT_SNOWPACK:
      covered += 1
      assert sim.get_environmental_conditions(region.id, date).drought.level == 0
  assert covered > 0
