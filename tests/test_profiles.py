from realmweather.model.profiles import DEFAULT_TABLES, ClimateProfile, build_profile


def test_missing_fields_fall_back_to_temperate_defaults():
  params = {
    "temperatureProfile": {
      "winter": {"mean": 10, "variance": 8},
      "spring": {"mean": 30},
      "summer": {"mean": 50, "variance": 6},
      "fall": {"mean": 30, "variance": 8},
      "annual": {"mean": 30, "variance": 20},
    },
  }
  profile = build_profile(params, "partial")
  assert profile.temperature.spring.mean == 30
  assert profile.temperature.spring.variance == DEFAULT_TABLES["temperature"]["spring"]["variance"]
  missing = {(m.table, m.season, m.attribute) for m in profile.defaulted_fields}
  assert ("temperature", "spring", "variance") in missing
  assert ("humidity", "winter", "mean") in missing
  assert ("dew_point", "summer", "max") in missing
  assert ("temperature", "winter", "mean") not in missing


def test_missing_annual_is_derived_from_seasons():
  params = {
    "temperatureProfile": {
      "winter": {"mean": 0, "variance": 10},
      "spring": {"mean": 20, "variance": 10},
      "summer": {"mean": 40, "variance": 10},
      "fall": {"mean": 20, "variance": 10},
    },
  }
  profile = build_profile(params)
  assert profile.temperature.annual.mean == 20
  assert profile.temperature.annual.variance == 30


def test_empty_parameters_give_temperate_profile():
  profile = ClimateProfile.temperate()
  assert profile.temperature.summer.mean == DEFAULT_TABLES["temperature"]["summer"]["mean"]
  assert profile.dew_point.winter.max == DEFAULT_TABLES["dew_point"]["winter"]["max"]
  assert profile.latitude == 45.0
  assert len(profile.defaulted_fields) > 0


def test_defaulted_field_to_dict():
  profile = build_profile({}, "empty")
  d = profile.defaulted_fields[0].to_dict()
  assert set(d) >= {"table", "season", "attribute", "default"}
