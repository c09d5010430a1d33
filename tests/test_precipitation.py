import numpy as np
import pytest

from realmweather.core.precipitation import TRANSITIONAL, PrecipitationStateMachine


def test_cold_window_is_snow_and_warm_window_is_rain():
  m = PrecipitationStateMachine(6)
  assert m.phase_for([20] * 7) == "snow"
  assert m.phase_for([35] * 7) == "snow"
  assert m.phase_for([36] * 7) == "rain"


def test_mixed_window_gives_transitional_phases():
  m = PrecipitationStateMachine(6)
  # warming out of snow: window saw no rain-warm air yet
  assert m.phase_for([30, 31, 32, 33, 34, 35, 37]) == "sleet"
  # cooling out of rain into the freezing band
  assert m.phase_for([40, 39, 38, 36, 34, 32, 30]) == "freezing-rain"
  # mixed window outside both bands
  assert m.phase_for([20, 22, 24, 26, 30, 35, 45]) == "none"
  assert m.phase_for([40, 38, 36, 30, 26, 24, 20]) == "none"


def test_state_counts_hours_in_phase():
  m = PrecipitationStateMachine(3)
  s = m.state([40, 40, 40, 40, 40, 40, 40])
  assert s.phase == "rain"
  assert s.hours_in_phase == 3
  assert s.allows_precipitation
  s = m.state([40, 40, 40, 40, 40, 40, 30])
  assert s.phase == "freezing-rain"
  assert s.hours_in_phase == 1
  assert s.window == (40, 40, 40, 30)


def test_state_requires_enough_history():
  m = PrecipitationStateMachine(6)
  with pytest.raises(ValueError):
    m.state([30] * 6)
  with pytest.raises(ValueError):
    PrecipitationStateMachine(0)


def test_snow_and_rain_never_adjacent_in_any_ramp():
  m = PrecipitationStateMachine(6)
  temps = [20 + (i % 60) for i in range(200)] + [80 - (i % 60) for i in range(200)]
  phases = [m.phase_for(temps[i - 6:i + 1]) for i in range(6, len(temps))]
  last = None
  for i, p in enumerate(phases):
    if p in ("snow", "rain"):
      if last is not None and last[1] != p:
        assert i - last[0] > 6
      last = (i, p)
  for a, b in zip(phases, phases[1:]):
    assert PrecipitationStateMachine.is_allowed(a, b), (a, b)


def test_settle_blocks_opposite_kind_until_transition():
  m = PrecipitationStateMachine(6)
  # rain two dry hours after snow: outside the sleet band it stays dry
  assert m.settle("rain", 45, [None, None, "snow"]) is None
  # inside the sleet band it falls as sleet
  assert m.settle("rain", 37, [None, "snow"]) == "sleet"
  assert m.settle("snow", 30, ["rain"]) == "sleet"
  assert m.settle("snow", 20, ["rain", "rain"]) is None
  # a transitional hour since the snow clears the way
  assert m.settle("rain", 45, [None, "sleet", "snow"]) == "rain"
  assert m.settle("snow", 20, ["freezing-rain", "rain"]) == "snow"
  # same kind and dry hours do not block
  assert m.settle("snow", 20, ["snow", None, "snow"]) == "snow"
  assert m.settle("rain", 50, []) == "rain"


def test_settle_passes_transitional_and_dry_hours_through():
  m = PrecipitationStateMachine(6)
  assert m.settle("sleet", 33, ["rain", "snow"]) == "sleet"
  assert m.settle("freezing-rain", 30, ["snow"]) == "freezing-rain"
  assert m.settle(None, 30, ["snow"]) is None


def test_settled_series_always_has_transition_between_snow_and_rain():
  m = PrecipitationStateMachine(6, transition_lookback_hours=48)
  rng = np.random.default_rng(7)
  choices = [None, None, "snow", "rain", "sleet", "freezing-rain"]
  candidates = [choices[i] for i in rng.choice(len(choices), size=3000, p=[0.4, 0.2, 0.17, 0.17, 0.03, 0.03])]
  temps = rng.integers(20, 45, size=3000)
  fallen = []
  for h, c in enumerate(candidates):
    earlier = candidates[max(0, h - 48):h][::-1]
    fallen.append(m.settle(c, int(temps[h]), earlier))
  last = None
  for h, p in enumerate(fallen):
    if p is None:
      continue
    if p in ("snow", "rain") and last is not None and last[1] != p and last[1] in ("snow", "rain"):
      assert h - last[0] > 48, (last, h, p)
    last = (h, p)
  assert any(p in TRANSITIONAL for p in fallen)


def test_transition_lookback_must_be_positive():
  with pytest.raises(ValueError):
    PrecipitationStateMachine(6, transition_lookback_hours=0)
