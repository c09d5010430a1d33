"""Precipitation-type state machine.

The phase at an hour depends on the trailing window of hourly temperatures
(the current hour plus ``persistence_hours`` before it):

  snow           every temperature in the window is at or below 35F
  rain           every temperature in the window is above 35F
  freezing-rain  mixed window, current 28-32F, and the window saw rain-warm air
  sleet          mixed window, current 29-38F
  none           mixed window outside both bands; no precipitation this hour

Leaving snow or rain therefore always passes through the mixed zone for at
least ``persistence_hours``, and a short warm or cold blip cannot flip the
phase back and forth.

The phase only says what could fall. Whether anything falls in the mixed
zone is up to the hourly draw, so ``settle`` decides the type that actually
falls: snow or rain is held back until sleet or freezing rain has fallen
since the last precipitation of the opposite kind within
``TRANSITION_LOOKBACK_HOURS``.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

PERSISTENCE_HOURS = 6
TRANSITION_LOOKBACK_HOURS = 48

SNOW_MAX = 35
RAIN_ABOVE = 35
SLEET_BAND = (29, 38)
FREEZING_RAIN_BAND = (28, 32)

TRANSITIONAL = ("sleet", "freezing-rain")
OPPOSITE = {"snow": "rain", "rain": "snow"}


# Allowed phase-to-phase moves between consecutive hours
TRANSITIONS = {
  "none": {"none", "snow", "sleet", "freezing-rain", "rain"},
  "snow": {"snow", "sleet", "none"},
  "sleet": {"sleet", "snow", "freezing-rain", "rain", "none"},
  "freezing-rain": {"freezing-rain", "sleet", "snow", "rain", "none"},
  "rain": {"rain", "sleet", "freezing-rain", "none"},
}


@dataclass(frozen=True)
class PrecipitationState:
  phase: str
  hours_in_phase: int
  window: Tuple[int, ...]

  @property
  def allows_precipitation(self) -> bool:
    return self.phase != "none"


class PrecipitationStateMachine:

  def __init__(self, persistence_hours: int = PERSISTENCE_HOURS,
               transition_lookback_hours: int = TRANSITION_LOOKBACK_HOURS):
    if persistence_hours < 1:
      raise ValueError("persistence_hours must be >= 1")
    if transition_lookback_hours < 1:
      raise ValueError("transition_lookback_hours must be >= 1")
    self.persistence_hours = persistence_hours
    self.transition_lookback_hours = transition_lookback_hours

  @property
  def history_hours(self) -> int:
    """Hours of temperature needed before the query hour to rebuild the state."""
    return 2*self.persistence_hours

  def phase_for(self, window: Sequence[int]) -> str:
    t = window[-1]
    if all(v <= SNOW_MAX for v in window):
      return "snow"
    if all(v > RAIN_ABOVE for v in window):
      return "rain"
    if FREEZING_RAIN_BAND[0] <= t <= FREEZING_RAIN_BAND[1] and max(window) > RAIN_ABOVE:
      return "freezing-rain"
    if SLEET_BAND[0] <= t <= SLEET_BAND[1]:
      return "sleet"
    return "none"

  def state(self, temperatures: Sequence[int]) -> PrecipitationState:
    """Rebuild the state at the last hour of an hourly temperature series.

    The series must hold at least ``persistence_hours + 1`` values, oldest
    first; ``history_hours + 1`` values give an exact hours-in-phase count.
    """
    k = self.persistence_hours
    if len(temperatures) < k + 1:
      raise ValueError(f"need at least {k + 1} hourly temperatures, got {len(temperatures)}")
    temps = tuple(temperatures)
    phases = [self.phase_for(temps[i - k:i + 1]) for i in range(k, len(temps))]
    current = phases[-1]
    held = 0
    for p in reversed(phases):
      if p != current:
        break
      held += 1
    return PrecipitationState(current, min(held, k), temps[-(k + 1):])

  @staticmethod
  def is_allowed(previous: str, current: str) -> bool:
    return current in TRANSITIONS.get(previous, set())

  @staticmethod
  def settle(candidate: Optional[str], temperature: int, earlier: Iterable[Optional[str]]) -> Optional[str]:
    """Type that falls at an hour, given what could fall in the hours before it.

    ``earlier`` holds the candidate types of the preceding hours, most recent
    first, None for dry hours. Snow or rain is blocked when the opposite kind
    was a candidate more recently than any sleet or freezing rain; a blocked
    hour falls as sleet inside the sleet band and stays dry outside it.
    Sleet and freezing rain always fall as themselves, so any snow and rain
    within the scanned hours have one of them between.
    """
    if candidate not in OPPOSITE:
      return candidate
    for prior in earlier:
      if prior in TRANSITIONAL:
        break
      if prior == OPPOSITE[candidate]:
        if SLEET_BAND[0] <= temperature <= SLEET_BAND[1]:
          return "sleet"
        return None
    return candidate
