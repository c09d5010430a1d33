import math

SEASON_BY_MONTH = {
  12: "winter", 1: "winter", 2: "winter",
  3: "spring", 4: "spring", 5: "spring",
  6: "summer", 7: "summer", 8: "summer",
  9: "fall", 10: "fall", 11: "fall",
}

# Mid-season anchor days (Jan 15, Apr 15, Jul 15, Oct 15); winter repeats a year on
ANCHORS = (("winter", 15), ("spring", 105), ("summer", 196), ("fall", 288), ("winter", 380))


def season_for_month(month: int) -> str:
  return SEASON_BY_MONTH[month]


def _bracket(day_of_year: float):
  d = day_of_year
  if d < ANCHORS[0][1]:
    d += 365
  for (s0, d0), (s1, d1) in zip(ANCHORS, ANCHORS[1:]):
    if d0 <= d <= d1:
      t = (d - d0)/(d1 - d0)
      return s0, s1, (1 - math.cos(math.pi*t))/2
  return ANCHORS[-2][0], ANCHORS[-1][0], 1.0


def season_weights(day_of_year: float) -> dict:
  """Cosine blend weights of the two anchoring seasons for a day of year."""
  s0, s1, w = _bracket(day_of_year)
  if s0 == s1:
    return {s0: 1.0}
  return {s0: 1 - w, s1: w}


def seasonal_value(table, attr: str, day_of_year: float) -> float:
  total = 0.0
  for season, w in season_weights(day_of_year).items():
    total += w*getattr(table.season(season), attr)
  return total


def seasonal_max(table, day_of_year: float):
  """Interpolated bound, or None when the table carries no max."""
  vals = []
  for season, w in season_weights(day_of_year).items():
    m = table.season(season).max
    if m is None:
      return None
    vals.append(w*m)
  return sum(vals)
