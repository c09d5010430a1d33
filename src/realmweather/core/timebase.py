from dataclasses import dataclass
import re

from ..errors import InvalidDate

MONTH_DAYS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)
DAYS_PER_YEAR = 365
HOURS_PER_DAY = 24
HOURS_PER_YEAR = DAYS_PER_YEAR*HOURS_PER_DAY

# Day-of-year (0-based) at which each month starts
_MONTH_START = tuple(sum(MONTH_DAYS[:i]) for i in range(12))
_ISO = re.compile(r"^(-?\d+)-(\d{1,2})-(\d{1,2})(?:[T ](\d{1,2})(?::00)?)?$")


def _is_int(v) -> bool:
  return isinstance(v, int) and not isinstance(v, bool)


@dataclass(frozen=True, order=True)
class GameDate:
  """Calendar position in the game world: fixed 365-day years, no leap days."""
  year: int
  month: int
  day: int
  hour: int = 0

  def __post_init__(self):
    fields = {"year": self.year, "month": self.month, "day": self.day, "hour": self.hour}
    for name, v in fields.items():
      if not _is_int(v):
        raise InvalidDate(f"{name} must be an integer, got {v!r}", fields)
    if not 1 <= self.month <= 12:
      raise InvalidDate(f"month out of range: {self.month}", fields)
    if not 1 <= self.day <= MONTH_DAYS[self.month - 1]:
      raise InvalidDate(f"day out of range for month {self.month}: {self.day}", fields)
    if not 0 <= self.hour < HOURS_PER_DAY:
      raise InvalidDate(f"hour out of range: {self.hour}", fields)

  @property
  def day_of_year(self) -> int:
    """1-based day of year."""
    return _MONTH_START[self.month - 1] + self.day

  @property
  def day_index(self) -> int:
    return self.year*DAYS_PER_YEAR + self.day_of_year - 1

  @property
  def hour_index(self) -> int:
    """Linear hour count from the calendar epoch; orders all dates."""
    return self.day_index*HOURS_PER_DAY + self.hour

  @classmethod
  def from_day_index(cls, index: int, hour: int = 0) -> "GameDate":
    year, doy0 = divmod(index, DAYS_PER_YEAR)
    month = 1
    while month < 12 and _MONTH_START[month] <= doy0:
      month += 1
    return cls(year, month, doy0 - _MONTH_START[month - 1] + 1, hour)

  @classmethod
  def from_hour_index(cls, index: int) -> "GameDate":
    day_index, hour = divmod(index, HOURS_PER_DAY)
    return cls.from_day_index(day_index, hour)

  def advance(self, hours: int) -> "GameDate":
    return GameDate.from_hour_index(self.hour_index + hours)

  def isoformat(self) -> str:
    return f"{self.year:04d}-{self.month:02d}-{self.day:02d}T{self.hour:02d}:00"

  def to_dict(self) -> dict:
    return {"year": self.year, "month": self.month, "day": self.day, "hour": self.hour}

  @classmethod
  def parse(cls, text: str) -> "GameDate":
    m = _ISO.match(text.strip())
    if not m:
      raise InvalidDate(f"cannot parse game date: {text!r}")
    year, month, day, hour = m.groups()
    return cls(int(year), int(month), int(day), int(hour or 0))

  @classmethod
  def coerce(cls, value) -> "GameDate":
    """Accept a GameDate, a mapping with year/month/day[/hour] or an ISO-like string."""
    if isinstance(value, GameDate):
      return value
    if isinstance(value, str):
      return cls.parse(value)
    if isinstance(value, dict):
      try:
        return cls(value["year"], value["month"], value["day"], value.get("hour", 0))
      except KeyError as e:
        raise InvalidDate(f"missing date field: {e.args[0]}", dict(value)) from e
    if isinstance(value, (tuple, list)) and len(value) in (3, 4):
      return cls(*value)
    raise InvalidDate(f"unsupported date value: {value!r}")


@dataclass
class Timebase:
  year: int

  def days(self):
    for doy0 in range(DAYS_PER_YEAR):
      yield GameDate.from_day_index(self.year*DAYS_PER_YEAR + doy0)

  def hours(self, sample_hours=None):
    hours = sorted(sample_hours) if sample_hours is not None else range(HOURS_PER_DAY)
    for d in self.days():
      for h in hours:
        yield GameDate(d.year, d.month, d.day, h)


def hour_range(start: GameDate, hours: int):
  base = start.hour_index
  for i in range(hours):
    yield GameDate.from_hour_index(base + i)
