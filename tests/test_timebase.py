import pytest

from realmweather.core.timebase import GameDate, Timebase, hour_range
from realmweather.errors import InvalidDate


def test_hour_index_roundtrip_across_year_boundary():
  d = GameDate(1, 12, 31, 23)
  nxt = d.advance(1)
  assert nxt == GameDate(2, 1, 1, 0)
  assert GameDate.from_hour_index(nxt.hour_index) == nxt
  assert nxt.hour_index - d.hour_index == 1


def test_day_of_year_is_one_based():
  assert GameDate(3, 1, 1).day_of_year == 1
  assert GameDate(3, 3, 1).day_of_year == 60
  assert GameDate(3, 12, 31).day_of_year == 365


@pytest.mark.parametrize("fields", [
  (1, 13, 1, 0),
  (1, 2, 29, 0),
  (1, 4, 31, 0),
  (1, 1, 1, 24),
  (1, 1, 0, 0),
])
def test_invalid_dates_raise(fields):
  with pytest.raises(InvalidDate):
    GameDate(*fields)


def test_non_integer_fields_raise():
  with pytest.raises(InvalidDate):
    GameDate(1, 1, 1.5, 0)
  with pytest.raises(InvalidDate):
    GameDate(1, True, 1, 0)


def test_parse_and_coerce():
  assert GameDate.parse("0001-03-05T07:00") == GameDate(1, 3, 5, 7)
  assert GameDate.parse("12-1-2") == GameDate(12, 1, 2, 0)
  assert GameDate.coerce({"year": 1, "month": 2, "day": 3, "hour": 4}) == GameDate(1, 2, 3, 4)
  assert GameDate.coerce((1, 2, 3)) == GameDate(1, 2, 3, 0)
  with pytest.raises(InvalidDate):
    GameDate.parse("yesterday")
  with pytest.raises(InvalidDate):
    GameDate.coerce({"year": 1, "month": 2})


def test_timebase_covers_full_year():
  days = list(Timebase(2).days())
  assert len(days) == 365
  assert days[0] == GameDate(2, 1, 1)
  assert days[-1] == GameDate(2, 12, 31)
  assert len(list(Timebase(2).hours([0, 12]))) == 730


def test_hour_range_is_contiguous():
  hours = list(hour_range(GameDate(1, 1, 31, 22), 4))
  assert [h.isoformat() for h in hours] == [
    "0001-01-31T22:00", "0001-01-31T23:00", "0001-02-01T00:00", "0001-02-01T01:00",
  ]
