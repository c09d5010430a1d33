from realmweather.runtime.state import RegionCache


def test_get_or_compute_memoizes():
  cache = RegionCache()
  calls = []
  def compute():
    calls.append(1)
    return 42
  assert cache.get_or_compute("r1", "ns", 1, compute) == 42
  assert cache.get_or_compute("r1", "ns", 1, compute) == 42
  assert len(calls) == 1
  assert cache.keys("r1", "ns") == [1]


def test_clear_one_region_keeps_others():
  cache = RegionCache()
  cache.put("r1", "a", 1, "x")
  cache.put("r1", "b", 2, "y")
  cache.put("r2", "a", 1, "z")
  assert cache.clear("r1") == 2
  assert cache.get("r1", "a", 1) is None
  assert cache.get("r2", "a", 1) == "z"
  assert cache.region_ids() == ["r2"]
  assert cache.clear() == 1
  assert cache.entry_count() == 0


def test_listeners_notified_and_errors_isolated():
  cache = RegionCache()
  seen = []
  def broken(region_id):
    raise RuntimeError("boom")
  cache.add_listener(broken)
  cache.add_listener(seen.append)
  cache.clear("r1")
  cache.clear()
  assert seen == ["r1", None]
  assert cache.remove_listener(broken)
  assert not cache.remove_listener(broken)


def test_namespace_cap_evicts_oldest():
  cache = RegionCache(max_entries_per_namespace=2)
  for i in range(4):
    cache.put("r", "ns", i, i)
  assert cache.keys("r", "ns") == [2, 3]
