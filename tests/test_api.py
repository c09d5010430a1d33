import inspect

from fastapi.testclient import TestClient

from realmweather.api.rest import WeatherRestAPI
from realmweather.simulator import WeatherSimulator


def _client():
  sim = WeatherSimulator()
  sim.register_template("boreal-forest")
  return TestClient(WeatherRestAPI(sim).get_app()), sim


def test_discovery_and_health():
  client, _ = _client()
  assert client.get("/api/").json()["message"] == "API running."
  health = client.get("/health").json()
  assert health["status"] == "healthy"
  assert health["regions"] == 1


def test_templates_and_regions():
  client, _ = _client()
  templates = client.get("/api/templates").json()
  assert any(t["id"] == "rain-shadow" for t in templates)
  r = client.post("/api/regions", json={"template_id": "rain-shadow", "region_id": "lee"})
  assert r.status_code == 200
  assert r.json()["id"] == "lee"
  r = client.post("/api/regions", json={"region_id": "bare", "parameters": {}})
  assert r.status_code == 200
  assert len(r.json()["defaulted_fields"]) > 0
  ids = {x["id"] for x in client.get("/api/regions").json()}
  assert ids == {"boreal-forest", "lee", "bare"}
  assert client.post("/api/regions", json={"template_id": "atlantis"}).status_code == 404
  assert client.post("/api/regions", json={}).status_code == 400


def test_region_queries():
  client, sim = _client()
  r = client.get("/api/regions/boreal-forest/weather", params={"date": "0001-01-20T12:00"})
  assert r.status_code == 200
  body = r.json()
  assert body["date"] == "0001-01-20T12:00"
  assert body["weather"] == sim.generate_weather("boreal-forest", "0001-01-20T12:00").model_dump(mode="json")
  r = client.get("/api/regions/boreal-forest/accumulation", params={"date": "0001-01-20T12:00"})
  assert r.json()["accumulation"]["ground_condition"]
  r = client.get("/api/regions/boreal-forest/conditions", params={"date": "0001-01-20T12:00"})
  assert set(r.json()["conditions"]) == {"drought", "flooding", "heat_wave", "cold_snap", "wildfire_risk"}


def test_query_errors():
  client, _ = _client()
  assert client.get("/api/regions/boreal-forest/weather", params={"date": "0001-02-30"}).status_code == 422
  assert client.get("/api/regions/nowhere/weather", params={"date": "0001-02-03"}).status_code == 404


def test_clear_cache():
  client, sim = _client()
  client.get("/api/regions/boreal-forest/weather", params={"date": "0001-01-20T12:00"})
  r = client.delete("/api/cache", params={"region_id": "boreal-forest"})
  assert r.json()["removed"] > 0
  assert sim.get_stats()["weather_entries"] == 0


def test_region_queries_run_off_the_event_loop():
  _, sim = _client()
  app = WeatherRestAPI(sim).get_app()
  query_routes = [r for r in app.routes if getattr(r, "path", "").startswith("/api/regions/{region_id}/")]
  assert {r.path.rsplit("/", 1)[-1] for r in query_routes} == {"weather", "accumulation", "conditions"}
  assert not any(inspect.iscoroutinefunction(r.endpoint) for r in query_routes)
