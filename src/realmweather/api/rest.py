"""REST API server exposing the weather engine."""

from typing import Any, Dict, Optional
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
import logging

from ..core.timebase import GameDate
from ..errors import InvalidDate, UnknownRegion, UnknownTemplate
from ..model.regions import region_from_parameters
from ..simulator import WeatherSimulator

logger = logging.getLogger(__name__)


# Pydantic models for request validation
class RegionCreateData(BaseModel):
    """Region creation request data."""
    region_id: Optional[str] = None
    template_id: Optional[str] = None
    name: Optional[str] = None
    latitude_band: str = "temperate"
    parameters: Optional[Dict[str, Any]] = None


class WeatherRestAPI:
    """REST API for weather, snow and hazard queries."""

    def __init__(self, simulator: WeatherSimulator):
        """Initialize REST API.

        Args:
            simulator: Weather simulator instance
        """
        self.simulator = simulator
        self.app = FastAPI(
            title="Realm Weather API",
            description="Deterministic fantasy-world weather, snow and hazard queries",
            version="1.0.0",
        )

        # Setup routes
        self._setup_routes()

    def _query(self, region_id: str, date: str, fn) -> Dict[str, Any]:
        """Run a region/date query, mapping engine errors to HTTP errors."""
        try:
            game_date = GameDate.parse(date)
            result = fn(region_id, game_date)
        except InvalidDate as e:
            raise HTTPException(status_code=422, detail=str(e))
        except UnknownRegion:
            raise HTTPException(status_code=404, detail="Region not found")
        return {"region_id": region_id, "date": game_date.isoformat(), **result}

    def _setup_routes(self) -> None:
        """Setup all API routes."""

        @self.app.get("/api/")
        async def api_discovery():
            """API discovery endpoint."""
            return {
                "message": "API running.",
                "version": "1.0.0",
            }

        @self.app.get("/api/templates")
        async def get_templates():
            """List packaged region templates."""
            return [
                {
                    "id": t.id,
                    "name": t.name,
                    "latitude_band": t.latitude_band,
                    "description": t.description,
                    "biome": t.default_biome,
                }
                for t in self.simulator.templates().values()
            ]

        @self.app.get("/api/regions")
        async def get_regions():
            """List registered regions."""
            return self.simulator.list_regions()

        @self.app.post("/api/regions")
        async def create_region(data: RegionCreateData):
            """Register a region from a template or from raw parameters."""
            if data.template_id:
                try:
                    region = self.simulator.register_template(data.template_id, data.region_id)
                except UnknownTemplate:
                    raise HTTPException(status_code=404, detail="Template not found")
            elif data.parameters is not None:
                if not data.region_id:
                    raise HTTPException(status_code=400, detail="Missing 'region_id' field")
                region = self.simulator.register_region(region_from_parameters(
                    data.region_id,
                    data.parameters,
                    latitude_band=data.latitude_band,
                    name=data.name or "",
                ))
            else:
                raise HTTPException(status_code=400, detail="Provide 'template_id' or 'parameters'")
            return {
                "id": region.id,
                "name": region.name,
                "latitude_band": region.latitude_band,
                "biome": region.biome,
                "defaulted_fields": [f.to_dict() for f in region.climate.defaulted_fields],
            }

        @self.app.get("/api/regions/{region_id}/weather")
        def get_weather(region_id: str, date: str):
            """Get the hourly weather sample."""
            return self._query(region_id, date, lambda r, d: {
                "weather": self.simulator.generate_weather(r, d).model_dump(),
            })

        @self.app.get("/api/regions/{region_id}/accumulation")
        def get_accumulation(region_id: str, date: str):
            """Get snow depth, ice and ground condition."""
            return self._query(region_id, date, lambda r, d: {
                "accumulation": self.simulator.get_accumulation(r, d).model_dump(),
            })

        @self.app.get("/api/regions/{region_id}/conditions")
        def get_conditions(region_id: str, date: str):
            """Get environmental hazard levels."""
            def conditions(r, d):
                env = self.simulator.get_environmental_conditions(r, d)
                return {"conditions": env.model_dump(), "active_alerts": list(env.active_alerts)}
            return self._query(region_id, date, conditions)

        @self.app.delete("/api/cache")
        async def clear_cache(region_id: Optional[str] = None):
            """Clear cached results for one region or all regions."""
            removed = self.simulator.clear_cache(region_id)
            return {"success": True, "region_id": region_id, "removed": removed}

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            stats = self.simulator.get_stats()
            return {
                "status": "healthy",
                "regions": len(stats["regions"]),
                "weather_entries": stats["weather_entries"],
            }

    def get_app(self) -> FastAPI:
        """Get the FastAPI app instance."""
        return self.app
