"""Engine facade that ties the weather, snow and hazard services together."""

from typing import Any, Dict, List, Optional, Union
import logging

from .core.environment import EnvironmentalConditionsService
from .core.snow import SnowAccumulationService
from .core.timebase import GameDate
from .core.weather import WeatherGenerator
from .errors import UnknownRegion
from .model.regions import Region, RegionTemplate, get_template, load_templates
from .model.samples import EnvironmentalState, SnowState, WeatherSample
from .model.settings import EngineSettings, load_settings

logger = logging.getLogger(__name__)

RegionRef = Union[Region, str]


class WeatherSimulator:
    """Caller-owned weather engine.

    Each instance owns its own caches, so independent simulations (for
    example parallel test runs) never share state.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        """Initialize the simulator.

        Args:
            settings: Engine calibration settings (default: packaged engine.yaml)
        """
        self.settings = settings or load_settings()

        self.weather = WeatherGenerator(
            persistence_hours=self.settings.precipitation_persistence_hours,
            transition_lookback_hours=self.settings.precipitation_transition_lookback_hours,
        )
        self.snow = SnowAccumulationService(
            self.weather,
            checkpoint_hours=self.settings.snow_checkpoint_hours,
            epoch_month=self.settings.season_epoch_month,
            epoch_day=self.settings.season_epoch_day,
            spinup_days=self.settings.snow_spinup_days,
        )
        self.environment = EnvironmentalConditionsService(
            self.weather,
            self.snow,
            drought_lookback_days=self.settings.drought_lookback_days,
            streak_lookback_days=self.settings.streak_lookback_days,
            reference_year=self.settings.percentile_reference_year,
        )

        self.regions: Dict[str, Region] = {}

        logger.info("Weather simulator initialized")

    def register_region(self, region: Region) -> Region:
        """Register a region so it can be referenced by id.

        Re-registering an id drops that region's cached results.

        Args:
            region: The region to register

        Returns:
            The registered region
        """
        if region.id in self.regions:
            self.clear_cache(region.id)
        self.regions[region.id] = region
        logger.info(f"Registered region {region.id} ({region.latitude_band})")
        return region

    def register_template(self, template_id: str, region_id: Optional[str] = None) -> Region:
        """Create and register a region from a packaged template."""
        return self.register_region(get_template(template_id).to_region(region_id))

    def get_region(self, region_id: str) -> Optional[Region]:
        """Get a registered region by id."""
        return self.regions.get(region_id)

    def templates(self) -> Dict[str, RegionTemplate]:
        """Get all packaged region templates keyed by id."""
        return load_templates()

    def _resolve(self, region: RegionRef) -> Region:
        if isinstance(region, Region):
            return region
        found = self.regions.get(region)
        if found is None:
            raise UnknownRegion(region)
        return found

    def generate_weather(self, region: RegionRef, date: Any) -> WeatherSample:
        """Generate the weather sample for a region at a game date.

        Args:
            region: Region or registered region id
            date: GameDate, mapping or ISO-like string

        Returns:
            The hourly WeatherSample
        """
        return self.weather.generate_weather(self._resolve(region), GameDate.coerce(date))

    def get_accumulation(self, region: RegionRef, date: Any) -> SnowState:
        """Get snow depth, ice and ground condition at a game date."""
        return self.snow.get_accumulation(self._resolve(region), GameDate.coerce(date))

    def get_environmental_conditions(self, region: RegionRef, date: Any) -> EnvironmentalState:
        """Get drought, flooding, heat, cold and wildfire levels at a game date."""
        return self.environment.get_environmental_conditions(self._resolve(region), GameDate.coerce(date))

    def clear_cache(self, region_id: Optional[str] = None) -> int:
        """Drop cached results for one region, or for all regions.

        Args:
            region_id: Region to drop; None clears everything

        Returns:
            Number of weather cache entries removed
        """
        removed = self.weather.clear_cache(region_id)
        self.snow.clear_cache(region_id)
        self.environment.clear_cache(region_id)
        return removed

    def get_stats(self) -> Dict[str, Any]:
        """Get simulator statistics."""
        return {
            "regions": sorted(self.regions),
            "cached_regions": self.weather.cache.region_ids(),
            "weather_entries": self.weather.cache.entry_count(),
            "snow_entries": self.snow.cache.entry_count(),
            "environment_entries": self.environment.cache.entry_count(),
            "replay_gaps": sum(len(self.snow.gaps(rid)) for rid in self.regions),
        }

    def list_regions(self) -> List[Dict[str, Any]]:
        """Get a short description of each registered region."""
        return [
            {
                "id": r.id,
                "name": r.name,
                "latitude_band": r.latitude_band,
                "biome": r.biome,
            }
            for r in self.regions.values()
        ]
