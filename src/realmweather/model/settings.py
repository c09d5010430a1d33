from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
import yaml

SETTINGS_PATH = Path(__file__).parent.parent / "config" / "engine.yaml"


class EngineSettings(BaseModel):
  precipitation_persistence_hours: int = Field(6, ge=1, le=48)
  precipitation_transition_lookback_hours: int = Field(48, ge=1, le=168)
  snow_checkpoint_hours: int = Field(24, ge=1)
  snow_spinup_days: int = Field(120, ge=30, le=365)
  season_epoch_month: int = Field(7, ge=1, le=12)
  season_epoch_day: int = Field(15, ge=1, le=28)
  drought_lookback_days: int = Field(120, ge=1, le=365)
  streak_lookback_days: int = Field(30, ge=1, le=365)
  percentile_reference_year: int = 1


def load_settings(path: Optional[str] = None, **overrides) -> EngineSettings:
  p = Path(path) if path else SETTINGS_PATH
  raw = yaml.safe_load(p.read_text(encoding="utf-8")) if p.exists() else {}
  raw = dict(raw or {})
  raw.update({k: v for k, v in overrides.items() if v is not None})
  return EngineSettings(**raw)
