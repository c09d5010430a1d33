from pathlib import Path

import click
import yaml

from ..core.timebase import GameDate, Timebase
from ..io.manifest import write_manifest
from ..io.schema import accumulation_row, weather_row
from ..io.write_jsonl import write_jsonl
from ..io.write_parquet import write_rows_parquet
from ..model.regions import get_template, load_templates, region_from_parameters
from ..model.settings import load_settings
from ..simulator import WeatherSimulator

WRITERS = {"parquet": write_rows_parquet, "jsonl": write_jsonl}


def build_regions(cfg: dict, simulator: WeatherSimulator) -> list:
  regions = []
  for entry in cfg.get("regions") or []:
    if "template" in entry:
      t = get_template(entry["template"])
      region = t.to_region(entry.get("id"), entry.get("name"))
    else:
      region = region_from_parameters(entry["id"], entry.get("parameters") or {},
                                      latitude_band=entry.get("latitude_band", "temperate"),
                                      name=entry.get("name", ""))
    regions.append(simulator.register_region(region))
  if not regions:
    for tid in cfg.get("templates") or sorted(load_templates()):
      regions.append(simulator.register_template(tid))
  return regions


@click.command()
@click.option("--config", required=True, type=click.Path(exists=True))
@click.option("--out", "out_override", type=click.Path(), default=None, help="Override output.path")
def main(config, out_override):
  cfg = yaml.safe_load(Path(config).read_text(encoding="utf-8")) or {}
  year = int(cfg.get("year", 1))
  output_cfg = cfg.get("output", {})
  out_dir = Path(out_override or output_cfg.get("path", "out/"))
  fmt = output_cfg.get("format", "parquet")
  if fmt not in WRITERS:
    raise click.BadParameter(f"unknown output format: {fmt}", param_hint="output.format")
  ext = "parquet" if fmt == "parquet" else "jsonl"
  write = WRITERS[fmt]
  sample_hours = cfg.get("sample_hours", [0, 6, 12, 18])
  daily_hour = int(cfg.get("accumulation_hour", 12))

  settings = load_settings(cfg.get("engine"), **(cfg.get("engine_overrides") or {}))
  simulator = WeatherSimulator(settings)
  regions = build_regions(cfg, simulator)
  tb = Timebase(year)

  meta = {"year": year, "format": fmt, "regions": [r.id for r in regions], "months": {}, "replay_gaps": 0}
  for month in range(1, 13):
    weather_count, daily_count = 0, 0
    days = [d for d in tb.days() if d.month == month]
    for region in regions:
      weather_rows, daily_rows = [], []
      for d in days:
        for h in sample_hours:
          date = GameDate(d.year, d.month, d.day, h)
          weather_rows.append(weather_row(region.id, date, simulator.generate_weather(region, date)))
        date = GameDate(d.year, d.month, d.day, daily_hour)
        daily_rows.append(accumulation_row(
          region.id, date,
          simulator.get_accumulation(region, date),
          simulator.get_environmental_conditions(region, date),
        ))
      base = out_dir / f"{year:04d}" / f"{month:02d}"
      weather_count += write(weather_rows, str(base / f"weather_{region.id}_{year:04d}_{month:02d}.{ext}"))
      daily_count += write(daily_rows, str(base / f"daily_{region.id}_{year:04d}_{month:02d}.{ext}"))
    meta["months"][f"{year:04d}-{month:02d}"] = {"weather": weather_count, "daily": daily_count}
    click.echo(f"{year:04d}-{month:02d}: {weather_count:,} weather rows, {daily_count:,} daily rows")
  meta["replay_gaps"] = sum(len(simulator.snow.gaps(r.id)) for r in regions)
  manifest_path = out_dir / f"{year:04d}" / "manifest.json"
  write_manifest(str(manifest_path), meta)
  click.echo(f"Done. Wrote dataset to {out_dir}")


if __name__ == "__main__":
  main()
