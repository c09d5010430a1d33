import json
import sys
from pathlib import Path

import click
import yaml

from ..io.manifest import dataset_hash, read_manifest
from ..validation.harness import HarnessConfig, PrecipitationAnalysisConfig, ValidationHarness


def validate_manifest(manifest: str) -> int:
  m = read_manifest(manifest)
  months = m.get("months", {})
  if not months:
    click.echo("ERROR: no months found in manifest", err=True)
    return 1
  if m.get("dataset_hash") != dataset_hash(m):
    click.echo("ERROR: manifest hash mismatch", err=True)
    return 1
  total = sum(v.get("weather", 0) for v in months.values())
  click.echo(f"Found {len(months)} months with {total:,} weather rows total")
  if any(v.get("weather", 0) == 0 for v in months.values()):
    click.echo("WARNING: some months contain zero weather rows")
  if m.get("replay_gaps"):
    click.echo(f"WARNING: {m['replay_gaps']} replay gaps recorded")
  click.echo("Validation OK")
  return 0


@click.command()
@click.option("--manifest", type=click.Path(exists=True), help="Check a generated dataset manifest instead")
@click.option("--config", type=click.Path(exists=True), help="Harness configuration YAML")
@click.option("--template", "templates", multiple=True, help="Restrict the sweep to these template ids")
@click.option("--output", type=click.Path(), help="Write the full report as JSON")
@click.option("--precipitation-analysis", is_flag=True, help="Also run the cold-biome hourly analysis")
def main(manifest, config, templates, output, precipitation_analysis):
  if manifest:
    sys.exit(validate_manifest(manifest))

  cfg = yaml.safe_load(Path(config).read_text(encoding="utf-8")) if config else {}
  cfg = cfg or {}
  harness_cfg = HarnessConfig(**(cfg.get("harness") or {}))
  if templates:
    harness_cfg = harness_cfg.model_copy(update={"templates": list(templates)})
  harness = ValidationHarness(config=harness_cfg)

  def progress(pct):
    click.echo(f"  {pct:5.1f}%")

  report = {"stats": harness.run(progress)}
  summary = harness.summary()
  if precipitation_analysis:
    precip_cfg = PrecipitationAnalysisConfig(**(cfg.get("precipitation_analysis") or {}))
    if templates:
      precip_cfg = precip_cfg.model_copy(update={"templates": list(templates)})
    report["precipitation_analysis"] = harness.run_precipitation_analysis(precip_cfg)
  report["summary"] = summary

  click.echo(f"Samples: {summary['total_tests']:,}, valid: {summary['successful_tests']:,}")
  for key in ("anomalies", "transition_anomalies", "direct_transitions",
              "seasonal_transition_anomalies", "biome_similarities", "problem_biomes"):
    click.echo(f"{key.replace('_', ' ').capitalize()}: {summary[key]}")
  for pb in harness.stats["problem_biomes"]:
    click.echo(f"  {pb['biome']} ({pb['latitude_band']}): {'; '.join(pb['problems'])}")

  if output:
    Path(output).parent.mkdir(parents=True, exist_ok=True)
    Path(output).write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
    click.echo(f"Report written to {output}")

  if summary["anomalies"] or summary["direct_transitions"]:
    click.echo("ERROR: validation anomalies found", err=True)
    sys.exit(1)
  click.echo("Validation OK")


if __name__ == "__main__":
  main()
