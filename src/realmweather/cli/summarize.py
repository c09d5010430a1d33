import click

from ..io.manifest import read_manifest


@click.command()
@click.option("--manifest", required=True, type=click.Path(exists=True))
def main(manifest):
  m = read_manifest(manifest)
  months = m.get("months", {})
  rows = sorted(months.items())
  width = max(len(k) for k, _ in rows) if rows else 7
  click.echo("Month".ljust(width) + " | Weather  | Daily")
  click.echo("-" * width + "-|----------|--------")
  for k, v in rows:
    click.echo(k.ljust(width) + f" | {v.get('weather', 0):>8,} | {v.get('daily', 0):,}")
  click.echo(f"Regions: {len(m.get('regions', []))}, Year: {m.get('year')}, Replay gaps: {m.get('replay_gaps', 0)}")


if __name__ == "__main__":
  main()
