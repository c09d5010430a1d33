"""CLI command to start the weather API server."""

import logging
import click
import uvicorn

from ..api.rest import WeatherRestAPI
from ..errors import UnknownTemplate
from ..model.settings import load_settings
from ..simulator import WeatherSimulator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@click.command()
@click.option(
    "--engine-config",
    type=click.Path(exists=True),
    help="Engine settings YAML (default: packaged engine.yaml)",
)
@click.option(
    "--template",
    "templates",
    multiple=True,
    help="Template id to register at startup (repeatable, default: all)",
)
@click.option(
    "--host",
    default="0.0.0.0",
    help="Host to bind to (default: 0.0.0.0)",
)
@click.option(
    "--port",
    default=8000,
    type=int,
    help="Port to bind to (default: 8000)",
)
def main(engine_config, templates, host, port):
    """Start the weather API server.

    Every registered template is available as a region whose id is the
    template id.

    Examples:
        # Serve all packaged templates
        realmweather-serve

        # Serve two regions on another port
        realmweather-serve --template boreal-forest --template rain-shadow --port 9000
    """
    simulator = WeatherSimulator(load_settings(engine_config))

    template_ids = list(templates) or sorted(simulator.templates())
    for tid in template_ids:
        try:
            simulator.register_template(tid)
        except UnknownTemplate:
            click.echo(f"❌ Unknown template: {tid}", err=True)
            return
    click.echo(f"✅ Registered {len(template_ids)} regions")

    app = WeatherRestAPI(simulator).get_app()

    click.echo(f"🌐 Starting API server on http://{host}:{port}")
    click.echo(f"   • REST API:      http://{host}:{port}/api/")
    click.echo(f"   • Health Check:  http://{host}:{port}/health")
    click.echo(f"   • API Docs:      http://{host}:{port}/docs")

    try:
        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level="info",
        )
    except KeyboardInterrupt:
        click.echo("\n🛑 Shutting down...")


if __name__ == "__main__":
    main()
