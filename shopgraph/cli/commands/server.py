"""``shopgraph server``: run the API."""

import subprocess
import sys

import click

from shopgraph.cli.utils import error, info, warning
from shopgraph.core.settings import get_app_settings, get_graphql_settings


@click.group(name="server")
def server() -> None:
    """Run the GraphQL API."""


@server.command()
@click.option("--host", default=None, help="Bind address (default: APP_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (default: APP_PORT)")
@click.option("--reload/--no-reload", default=False, help="Restart on code changes")
@click.option("--workers", default=1, type=click.IntRange(min=1), help="Worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["critical", "error", "warning", "info", "debug", "trace"]),
    help="uvicorn's own log level; application logs follow LOG_LEVEL",
)
def run(host: str | None, port: int | None, reload: bool, workers: int, log_level: str) -> None:
    """Serve shopgraph.app.main:app with uvicorn.

    Entity events are broadcast in-process, so subscribers only see
    mutations handled by the same worker.
    """
    settings = get_app_settings()
    host = host or settings.host
    port = port or settings.port

    if workers > 1:
        if reload:
            warning("--reload runs a single worker; ignoring --workers")
            workers = 1
        else:
            warning("entityEvents subscriptions only see mutations made through their own worker")

    cmd = [
        sys.executable, "-m", "uvicorn", "shopgraph.app.main:app",
        "--host", host,
        "--port", str(port),
        "--log-level", log_level,
    ]
    cmd += ["--reload"] if reload else ["--workers", str(workers)]

    info(f"Serving http://{host}:{port}{get_graphql_settings().path} ({settings.environment})")
    try:
        subprocess.run(cmd, check=True)
    except KeyboardInterrupt:
        info("Server stopped")
    except (OSError, subprocess.CalledProcessError) as e:
        error(f"uvicorn exited: {e}")
        raise click.exceptions.Exit(1) from e
