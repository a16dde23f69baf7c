"""CLI entry point for reporting Jest results to Fern."""

import asyncio
import logging
import sys
from pathlib import Path

import typer

from fern.jest_client.client import DeliveryError, create_fern_client
from fern.jest_client.config import (
    ReporterOptions,
    load_options_file,
    resolve_config,
)
from fern.jest_client.reporter import FernReporter
from fern.jest_client.results_loader import load_aggregated_result

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,
)
logger = logging.getLogger(__name__)

app = typer.Typer()


def _build_options(config_file: Path | None, **overrides: object) -> ReporterOptions:
    """Load options from a YAML file and apply command line overrides."""
    options = load_options_file(config_file) if config_file else ReporterOptions()
    explicit = {key: value for key, value in overrides.items() if value is not None}
    return ReporterOptions.model_validate({**options.model_dump(), **explicit})


@app.command()
def report(
    results_file: Path = typer.Argument(..., help="Jest JSON results (--json output)"),  # noqa: B008
    project_id: str | None = typer.Option(None, help="Fern project ID"),
    project_name: str | None = typer.Option(None, help="Project display name"),
    base_url: str | None = typer.Option(None, help="fern-reporter base URL"),
    timeout: int | None = typer.Option(None, help="Request timeout in ms"),
    retries: int | None = typer.Option(None, help="Retries on transient failures"),
    retry_delay: int | None = typer.Option(None, help="Base retry delay in ms"),
    fail_on_error: bool = typer.Option(
        False, "--fail-on-error", help="Exit 1 if delivery fails"
    ),
    config_file: Path | None = typer.Option(  # noqa: B008
        None, "--config", help="YAML file with reporter options"
    ),
) -> None:
    """Send a Jest results file to Fern."""
    try:
        options = _build_options(
            config_file,
            project_id=project_id,
            project_name=project_name,
            base_url=base_url,
            timeout=timeout,
            retries=retries,
            retry_delay=retry_delay,
            fail_on_error=fail_on_error or None,
        )
        results = asyncio.run(load_aggregated_result(results_file))
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load input: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    reporter = FernReporter(options)
    try:
        test_run = asyncio.run(reporter.on_run_complete(results))
    except DeliveryError as e:
        typer.echo(f"Error reporting test results: {e}", err=True)
        raise typer.Exit(code=1)

    if test_run is None:
        typer.echo("Fern reporting is disabled")
        return

    typer.echo(f"Reported test run {test_run.id} ({len(test_run.suite_runs)} suites)")


@app.command()
def ping(
    base_url: str | None = typer.Option(None, help="fern-reporter base URL"),
    timeout: int | None = typer.Option(None, help="Request timeout in ms"),
    config_file: Path | None = typer.Option(  # noqa: B008
        None, "--config", help="YAML file with reporter options"
    ),
) -> None:
    """Check that fern-reporter is reachable and healthy."""
    try:
        options = _build_options(config_file, base_url=base_url, timeout=timeout)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    # The health check runs even when reporting is disabled.
    config = resolve_config(options)
    client = create_fern_client(config.project_id, config.client_options())
    if not asyncio.run(client.ping()):
        typer.echo("Fern API is not healthy", err=True)
        raise typer.Exit(code=1)

    typer.echo("Fern API is healthy")


if __name__ == "__main__":  # pragma: no cover
    app()
