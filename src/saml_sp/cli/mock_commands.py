"""CLI commands for the mock IdP metadata server."""

import logging
from pathlib import Path
from typing import Optional

import click

from saml_sp.mock_server.app import run_server
from saml_sp.mock_server.config import load_config

logger = logging.getLogger(__name__)


@click.group(name="mock")
def mock_group() -> None:
    """Mock IdP metadata server commands."""
    pass


@mock_group.command(name="start")
@click.option("--host", default=None, help="Host address (default: from mock config)")
@click.option("--port", type=int, default=None, help="Port (default: from mock config)")
@click.option(
    "--fail-first",
    type=click.IntRange(min=0),
    default=None,
    help="Answer the first N metadata requests with HTTP 503",
)
@click.option(
    "--signing-cert",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="PEM certificate to publish as the IdP signing key",
)
@click.option(
    "--mock-config",
    type=click.Path(path_type=Path),
    default=None,
    help="Mock server configuration file (default: mocks/config.json)",
)
def start(
    host: Optional[str],
    port: Optional[int],
    fail_first: Optional[int],
    signing_cert: Optional[Path],
    mock_config: Optional[Path],
) -> None:
    """Start the mock IdP metadata server in the foreground.

    Examples:

        saml-sp mock start

        # Exercise resolver retries: two failures, then metadata
        saml-sp mock start --port 18080 --fail-first 2
    """
    try:
        config = load_config(mock_config)
    except (FileNotFoundError, ValueError) as e:
        click.echo(
            click.style("✗", fg="red", bold=True) + f" Mock configuration error: {e}",
            err=True,
        )
        raise click.exceptions.Exit(1)

    overrides = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if fail_first is not None:
        overrides["fail_first_n"] = fail_first
    if signing_cert is not None:
        overrides["signing_cert_path"] = str(signing_cert)
    if overrides:
        config = config.model_copy(update=overrides)

    click.echo(
        f"Mock IdP metadata server on http://{config.host}:{config.port}"
        f"{config.metadata_endpoint} (Ctrl+C to stop)"
    )
    run_server(config)
