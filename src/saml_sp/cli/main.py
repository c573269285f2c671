"""Main CLI entry point for the SAML SP utility.

This module provides the main Click command group for the saml-sp CLI.
"""

from pathlib import Path
from typing import Optional

import click

from saml_sp import __version__
from saml_sp.cli.metadata_commands import metadata_group
from saml_sp.cli.mock_commands import mock_group
from saml_sp.cli.sp_commands import sp_group
from saml_sp.config import load_config
from saml_sp.logging_audit import configure_logging
from saml_sp.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="saml-sp")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
) -> None:
    """SAML SP utility - bootstrap a Service Provider and its IdP metadata.

    Common usage:

        # Fetch and inspect IdP metadata
        saml-sp metadata fetch https://idp.example.com/saml/metadata

        # Show the configured Service Provider
        saml-sp --config config/config.json sp show

        # Run a local mock IdP metadata server
        saml-sp mock start --fail-first 2

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose
    ctx.obj["log_file"] = log_file

    # Configure logging with precedence: CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file

    configure_logging(
        level=log_level,
        log_file=log_file_path,
        redact_secrets=config_obj.logging.redact_secrets,
    )


cli.add_command(metadata_group)
cli.add_command(mock_group)
cli.add_command(sp_group)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        saml-sp config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)

    sp = config_obj.service_provider
    click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
    click.echo(f"\nConfiguration file: {config_file}")

    click.echo("\nService Provider:")
    click.echo(f"  URL:               {sp.url}")
    click.echo(f"  Key path:          {sp.key_path or 'Not configured'}")
    click.echo(f"  Cert path:         {sp.cert_path or 'Not configured'}")
    click.echo(f"  IdP-initiated:     {sp.allow_idp_initiated}")
    click.echo(f"  IdP metadata URL:  {sp.idp_metadata_url or 'Not configured'}")
    click.echo(f"  IdP metadata file: {sp.idp_metadata_path or 'Not configured'}")

    click.echo("\nTransport:")
    click.echo(f"  Verify TLS:  {config_obj.transport.verify_tls}")
    click.echo(
        f"  Timeouts:    {config_obj.transport.timeout_connect}s connect, "
        f"{config_obj.transport.timeout_read}s read"
    )

    click.echo("\nRetry:")
    click.echo(f"  Attempts:    {config_obj.retry.max_attempts}")
    click.echo(f"  Delay:       {config_obj.retry.delay_seconds}s")

    click.echo("\nLogging:")
    click.echo(f"  Level:       {config_obj.logging.level}")
    click.echo(f"  Log file:    {config_obj.logging.log_file}")
    click.echo(f"  Redact keys: {config_obj.logging.redact_secrets}")


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"saml-sp version {__version__}")


if __name__ == "__main__":
    cli()
