"""Service Provider CLI commands."""

import logging

import click

from saml_sp.config.schema import Config
from saml_sp.sp import new_service_provider, options_from_config, resolver_from_config
from saml_sp.utils.exceptions import ConfigurationError, MetadataError

logger = logging.getLogger(__name__)


@click.group(name="sp")
def sp_group() -> None:
    """Service Provider commands."""
    pass


@sp_group.command(name="show")
@click.pass_context
def show(ctx: click.Context) -> None:
    """Build the Service Provider from configuration and show it.

    Resolves the IdP metadata URL when one is configured. A resolution
    failure means the Service Provider cannot operate and exits with 1.

    Example:
        saml-sp --config config/config.json sp show
    """
    config: Config = ctx.obj["config"]

    try:
        options = options_from_config(config)
        with resolver_from_config(config) as resolver:
            sp = new_service_provider(options, resolver)
    except ConfigurationError as e:
        click.echo(
            click.style("✗", fg="red", bold=True) + f" Configuration error: {e}",
            err=True,
        )
        raise click.exceptions.Exit(1)
    except MetadataError as e:
        click.echo(
            click.style("✗", fg="red", bold=True)
            + f" IdP metadata could not be resolved: {e}",
            err=True,
        )
        logger.error(f"Service Provider unavailable: {e}")
        raise click.exceptions.Exit(1)

    click.echo(click.style("✓", fg="green", bold=True) + " Service Provider configured")
    click.echo(f"Metadata URL:   {sp.metadata_url}")
    click.echo(f"ACS URL:        {sp.acs_url}")
    click.echo(f"Key:            {'configured' if sp.key else 'not configured'}")
    click.echo(f"Certificate:    {'configured' if sp.certificate else 'not configured'}")
    click.echo(f"IdP-initiated:  {'allowed' if sp.allow_idp_initiated else 'rejected'}")
    if sp.idp_metadata is None:
        click.echo(
            click.style("IdP:            not configured (provide it out of band)", fg="yellow")
        )
    else:
        click.echo(f"IdP:            {sp.idp_metadata.entity_id}")
