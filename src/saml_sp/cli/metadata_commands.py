"""IdP metadata CLI commands.

This module provides CLI commands for inspecting IdP metadata:
- metadata fetch: Resolve metadata from a URL with retries
- metadata parse: Decode a local metadata document
"""

import dataclasses
import json
import logging
from pathlib import Path
from typing import Optional

import click

from saml_sp.config.schema import Config
from saml_sp.metadata import MetadataResolver, RetryPolicy, decode_metadata
from saml_sp.models.metadata import EntityDescriptor
from saml_sp.sp.certificates import expires_within, get_certificate_info
from saml_sp.utils.exceptions import (
    CertificateDecodeError,
    MetadataDecodeError,
    MetadataError,
    MetadataFetchError,
    NoIdentityProviderError,
)

logger = logging.getLogger(__name__)


@click.group(name="metadata")
def metadata_group() -> None:
    """IdP metadata commands."""
    pass


@metadata_group.command(name="fetch")
@click.argument("url")
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=None,
    help="Total fetch attempts (default: retry.max_attempts from config)",
)
@click.option(
    "--delay",
    type=click.FloatRange(min=0.0),
    default=None,
    help="Fixed delay between attempts in seconds (default: retry.delay_seconds)",
)
@click.option(
    "--save",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the fetched document to this file",
)
@click.option("--json", "as_json", is_flag=True, help="Print the entity as JSON")
@click.pass_context
def fetch(
    ctx: click.Context,
    url: str,
    max_attempts: Optional[int],
    delay: Optional[float],
    save: Optional[Path],
    as_json: bool,
) -> None:
    """Fetch IdP metadata from URL and show the selected entity.

    Examples:

        saml-sp metadata fetch https://idp.example.com/saml/metadata

        # Fail fast against a local mock IdP
        saml-sp metadata fetch http://localhost:8080/saml/metadata \\
            --max-attempts 3 --delay 0.5 --save idp-metadata.xml
    """
    config: Config = ctx.obj["config"]
    policy = RetryPolicy(
        max_attempts=max_attempts or config.retry.max_attempts,
        delay=config.retry.delay_seconds if delay is None else delay,
    )

    try:
        with MetadataResolver(
            retry_policy=policy,
            timeout=(config.transport.timeout_connect, config.transport.timeout_read),
            verify_tls=config.transport.verify_tls,
        ) as resolver:
            data = resolver.fetch(url)
        entity = decode_metadata(data)
    except MetadataError as e:
        _echo_metadata_error(e)
        raise click.exceptions.Exit(1)

    if save:
        try:
            save.write_bytes(data)
        except OSError as e:
            click.echo(
                click.style("✗", fg="red", bold=True) + f" Failed to save metadata to {save}: {e}",
                err=True,
            )
            click.echo("  Check that the directory exists and is writable.", err=True)
            logger.error(f"Failed to save metadata to {save}: {e}")
            raise click.exceptions.Exit(1)
        click.echo(f"Saved metadata document to {save}", err=True)

    _output_entity(entity, as_json)


@metadata_group.command(name="parse")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print the entity as JSON")
def parse(file: Path, as_json: bool) -> None:
    """Decode a local IdP metadata document.

    Accepts a single EntityDescriptor or an EntitiesDescriptor aggregate,
    exactly like metadata fetch.

    Example:
        saml-sp metadata parse idp-metadata.xml
    """
    try:
        entity = decode_metadata(file.read_bytes())
    except MetadataError as e:
        _echo_metadata_error(e)
        raise click.exceptions.Exit(1)

    _output_entity(entity, as_json)


def _echo_metadata_error(error: MetadataError) -> None:
    """Print a metadata error with a hint matching its kind."""
    if isinstance(error, MetadataFetchError):
        hint = "Check network connectivity and the metadata URL."
    elif isinstance(error, MetadataDecodeError):
        hint = "Ensure the document is SAML 2.0 metadata (EntityDescriptor or EntitiesDescriptor)."
    elif isinstance(error, NoIdentityProviderError):
        hint = "The aggregate lists no entity with an IDPSSODescriptor."
    else:
        hint = ""

    click.echo(
        click.style("✗", fg="red", bold=True) + f" Metadata error: {error}",
        err=True,
    )
    if hint:
        click.echo(f"  {hint}", err=True)
    logger.error(f"Metadata error: {error}")


def _output_entity(entity: EntityDescriptor, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(dataclasses.asdict(entity), indent=2, default=str))
    else:
        _display_entity(entity)


def _display_entity(entity: EntityDescriptor) -> None:
    """Display an entity descriptor in readable format."""
    click.echo(click.style("✓", fg="green", bold=True) + f" Entity: {entity.entity_id}")
    if entity.valid_until:
        click.echo(f"Valid until:    {entity.valid_until.isoformat()}")
    if entity.cache_duration:
        click.echo(f"Cache duration: {entity.cache_duration}")

    idp = entity.idp_sso_descriptor
    if idp is None:
        click.echo("IdP role:       none (entity has no IDPSSODescriptor)")
        return

    click.echo(f"Protocols:      {idp.protocol_support_enumeration}")
    click.echo(f"Signed AuthnRequests wanted: {idp.want_authn_requests_signed}")

    click.echo("\nSingle Sign-On services:")
    for service in idp.single_sign_on_services:
        click.echo(f"  {service.binding}")
        click.echo(f"    {service.location}")

    if idp.single_logout_services:
        click.echo("\nSingle Logout services:")
        for service in idp.single_logout_services:
            click.echo(f"  {service.binding}")
            click.echo(f"    {service.location}")

    if idp.name_id_formats:
        click.echo("\nNameID formats:")
        for name_id_format in idp.name_id_formats:
            click.echo(f"  {name_id_format}")

    certificates = idp.signing_certificates()
    click.echo(f"\nSigning certificates: {len(certificates)}")
    for cert in certificates:
        try:
            info = get_certificate_info(cert)
        except CertificateDecodeError as e:
            click.echo(click.style(f"  ! {e}", fg="yellow"))
            continue
        click.echo(f"  Subject:  {info.subject}")
        click.echo(f"  Issuer:   {info.issuer}")
        expiry = info.not_after.strftime("%Y-%m-%d")
        if expires_within(info):
            click.echo(click.style(f"  Expires:  {expiry} (soon)", fg="yellow"))
        else:
            click.echo(f"  Expires:  {expiry}")
