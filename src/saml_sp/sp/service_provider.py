"""Service Provider configuration.

Builds the relying party's SAML configuration from its identity, key
material and IdP metadata source. When an IdP metadata URL is configured,
the metadata resolver runs and its result becomes the trusted IdP
descriptor; a resolution failure makes the configuration unavailable.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from saml_sp.config.schema import Config
from saml_sp.metadata.decoders import decode_metadata
from saml_sp.metadata.resolver import MetadataResolver, RetryPolicy
from saml_sp.models.metadata import EntityDescriptor
from saml_sp.utils.exceptions import ConfigurationError, MetadataDecodeError

logger = logging.getLogger(__name__)

METADATA_PATH = "/saml/metadata"
ACS_PATH = "/saml/acs"


@dataclass
class ServiceProviderOptions:
    """Parameters for building a ServiceProvider.

    Exactly one of idp_metadata and idp_metadata_url is expected to be set.
    Both absent is legal: the IdP descriptor is then left for the caller to
    populate out of band.

    Attributes:
        url: Base URL of the Service Provider
        key: SP private key (PEM text, opaque here)
        certificate: SP certificate (PEM text, opaque here)
        allow_idp_initiated: Accept unsolicited (IdP-initiated) logins
        idp_metadata: Pre-fetched IdP descriptor
        idp_metadata_url: URL to fetch the IdP descriptor from
    """

    url: str
    key: str = ""
    certificate: str = ""
    allow_idp_initiated: bool = False
    idp_metadata: Optional[EntityDescriptor] = None
    idp_metadata_url: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"ServiceProviderOptions(url={self.url!r}, key=<{len(self.key)} chars>, "
            f"allow_idp_initiated={self.allow_idp_initiated!r}, "
            f"idp_metadata={self.idp_metadata!r}, "
            f"idp_metadata_url={self.idp_metadata_url!r})"
        )


@dataclass
class ServiceProvider:
    """Resolved Service Provider configuration.

    Attributes:
        key: SP private key (PEM text)
        certificate: SP certificate (PEM text)
        metadata_url: URL where the SP publishes its own metadata
        acs_url: Assertion Consumer Service URL
        idp_metadata: Trusted IdP descriptor, None until populated
        allow_idp_initiated: Accept unsolicited (IdP-initiated) logins
    """

    key: str
    certificate: str
    metadata_url: str
    acs_url: str
    idp_metadata: Optional[EntityDescriptor] = None
    allow_idp_initiated: bool = False

    def __repr__(self) -> str:
        idp = self.idp_metadata.entity_id if self.idp_metadata else None
        return (
            f"ServiceProvider(metadata_url={self.metadata_url!r}, "
            f"acs_url={self.acs_url!r}, idp={idp!r}, "
            f"allow_idp_initiated={self.allow_idp_initiated!r})"
        )


def new_service_provider(
    options: ServiceProviderOptions,
    resolver: Optional[MetadataResolver] = None,
) -> ServiceProvider:
    """Build a ServiceProvider, resolving IdP metadata if a URL is given.

    Args:
        options: SP identity, keys and IdP metadata source
        resolver: Resolver used for idp_metadata_url. A default resolver
            (12 attempts, 5s fixed delay) is created and closed if not provided.

    Returns:
        ServiceProvider with endpoint URLs <url>/saml/metadata and <url>/saml/acs

    Raises:
        MetadataError: If the IdP metadata URL cannot be resolved. There is
            no partial configuration.

    Example:
        >>> sp = new_service_provider(ServiceProviderOptions(
        ...     url="https://sp.example.com",
        ...     key=key_pem,
        ...     certificate=cert_pem,
        ...     idp_metadata_url="https://idp.example.com/saml/metadata",
        ... ))
        >>> sp.acs_url
        'https://sp.example.com/saml/acs'
    """
    base_url = options.url.rstrip("/")
    sp = ServiceProvider(
        key=options.key,
        certificate=options.certificate,
        metadata_url=base_url + METADATA_PATH,
        acs_url=base_url + ACS_PATH,
        idp_metadata=options.idp_metadata,
        allow_idp_initiated=options.allow_idp_initiated,
    )

    if not options.idp_metadata_url:
        if sp.idp_metadata is None:
            logger.info(
                "No IdP metadata or metadata URL configured; "
                "IdP descriptor must be provided out of band"
            )
        return sp

    if options.idp_metadata is not None:
        logger.warning(
            f"Both idp_metadata and idp_metadata_url are set; "
            f"metadata from {options.idp_metadata_url} replaces the pre-fetched descriptor"
        )

    if resolver is None:
        with MetadataResolver() as default_resolver:
            sp.idp_metadata = default_resolver.resolve(options.idp_metadata_url)
    else:
        sp.idp_metadata = resolver.resolve(options.idp_metadata_url)

    return sp


def _read_text(path: Optional[Path], what: str) -> str:
    if path is None:
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read {what} file: {path}\n"
            f"Error: {e}\n"
            f"Fix: Check file permissions and path"
        ) from e


def options_from_config(config: Config) -> ServiceProviderOptions:
    """Build ServiceProviderOptions from loaded configuration.

    Reads key and certificate text from their paths, and decodes a local
    pre-fetched IdP metadata file when one is configured.

    Args:
        config: Loaded configuration

    Returns:
        ServiceProviderOptions

    Raises:
        ConfigurationError: If a configured file cannot be read or the
            metadata file does not decode
        NoIdentityProviderError: If the metadata file is an aggregate without an IdP
    """
    settings = config.service_provider

    idp_metadata = None
    if settings.idp_metadata_path is not None:
        try:
            data = settings.idp_metadata_path.read_bytes()
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read IdP metadata file: {settings.idp_metadata_path}\n"
                f"Error: {e}"
            ) from e
        try:
            idp_metadata = decode_metadata(data)
        except MetadataDecodeError as e:
            raise ConfigurationError(
                f"Invalid IdP metadata file: {settings.idp_metadata_path}\n"
                f"Error: {e}"
            ) from e
        logger.info(
            f"Loaded IdP metadata for {idp_metadata.entity_id} "
            f"from {settings.idp_metadata_path}"
        )

    return ServiceProviderOptions(
        url=settings.url,
        key=_read_text(settings.key_path, "private key"),
        certificate=_read_text(settings.cert_path, "certificate"),
        allow_idp_initiated=settings.allow_idp_initiated,
        idp_metadata=idp_metadata,
        idp_metadata_url=settings.idp_metadata_url,
    )


def resolver_from_config(config: Config) -> MetadataResolver:
    """Build a MetadataResolver from transport and retry configuration.

    The returned resolver owns its session; close it when done.

    Example:
        >>> with resolver_from_config(config) as resolver:
        ...     sp = new_service_provider(options_from_config(config), resolver)
    """
    return MetadataResolver(
        retry_policy=RetryPolicy(
            max_attempts=config.retry.max_attempts,
            delay=config.retry.delay_seconds,
        ),
        timeout=(config.transport.timeout_connect, config.transport.timeout_read),
        verify_tls=config.transport.verify_tls,
    )
