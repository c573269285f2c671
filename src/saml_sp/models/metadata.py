"""Data models for SAML 2.0 metadata.

This module defines immutable dataclasses for the parts of SAML metadata
a Service Provider needs from its Identity Provider: entity descriptors,
role descriptors, endpoints, and published signing/encryption keys.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class Endpoint:
    """Protocol endpoint published in metadata.

    Attributes:
        binding: Binding URI (e.g., HTTP-Redirect, HTTP-POST)
        location: Endpoint URL
        response_location: Optional separate URL for responses
    """

    binding: str
    location: str
    response_location: Optional[str] = None


@dataclass(frozen=True)
class IndexedEndpoint:
    """Indexed endpoint such as an AssertionConsumerService."""

    binding: str
    location: str
    index: int
    is_default: Optional[bool] = None


@dataclass(frozen=True)
class KeyDescriptor:
    """Key material published for a role.

    Attributes:
        use: "signing", "encryption", or None when usable for both
        certificates: Base64 DER certificates from ds:X509Certificate elements
    """

    use: Optional[str]
    certificates: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IDPSSODescriptor:
    """Identity Provider SSO role descriptor.

    Its presence on an EntityDescriptor marks the entity as an IdP.

    Attributes:
        protocol_support_enumeration: Space separated protocol URIs
        want_authn_requests_signed: Whether the IdP wants signed AuthnRequests
        key_descriptors: Published keys
        single_sign_on_services: SSO endpoints
        single_logout_services: SLO endpoints
        name_id_formats: Supported NameID formats
    """

    protocol_support_enumeration: str
    want_authn_requests_signed: bool = False
    key_descriptors: Tuple[KeyDescriptor, ...] = ()
    single_sign_on_services: Tuple[Endpoint, ...] = ()
    single_logout_services: Tuple[Endpoint, ...] = ()
    name_id_formats: Tuple[str, ...] = ()

    def signing_certificates(self) -> Tuple[str, ...]:
        """Return certificates usable for signing, in document order."""
        return tuple(
            cert
            for key in self.key_descriptors
            if key.use in (None, "signing")
            for cert in key.certificates
        )


@dataclass(frozen=True)
class SPSSODescriptor:
    """Service Provider SSO role descriptor."""

    protocol_support_enumeration: str
    authn_requests_signed: bool = False
    want_assertions_signed: bool = False
    key_descriptors: Tuple[KeyDescriptor, ...] = ()
    assertion_consumer_services: Tuple[IndexedEndpoint, ...] = ()


@dataclass(frozen=True)
class EntityDescriptor:
    """Metadata of a single federation participant.

    Attributes:
        entity_id: Entity identifier (entityID attribute)
        valid_until: Optional expiry of the metadata
        cache_duration: Optional xs:duration caching hint, kept verbatim
        idp_sso_descriptor: IdP role, None when the entity is not an IdP
        sp_sso_descriptor: SP role, None when the entity is not an SP

    Example:
        >>> entity = EntityDescriptor(entity_id="https://idp.example.com")
        >>> entity.has_idp_capability
        False
    """

    entity_id: str
    valid_until: Optional[datetime] = None
    cache_duration: Optional[str] = None
    idp_sso_descriptor: Optional[IDPSSODescriptor] = None
    sp_sso_descriptor: Optional[SPSSODescriptor] = None

    @property
    def has_idp_capability(self) -> bool:
        """True if the entity publishes an IDPSSODescriptor."""
        return self.idp_sso_descriptor is not None


@dataclass(frozen=True)
class EntitiesDescriptor:
    """Aggregate of entity descriptors, e.g. a federation-wide export.

    Only direct EntityDescriptor children are kept, in document order.
    """

    entity_descriptors: Tuple[EntityDescriptor, ...] = ()
    name: Optional[str] = None
    valid_until: Optional[datetime] = None
