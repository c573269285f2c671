"""Models module.

This module provides data models and dataclasses for the application.
"""

from saml_sp.models.certificate import CertificateInfo
from saml_sp.models.metadata import (
    Endpoint,
    EntitiesDescriptor,
    EntityDescriptor,
    IDPSSODescriptor,
    IndexedEndpoint,
    KeyDescriptor,
    SPSSODescriptor,
)

__all__ = [
    "CertificateInfo",
    "Endpoint",
    "EntitiesDescriptor",
    "EntityDescriptor",
    "IDPSSODescriptor",
    "IndexedEndpoint",
    "KeyDescriptor",
    "SPSSODescriptor",
]
