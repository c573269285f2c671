"""Service Provider configuration module.

This module builds the relying party's configuration and summarizes the
IdP certificates published in its metadata.
"""

from saml_sp.sp.certificates import expires_within, get_certificate_info
from saml_sp.sp.service_provider import (
    ServiceProvider,
    ServiceProviderOptions,
    new_service_provider,
    options_from_config,
    resolver_from_config,
)

__all__ = [
    "ServiceProvider",
    "ServiceProviderOptions",
    "new_service_provider",
    "options_from_config",
    "resolver_from_config",
    "get_certificate_info",
    "expires_within",
]
