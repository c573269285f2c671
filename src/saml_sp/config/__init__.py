"""Config module.

This module provides configuration management functionality.
"""

from saml_sp.config.manager import (
    get_logging_config,
    get_retry_config,
    get_transport_config,
    load_config,
)
from saml_sp.config.schema import (
    Config,
    LoggingConfig,
    RetryConfig,
    ServiceProviderSettings,
    TransportConfig,
)

__all__ = [
    # Main configuration loading
    "load_config",
    # Helper functions
    "get_transport_config",
    "get_retry_config",
    "get_logging_config",
    # Configuration models
    "Config",
    "ServiceProviderSettings",
    "TransportConfig",
    "RetryConfig",
    "LoggingConfig",
]
