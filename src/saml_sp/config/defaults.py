"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

# Default configuration dictionary
# This is used as a fallback when no configuration file is present
DEFAULT_CONFIG: dict[str, Any] = {
    "service_provider": {
        # Local development SP
        "url": "http://localhost:8000",
        # No default key material - must be provided by user
        "key_path": None,
        "cert_path": None,
        "allow_idp_initiated": False,
        # Default to the local mock IdP metadata server
        "idp_metadata_url": "http://localhost:8080/saml/metadata",
        "idp_metadata_path": None,
    },
    "transport": {
        # Verify TLS certificates by default for security
        "verify_tls": True,
        "timeout_connect": 10,
        "timeout_read": 30,
    },
    "retry": {
        # 12 attempts with a fixed 5 second delay (about 55s worst case)
        "max_attempts": 12,
        "delay_seconds": 5.0,
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/saml-sp.log",
        # Mask private key blocks unless explicitly disabled
        "redact_secrets": True,
    },
}

# Default configuration file path
DEFAULT_CONFIG_PATH = "config/config.json"
