"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading and management functionality,
including support for JSON configuration files, environment variable overrides,
and configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from saml_sp.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from saml_sp.config.schema import (
    Config,
    LoggingConfig,
    RetryConfig,
    TransportConfig,
)
from saml_sp.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "SAML_SP_"

# Inline secrets that must not live in configuration files
_SENSITIVE_KEYS = ("key", "private_key", "key_pem")


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (SAML_SP_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("custom/config.json"))
        >>> metadata_url = config.service_provider.idp_metadata_url
    """
    # Load .env file if present in project root
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)
    config_dict = _apply_env_overrides(config_dict)
    _check_sensitive_values(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format. See documentation for details."
        )


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If JSON is malformed or the file cannot be read
    """
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
            logger.info(f"Loaded configuration from {config_path}")
            return config_dict
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            )
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check file permissions and path"
            )
    else:
        logger.info(
            f"Config file not found: {config_path}. Using default configuration."
        )
        # Deep copy of defaults to avoid mutation
        return json.loads(json.dumps(DEFAULT_CONFIG))


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with SAML_SP_ prefix.

    Environment variables follow the pattern: SAML_SP_<FIELD>
    For example: SAML_SP_IDP_METADATA_URL, SAML_SP_LOG_LEVEL

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with environment overrides applied
    """
    # Service provider section
    if url := os.getenv(f"{ENV_PREFIX}URL"):
        config_dict.setdefault("service_provider", {})["url"] = url
        logger.debug("Override: url from environment")

    if key_path := os.getenv(f"{ENV_PREFIX}KEY_PATH"):
        config_dict.setdefault("service_provider", {})["key_path"] = key_path
        logger.debug("Override: key_path from environment")

    if cert_path := os.getenv(f"{ENV_PREFIX}CERT_PATH"):
        config_dict.setdefault("service_provider", {})["cert_path"] = cert_path
        logger.debug("Override: cert_path from environment")

    if allow_idp_initiated := os.getenv(f"{ENV_PREFIX}ALLOW_IDP_INITIATED"):
        config_dict.setdefault("service_provider", {})["allow_idp_initiated"] = _parse_bool(
            allow_idp_initiated
        )
        logger.debug("Override: allow_idp_initiated from environment")

    if metadata_url := os.getenv(f"{ENV_PREFIX}IDP_METADATA_URL"):
        sp = config_dict.setdefault("service_provider", {})
        sp["idp_metadata_url"] = metadata_url
        sp["idp_metadata_path"] = None
        logger.debug("Override: idp_metadata_url from environment")

    if metadata_path := os.getenv(f"{ENV_PREFIX}IDP_METADATA_PATH"):
        sp = config_dict.setdefault("service_provider", {})
        sp["idp_metadata_path"] = metadata_path
        sp["idp_metadata_url"] = None
        logger.debug("Override: idp_metadata_path from environment")

    # Transport section
    if verify_tls := os.getenv(f"{ENV_PREFIX}VERIFY_TLS"):
        config_dict.setdefault("transport", {})["verify_tls"] = _parse_bool(verify_tls)
        logger.debug("Override: verify_tls from environment")

    if timeout_connect := os.getenv(f"{ENV_PREFIX}TIMEOUT_CONNECT"):
        config_dict.setdefault("transport", {})["timeout_connect"] = int(timeout_connect)
        logger.debug("Override: timeout_connect from environment")

    if timeout_read := os.getenv(f"{ENV_PREFIX}TIMEOUT_READ"):
        config_dict.setdefault("transport", {})["timeout_read"] = int(timeout_read)
        logger.debug("Override: timeout_read from environment")

    # Retry section
    if max_attempts := os.getenv(f"{ENV_PREFIX}RETRY_MAX_ATTEMPTS"):
        config_dict.setdefault("retry", {})["max_attempts"] = int(max_attempts)
        logger.debug("Override: max_attempts from environment")

    if delay_seconds := os.getenv(f"{ENV_PREFIX}RETRY_DELAY"):
        config_dict.setdefault("retry", {})["delay_seconds"] = float(delay_seconds)
        logger.debug("Override: delay_seconds from environment")

    # Logging section
    if log_level := os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
        config_dict.setdefault("logging", {})["level"] = log_level
        logger.debug("Override: log_level from environment")

    if log_file := os.getenv(f"{ENV_PREFIX}LOG_FILE"):
        config_dict.setdefault("logging", {})["log_file"] = log_file
        logger.debug("Override: log_file from environment")

    if redact_secrets := os.getenv(f"{ENV_PREFIX}REDACT_SECRETS"):
        config_dict.setdefault("logging", {})["redact_secrets"] = _parse_bool(redact_secrets)
        logger.debug("Override: redact_secrets from environment")

    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string (case-insensitive)."""
    return value.lower() in ("true", "1", "yes", "on")


def _check_sensitive_values(config_dict: dict[str, Any]) -> None:
    """Warn when private key material is written inline in the config file.

    Args:
        config_dict: Configuration dictionary to check
    """
    sp = config_dict.get("service_provider") or {}
    for name in _SENSITIVE_KEYS:
        if name in sp:
            logger.warning(
                f"WARNING: Inline private key found in configuration "
                f"(service_provider.{name})! Private keys should be kept in a "
                f"separate file referenced by service_provider.key_path "
                f"or {ENV_PREFIX}KEY_PATH. The inline value is ignored."
            )
            sp.pop(name)


def get_transport_config(config: Config) -> TransportConfig:
    """Get transport configuration.

    Example:
        >>> transport = get_transport_config(load_config())
        >>> timeout = transport.timeout_connect
    """
    return config.transport


def get_retry_config(config: Config) -> RetryConfig:
    """Get metadata fetch retry configuration.

    Example:
        >>> retry = get_retry_config(load_config())
        >>> retry.max_attempts
        12
    """
    return config.retry


def get_logging_config(config: Config) -> LoggingConfig:
    """Get logging configuration.

    Example:
        >>> logging_cfg = get_logging_config(load_config())
        >>> log_level = logging_cfg.level
    """
    return config.logging
