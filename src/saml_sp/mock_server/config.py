"""Configuration management for the mock IdP metadata server."""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_FILE = Path("mocks/config.json")


class MockServerConfig(BaseModel):
    """Mock IdP metadata server configuration model.

    Configuration precedence:
    1. Environment variables (MOCK_IDP_* prefix)
    2. JSON config file
    3. Default values

    Attributes:
        host: Server host address
        port: Server port
        entity_id: entityID of the mock IdP
        sso_url: SingleSignOnService location published for the IdP
        sp_entity_id: entityID of the SP listed before the IdP in the aggregate
        signing_cert_path: Optional PEM certificate published as IdP signing key
        metadata_endpoint: Path serving a single EntityDescriptor
        aggregate_endpoint: Path serving an EntitiesDescriptor aggregate
        fail_first_n: Number of metadata requests answered with failure_status
        failure_status: HTTP status used for injected failures
        log_level: Logging level
    """

    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8080, description="HTTP server port")
    entity_id: str = Field(
        default="http://localhost:8080/saml/metadata",
        description="Mock IdP entityID",
    )
    sso_url: str = Field(
        default="http://localhost:8080/saml/sso",
        description="Mock IdP SingleSignOnService location",
    )
    sp_entity_id: str = Field(
        default="http://localhost:8000/saml/metadata",
        description="SP entityID listed in the aggregate",
    )
    signing_cert_path: Optional[str] = Field(
        default=None,
        description="PEM certificate published as the IdP signing key",
    )
    metadata_endpoint: str = Field(default="/saml/metadata", description="EntityDescriptor path")
    aggregate_endpoint: str = Field(
        default="/saml/metadata/aggregate",
        description="EntitiesDescriptor path",
    )
    fail_first_n: int = Field(
        default=0,
        ge=0,
        description="Answer the first N metadata requests with failure_status",
    )
    failure_status: int = Field(
        default=503,
        ge=400,
        le=599,
        description="HTTP status for injected failures",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(valid_levels)}"
            )
        return v_upper

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"Invalid port {v}. Must be between 1 and 65535.")
        return v


def load_config(config_file: Path | None = None) -> MockServerConfig:
    """Load mock server configuration from file and environment variables.

    Args:
        config_file: Path to configuration JSON file. Defaults to mocks/config.json

    Returns:
        MockServerConfig instance with merged configuration

    Raises:
        FileNotFoundError: If config file specified but not found
        ValueError: If configuration is invalid
    """
    if config_file is None:
        config_file = DEFAULT_CONFIG_FILE

    config_data = {}
    if config_file.exists():
        try:
            with open(config_file, encoding="utf-8") as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Failed to parse configuration file '{config_file}': {e}. "
                f"Ensure the file contains valid JSON."
            )
    elif config_file != DEFAULT_CONFIG_FILE:
        # Only raise if non-default config file was explicitly specified
        raise FileNotFoundError(
            f"Configuration file not found: '{config_file}'. "
            f"Ensure the file exists or check the path."
        )

    # Override with environment variables (MOCK_IDP_ prefix)
    env_prefix = "MOCK_IDP_"
    int_fields = ("port", "fail_first_n", "failure_status")
    for key in MockServerConfig.model_fields.keys():
        env_key = f"{env_prefix}{key.upper()}"
        if env_key in os.environ:
            value = os.environ[env_key]
            if key in int_fields:
                try:
                    config_data[key] = int(value)
                except ValueError:
                    raise ValueError(
                        f"Invalid {env_key} value '{value}'. Must be an integer."
                    )
            else:
                config_data[key] = value

    return MockServerConfig(**config_data)
