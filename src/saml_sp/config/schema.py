"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using pydantic.
All configuration values are validated according to the schema defined here.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def _validate_http_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid URL: {v}. Must start with http:// or https://"
        )
    return v


class ServiceProviderSettings(BaseModel):
    """Configuration of the local Service Provider and its IdP.

    Attributes:
        url: Base URL of the Service Provider; metadata and ACS endpoints
            are derived from it
        key_path: Path to the SP private key (PEM)
        cert_path: Path to the SP certificate (PEM)
        allow_idp_initiated: Whether unsolicited (IdP-initiated) logins are accepted
        idp_metadata_url: URL of the IdP metadata document
        idp_metadata_path: Path to a pre-fetched IdP metadata document
    """

    url: str = Field(..., description="Service Provider base URL")
    key_path: Optional[Path] = None
    cert_path: Optional[Path] = None
    allow_idp_initiated: bool = Field(
        default=False,
        description="Accept IdP-initiated (unsolicited) logins",
    )
    idp_metadata_url: Optional[str] = Field(
        default=None,
        description="IdP metadata URL",
    )
    idp_metadata_path: Optional[Path] = Field(
        default=None,
        description="Pre-fetched IdP metadata file",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate SP base URL is HTTP/HTTPS.

        Raises:
            ValueError: If URL does not start with http:// or https://
        """
        return _validate_http_url(v)

    @field_validator("idp_metadata_url")
    @classmethod
    def validate_metadata_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate IdP metadata URL is HTTP/HTTPS when set.

        Empty strings are treated as not configured.
        """
        if not v:
            return None
        return _validate_http_url(v)


class TransportConfig(BaseModel):
    """Configuration for HTTP/HTTPS transport.

    Attributes:
        verify_tls: Whether to verify TLS certificates
        timeout_connect: Connection timeout in seconds
        timeout_read: Read timeout in seconds
    """

    verify_tls: bool = True
    timeout_connect: int = Field(
        default=10,
        ge=1,
        description="Connection timeout in seconds"
    )
    timeout_read: int = Field(
        default=30,
        ge=1,
        description="Read timeout in seconds"
    )


class RetryConfig(BaseModel):
    """Retry configuration for IdP metadata fetching.

    Attributes:
        max_attempts: Total fetch attempts including the first
        delay_seconds: Fixed delay between attempts
    """

    max_attempts: int = Field(
        default=12,
        ge=1,
        description="Total metadata fetch attempts"
    )
    delay_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Fixed delay between attempts in seconds"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_secrets: Whether to mask private key material in logs
    """

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    log_file: Path = Field(
        default=Path("logs/saml-sp.log"),
        description="Log file path"
    )
    redact_secrets: bool = Field(
        default=True,
        description="Mask private key material in logs"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Returns:
            Validated log level (uppercase)

        Raises:
            ValueError: If log level is not valid
        """
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return v_upper


class Config(BaseModel):
    """Root configuration model.

    Attributes:
        service_provider: Local SP identity and IdP metadata source
        transport: HTTP/HTTPS transport configuration
        retry: Metadata fetch retry configuration
        logging: Logging configuration

    Example:
        >>> config = Config(
        ...     service_provider=ServiceProviderSettings(
        ...         url="https://sp.example.com",
        ...         idp_metadata_url="https://idp.example.com/saml/metadata",
        ...     ),
        ...     retry=RetryConfig(max_attempts=3),
        ... )
        >>> config.retry.delay_seconds
        5.0
    """

    service_provider: ServiceProviderSettings
    transport: TransportConfig = TransportConfig()
    retry: RetryConfig = RetryConfig()
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def validate_metadata_source(self) -> "Config":
        """Reject configurations naming both a metadata URL and a metadata file.

        Raises:
            ValueError: If both idp_metadata_url and idp_metadata_path are set
        """
        sp = self.service_provider
        if sp.idp_metadata_url and sp.idp_metadata_path:
            raise ValueError(
                "Configure either service_provider.idp_metadata_url or "
                "service_provider.idp_metadata_path, not both. "
                "Fix: Remove one of the two settings."
            )
        return self
