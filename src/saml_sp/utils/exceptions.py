"""Custom exception classes for the SAML SP bootstrap utility.

All exceptions inherit from SAMLSPError to allow catching all custom exceptions.
"""

from typing import Any, Optional


class SAMLSPError(Exception):
    """Base exception for all SAML SP custom exceptions."""

    pass


class ConfigurationError(SAMLSPError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing required configuration
        - Invalid configuration file format
        - Key or certificate file cannot be read
    """

    pass


class CertificateDecodeError(SAMLSPError):
    """Raised when a certificate published in metadata cannot be decoded.

    Examples:
        - Invalid base64 in a ds:X509Certificate element
        - Bytes that are not a DER encoded X.509 certificate
    """

    pass


class MetadataError(SAMLSPError):
    """Base exception for IdP metadata resolution failures."""

    pass


class MetadataFetchError(MetadataError):
    """Raised when the metadata document could not be fetched.

    Raised for transport failures (connection refused, DNS, timeouts, body
    read errors) once the retry budget is exhausted.

    Attributes:
        url: Metadata URL that was requested
        attempts: Number of attempts made before giving up (0 until the
            resolver gives up)
    """

    def __init__(self, url: str, message: str, attempts: int = 0) -> None:
        self.url = url
        self.message = message
        self.attempts = attempts
        super().__init__(message)

    def __str__(self) -> str:
        if self.attempts:
            return f"{self.message} (after {self.attempts} attempts)"
        return self.message


class MetadataHTTPStatusError(MetadataFetchError):
    """Raised when the metadata URL answers with a non-2xx status.

    Attributes:
        status_code: HTTP status code
        reason: HTTP reason phrase
    """

    def __init__(
        self,
        url: str,
        status_code: int,
        reason: Optional[str] = None,
        attempts: int = 0,
    ) -> None:
        self.status_code = status_code
        self.reason = reason or ""
        super().__init__(
            url,
            f"{status_code} {self.reason}".strip(),
            attempts=attempts,
        )


class MetadataResolutionCancelled(MetadataError):
    """Raised when a caller cancels resolution between or during attempts."""

    def __init__(self, url: str, attempts: int) -> None:
        self.url = url
        self.attempts = attempts
        super().__init__(
            f"Metadata resolution of {url} cancelled after {attempts} attempts"
        )


class MetadataDecodeError(MetadataError):
    """Raised when a document does not decode under the attempted shape.

    Decode errors are never retried.

    Attributes:
        shape: Name of the attempted document shape
            (e.g., "EntityDescriptor", "EntitiesDescriptor")
    """

    def __init__(self, shape: str, message: str) -> None:
        self.shape = shape
        super().__init__(message)


class NoIdentityProviderError(MetadataError):
    """Raised when an aggregate has no entity with an IDPSSODescriptor.

    Attributes:
        entities: The parsed aggregate, kept for operator diagnosis
    """

    def __init__(self, entities: Any) -> None:
        self.entities = entities
        super().__init__(
            f"no entity returned with IDPSSODescriptor: {entities!r}"
        )
