"""Display helpers for certificates published in IdP metadata.

Certificates in metadata are base64 encoded DER inside
ds:X509Certificate elements. These helpers decode them for operator
output only; they make no trust decisions.
"""

import base64
import binascii
import logging
from datetime import datetime, timedelta, timezone

from cryptography import x509

from saml_sp.models.certificate import CertificateInfo
from saml_sp.utils.exceptions import CertificateDecodeError

logger = logging.getLogger(__name__)


def load_metadata_certificate(b64_der: str) -> x509.Certificate:
    """Decode a base64 DER certificate taken from metadata.

    Args:
        b64_der: Certificate text, whitespace allowed

    Returns:
        Loaded X.509 certificate

    Raises:
        CertificateDecodeError: If the text is not a base64 DER certificate
    """
    try:
        der = base64.b64decode("".join(b64_der.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CertificateDecodeError(f"Invalid base64 certificate data: {e}") from e

    try:
        return x509.load_der_x509_certificate(der)
    except ValueError as e:
        raise CertificateDecodeError(f"Invalid DER certificate: {e}") from e


def get_certificate_info(b64_der: str) -> CertificateInfo:
    """Extract certificate information for display and logging.

    Args:
        b64_der: Base64 DER certificate from a KeyDescriptor

    Returns:
        CertificateInfo dataclass with certificate details

    Raises:
        CertificateDecodeError: If the certificate cannot be decoded

    Example:
        >>> idp = resolver.resolve(url)
        >>> for cert in idp.idp_sso_descriptor.signing_certificates():
        ...     print(get_certificate_info(cert).subject)
        CN=idp.example.com
    """
    cert = load_metadata_certificate(b64_der)
    public_key = cert.public_key()
    key_size = public_key.key_size if hasattr(public_key, "key_size") else None

    return CertificateInfo(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        serial_number=cert.serial_number,
        key_size=key_size,
    )


def expires_within(info: CertificateInfo, days: int = 30) -> bool:
    """Check whether a certificate expires within the given number of days.

    Args:
        info: Certificate information
        days: Warning window in days

    Returns:
        True if the certificate has expired or expires within the window
    """
    remaining = info.not_after - datetime.now(timezone.utc)
    if remaining < timedelta(days=days):
        logger.warning(
            f"IdP certificate {info.subject} expires on "
            f"{info.not_after.strftime('%Y-%m-%d')}"
        )
        return True
    return False
