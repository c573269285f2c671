"""Data models for certificate display."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class CertificateInfo:
    """Certificate information for display and logging.

    Contains extracted metadata from X.509 certificates published in IdP
    metadata. Used for operator output only; no trust decisions are made
    from it.

    Attributes:
        subject: Certificate subject Distinguished Name (DN)
        issuer: Certificate issuer Distinguished Name (DN)
        not_before: Certificate validity start date
        not_after: Certificate expiration date
        serial_number: Certificate serial number
        key_size: Public key size in bits (e.g., 2048, 4096)
    """

    subject: str
    issuer: str
    not_before: datetime
    not_after: datetime
    serial_number: int
    key_size: Optional[int]
