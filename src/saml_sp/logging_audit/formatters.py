"""Custom log formatters for the SAML SP utility.

This module provides specialized formatters for logging, including redaction
of private key material.
"""

import logging
import re
from typing import List, Tuple


class SecretRedactingFormatter(logging.Formatter):
    """Formatter that masks private key material in log messages.

    Configuration dumps and error messages can end up containing the SP's
    PEM private key. When enabled, PEM private key blocks and inline
    ``key=...`` assignments are replaced before the record is emitted.
    Certificates are public and left untouched.

    Attributes:
        redact_secrets: Whether to enable redaction
        patterns: List of (regex_pattern, replacement_text) tuples for redaction

    Example:
        >>> formatter = SecretRedactingFormatter(
        ...     fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        ...     redact_secrets=True
        ... )
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact_secrets: bool = True,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_secrets = redact_secrets

        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # -----BEGIN [RSA |EC |ENCRYPTED ]PRIVATE KEY----- ... -----END ...-----
            (
                re.compile(
                    r"-----BEGIN ([A-Z ]*)PRIVATE KEY-----.*?-----END \1PRIVATE KEY-----",
                    re.DOTALL,
                ),
                "[PRIVATE-KEY-REDACTED]",
            ),
            # Matches: key='...', private_key="...", key=abc
            (
                re.compile(r"\b((?:private_)?key)=([\"']?)[^\s\"',)]+\2"),
                r"\1=[KEY-REDACTED]",
            ),
        ]

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with optional secret redaction."""
        original = super().format(record)

        if self.redact_secrets:
            for pattern, replacement in self.patterns:
                original = pattern.sub(replacement, original)

        return original
