"""SAML Service Provider bootstrap utility.

Builds a relying party's SAML configuration and resolves its Identity
Provider's published metadata.
"""

__version__ = "0.1.0"
