"""IdP metadata acquisition and decoding.

This module provides the metadata resolver (fetch with fixed-delay retry)
and the candidate decoders for the two accepted document shapes.
"""

from saml_sp.metadata.decoders import (
    DEFAULT_DECODERS,
    CandidateDecoder,
    decode_metadata,
    select_identity_provider,
)
from saml_sp.metadata.parser import (
    decode_entities_descriptor,
    decode_entity_descriptor,
)
from saml_sp.metadata.resolver import (
    MetadataResolver,
    RetryPolicy,
    resolve_metadata,
)

__all__ = [
    # Resolution
    "MetadataResolver",
    "RetryPolicy",
    "resolve_metadata",
    # Decoding
    "CandidateDecoder",
    "DEFAULT_DECODERS",
    "decode_metadata",
    "decode_entity_descriptor",
    "decode_entities_descriptor",
    "select_identity_provider",
]
