"""Candidate decoders for IdP metadata documents.

A metadata URL may publish either a single EntityDescriptor or an
EntitiesDescriptor aggregate. Candidate decoders are tried in priority
order: the first success wins, and when every candidate fails the error of
the highest-priority candidate is raised.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Sequence, Union

from saml_sp.metadata.parser import (
    ENTITIES_DESCRIPTOR,
    ENTITY_DESCRIPTOR,
    decode_entities_descriptor,
    decode_entity_descriptor,
)
from saml_sp.models.metadata import EntitiesDescriptor, EntityDescriptor
from saml_sp.utils.exceptions import MetadataDecodeError, NoIdentityProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateDecoder:
    """A named document shape and the function turning it into an IdP entity.

    Attributes:
        shape: Document shape name, used in logs
        decode: Callable taking raw bytes and returning an EntityDescriptor.
            Must raise MetadataDecodeError when the bytes are not this shape;
            any other exception is terminal and propagates unchanged.
    """

    shape: str
    decode: Callable[[bytes], EntityDescriptor]


def select_identity_provider(entities: EntitiesDescriptor) -> EntityDescriptor:
    """Select the first entity in document order that is an IdP.

    Args:
        entities: Decoded aggregate

    Returns:
        First EntityDescriptor carrying an IDPSSODescriptor

    Raises:
        NoIdentityProviderError: If no entity carries an IDPSSODescriptor
    """
    for entity in entities.entity_descriptors:
        if entity.has_idp_capability:
            logger.debug(f"Selected IdP entity {entity.entity_id} from aggregate")
            return entity
    raise NoIdentityProviderError(entities)


def _decode_aggregate(data: bytes) -> EntityDescriptor:
    return select_identity_provider(decode_entities_descriptor(data))


# A directly addressed EntityDescriptor is trusted as the IdP without
# checking its capability.
DEFAULT_DECODERS: tuple[CandidateDecoder, ...] = (
    CandidateDecoder(ENTITY_DESCRIPTOR, decode_entity_descriptor),
    CandidateDecoder(ENTITIES_DESCRIPTOR, _decode_aggregate),
)


def decode_metadata(
    data: Union[bytes, str],
    decoders: Sequence[CandidateDecoder] = DEFAULT_DECODERS,
) -> EntityDescriptor:
    """Decode an IdP metadata document under any accepted shape.

    Args:
        data: Raw XML document
        decoders: Candidate decoders in priority order

    Returns:
        The IdP EntityDescriptor

    Raises:
        MetadataDecodeError: If no candidate decodes the document. The error
            of the first candidate is raised.
        NoIdentityProviderError: If an aggregate decodes but has no IdP
        ValueError: If decoders is empty

    Example:
        >>> entity = decode_metadata(Path("idp-metadata.xml").read_bytes())
        >>> entity.has_idp_capability
        True
    """
    if not decoders:
        raise ValueError("At least one candidate decoder is required")

    if isinstance(data, str):
        data = data.encode("utf-8")

    errors: list[MetadataDecodeError] = []
    for candidate in decoders:
        try:
            return candidate.decode(data)
        except MetadataDecodeError as e:
            logger.debug(f"Metadata is not a valid {candidate.shape}: {e}")
            errors.append(e)

    raise errors[0]
