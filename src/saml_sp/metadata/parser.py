"""Strict lxml decoding of SAML 2.0 metadata documents.

Two document shapes are supported:
- a single md:EntityDescriptor
- an md:EntitiesDescriptor aggregate of entity descriptors

Each decode function accepts the raw document bytes and either returns the
decoded model or raises MetadataDecodeError naming the attempted shape.
"""

import logging
import re
from datetime import datetime
from typing import Optional, Union

from lxml import etree

from saml_sp.models.metadata import (
    Endpoint,
    EntitiesDescriptor,
    EntityDescriptor,
    IDPSSODescriptor,
    IndexedEndpoint,
    KeyDescriptor,
    SPSSODescriptor,
)
from saml_sp.utils.exceptions import MetadataDecodeError

logger = logging.getLogger(__name__)

# SAML metadata namespaces
MD_NS = "urn:oasis:names:tc:SAML:2.0:metadata"
DS_NS = "http://www.w3.org/2000/09/xmldsig#"

ENTITY_DESCRIPTOR = "EntityDescriptor"
ENTITIES_DESCRIPTOR = "EntitiesDescriptor"

_XS_TRUE = ("true", "1")
_XS_FALSE = ("false", "0")

# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def _md(local_name: str) -> str:
    return f"{{{MD_NS}}}{local_name}"


def _ds(local_name: str) -> str:
    return f"{{{DS_NS}}}{local_name}"


def _secure_parser() -> etree.XMLParser:
    """Create a parser that never resolves entities or touches the network."""
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        huge_tree=False,
    )


def _parse_root(data: Union[bytes, str], shape: str, expected_tag: str) -> etree._Element:
    """Parse document bytes and check the root element.

    Args:
        data: Raw XML document
        shape: Shape name used in error messages
        expected_tag: Local name the root element must have (metadata namespace)

    Returns:
        Root element

    Raises:
        MetadataDecodeError: If XML is malformed or the root element differs
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    if not data or not data.strip():
        raise MetadataDecodeError(shape, f"{shape}: empty document")

    try:
        root = etree.fromstring(data, parser=_secure_parser())
    except etree.XMLSyntaxError as e:
        raise MetadataDecodeError(shape, f"{shape}: malformed XML: {e}") from e

    if root.tag != _md(expected_tag):
        qname = etree.QName(root)
        raise MetadataDecodeError(
            shape,
            f"{shape}: expected element type <{expected_tag}> in namespace "
            f"{MD_NS} but have <{qname.localname}>"
            + (f" in namespace {qname.namespace}" if qname.namespace else ""),
        )
    return root


def _parse_datetime(value: Optional[str], shape: str, attribute: str) -> Optional[datetime]:
    if value is None:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text)
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise MetadataDecodeError(
            shape, f"{shape}: invalid {attribute} value {value!r}: {e}"
        ) from e


def _parse_bool(value: Optional[str], shape: str, attribute: str, default: Optional[bool] = False) -> Optional[bool]:
    if value is None:
        return default
    text = value.strip().lower()
    if text in _XS_TRUE:
        return True
    if text in _XS_FALSE:
        return False
    raise MetadataDecodeError(
        shape, f"{shape}: invalid boolean {attribute} value {value!r}"
    )


def _required(element: etree._Element, attribute: str, shape: str) -> str:
    value = element.get(attribute)
    if not value:
        local_name = etree.QName(element).localname
        raise MetadataDecodeError(
            shape, f"{shape}: <{local_name}> is missing required attribute {attribute}"
        )
    return value


def _key_descriptors(role: etree._Element) -> tuple[KeyDescriptor, ...]:
    keys = []
    for key_elem in role.findall(_md("KeyDescriptor")):
        certificates = tuple(
            "".join((cert.text or "").split())
            for cert in key_elem.iterfind(
                f"{_ds('KeyInfo')}/{_ds('X509Data')}/{_ds('X509Certificate')}"
            )
        )
        keys.append(KeyDescriptor(use=key_elem.get("use"), certificates=certificates))
    return tuple(keys)


def _usable_endpoint(elem: etree._Element, local_name: str) -> bool:
    """Check that an endpoint carries Binding and Location; broken ones are skipped."""
    if elem.get("Binding") and elem.get("Location"):
        return True
    logger.debug(f"Skipping <{local_name}> without Binding or Location")
    return False


def _endpoints(role: etree._Element, local_name: str) -> tuple[Endpoint, ...]:
    return tuple(
        Endpoint(
            binding=elem.get("Binding"),
            location=elem.get("Location"),
            response_location=elem.get("ResponseLocation"),
        )
        for elem in role.findall(_md(local_name))
        if _usable_endpoint(elem, local_name)
    )


def _indexed_endpoints(role: etree._Element, local_name: str, shape: str) -> tuple[IndexedEndpoint, ...]:
    endpoints = []
    for elem in role.findall(_md(local_name)):
        if not _usable_endpoint(elem, local_name):
            continue
        index = elem.get("index", "")
        try:
            index_value = int(index)
        except ValueError:
            logger.debug(f"Skipping <{local_name}> with invalid index {index!r}")
            continue
        endpoints.append(
            IndexedEndpoint(
                binding=elem.get("Binding"),
                location=elem.get("Location"),
                index=index_value,
                is_default=_parse_bool(elem.get("isDefault"), shape, "isDefault", default=None),
            )
        )
    return tuple(endpoints)


def _idp_descriptor(role: etree._Element, shape: str) -> IDPSSODescriptor:
    return IDPSSODescriptor(
        protocol_support_enumeration=role.get("protocolSupportEnumeration", ""),
        want_authn_requests_signed=_parse_bool(
            role.get("WantAuthnRequestsSigned"), shape, "WantAuthnRequestsSigned"
        ),
        key_descriptors=_key_descriptors(role),
        single_sign_on_services=_endpoints(role, "SingleSignOnService"),
        single_logout_services=_endpoints(role, "SingleLogoutService"),
        name_id_formats=tuple(
            (elem.text or "").strip() for elem in role.findall(_md("NameIDFormat"))
        ),
    )


def _sp_descriptor(role: etree._Element, shape: str) -> SPSSODescriptor:
    return SPSSODescriptor(
        protocol_support_enumeration=role.get("protocolSupportEnumeration", ""),
        authn_requests_signed=_parse_bool(
            role.get("AuthnRequestsSigned"), shape, "AuthnRequestsSigned"
        ),
        want_assertions_signed=_parse_bool(
            role.get("WantAssertionsSigned"), shape, "WantAssertionsSigned"
        ),
        key_descriptors=_key_descriptors(role),
        assertion_consumer_services=_indexed_endpoints(role, "AssertionConsumerService", shape),
    )


def _entity_from_element(element: etree._Element, shape: str) -> EntityDescriptor:
    idp_elem = element.find(_md("IDPSSODescriptor"))
    sp_elem = element.find(_md("SPSSODescriptor"))
    return EntityDescriptor(
        entity_id=_required(element, "entityID", shape),
        valid_until=_parse_datetime(element.get("validUntil"), shape, "validUntil"),
        cache_duration=element.get("cacheDuration"),
        idp_sso_descriptor=_idp_descriptor(idp_elem, shape) if idp_elem is not None else None,
        sp_sso_descriptor=_sp_descriptor(sp_elem, shape) if sp_elem is not None else None,
    )


def decode_entity_descriptor(data: Union[bytes, str]) -> EntityDescriptor:
    """Decode a document whose root is a single md:EntityDescriptor.

    Args:
        data: Raw XML document

    Returns:
        Decoded EntityDescriptor

    Raises:
        MetadataDecodeError: If the document is not a valid EntityDescriptor

    Example:
        >>> entity = decode_entity_descriptor(response.content)
        >>> entity.entity_id
        'https://idp.example.com/metadata'
    """
    root = _parse_root(data, ENTITY_DESCRIPTOR, ENTITY_DESCRIPTOR)
    entity = _entity_from_element(root, ENTITY_DESCRIPTOR)
    logger.debug(f"Decoded EntityDescriptor: {entity.entity_id}")
    return entity


def decode_entities_descriptor(data: Union[bytes, str]) -> EntitiesDescriptor:
    """Decode a document whose root is an md:EntitiesDescriptor aggregate.

    Only direct EntityDescriptor children are decoded. A child without an
    entityID or with an invalid validUntil fails the whole aggregate; broken
    endpoints inside role descriptors are skipped.

    Args:
        data: Raw XML document

    Returns:
        Decoded EntitiesDescriptor with entities in document order

    Raises:
        MetadataDecodeError: If the document is not a valid EntitiesDescriptor
    """
    root = _parse_root(data, ENTITIES_DESCRIPTOR, ENTITIES_DESCRIPTOR)
    entities = EntitiesDescriptor(
        entity_descriptors=tuple(
            _entity_from_element(child, ENTITIES_DESCRIPTOR)
            for child in root.findall(_md(ENTITY_DESCRIPTOR))
        ),
        name=root.get("Name"),
        valid_until=_parse_datetime(root.get("validUntil"), ENTITIES_DESCRIPTOR, "validUntil"),
    )
    logger.debug(
        f"Decoded EntitiesDescriptor with {len(entities.entity_descriptors)} entities"
    )
    return entities
