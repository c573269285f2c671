"""SAML metadata documents served by the mock IdP.

Documents are built with lxml so the mock publishes exactly the two shapes
the resolver accepts: a single md:EntityDescriptor and an
md:EntitiesDescriptor aggregate.
"""

import base64
from pathlib import Path
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from lxml import etree

from saml_sp.metadata.parser import DS_NS, MD_NS

from .config import MockServerConfig

SAML2_PROTOCOL = "urn:oasis:names:tc:SAML:2.0:protocol"
HTTP_REDIRECT_BINDING = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
HTTP_POST_BINDING = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
NAMEID_TRANSIENT = "urn:oasis:names:tc:SAML:2.0:nameid-format:transient"

NSMAP = {"md": MD_NS, "ds": DS_NS}


def _md(local_name: str) -> str:
    return f"{{{MD_NS}}}{local_name}"


def _ds(local_name: str) -> str:
    return f"{{{DS_NS}}}{local_name}"


def load_certificate_b64(cert_path: Path) -> str:
    """Read a PEM certificate and return it as base64 DER for metadata."""
    cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
    return base64.b64encode(cert.public_bytes(serialization.Encoding.DER)).decode("ascii")


def build_idp_entity(
    entity_id: str,
    sso_url: str,
    certificate_b64: Optional[str] = None,
) -> etree._Element:
    """Build an EntityDescriptor element with an IDPSSODescriptor."""
    entity = etree.Element(_md("EntityDescriptor"), nsmap=NSMAP)
    entity.set("entityID", entity_id)

    idp = etree.SubElement(entity, _md("IDPSSODescriptor"))
    idp.set("protocolSupportEnumeration", SAML2_PROTOCOL)

    if certificate_b64:
        key = etree.SubElement(idp, _md("KeyDescriptor"))
        key.set("use", "signing")
        key_info = etree.SubElement(key, _ds("KeyInfo"))
        x509_data = etree.SubElement(key_info, _ds("X509Data"))
        etree.SubElement(x509_data, _ds("X509Certificate")).text = certificate_b64

    etree.SubElement(idp, _md("NameIDFormat")).text = NAMEID_TRANSIENT
    for binding in (HTTP_REDIRECT_BINDING, HTTP_POST_BINDING):
        sso = etree.SubElement(idp, _md("SingleSignOnService"))
        sso.set("Binding", binding)
        sso.set("Location", sso_url)

    return entity


def build_sp_entity(entity_id: str, acs_url: str) -> etree._Element:
    """Build an EntityDescriptor element with an SPSSODescriptor only."""
    entity = etree.Element(_md("EntityDescriptor"), nsmap=NSMAP)
    entity.set("entityID", entity_id)

    sp = etree.SubElement(entity, _md("SPSSODescriptor"))
    sp.set("protocolSupportEnumeration", SAML2_PROTOCOL)
    acs = etree.SubElement(sp, _md("AssertionConsumerService"))
    acs.set("Binding", HTTP_POST_BINDING)
    acs.set("Location", acs_url)
    acs.set("index", "1")

    return entity


def _certificate_for(config: MockServerConfig) -> Optional[str]:
    if config.signing_cert_path:
        return load_certificate_b64(Path(config.signing_cert_path))
    return None


def entity_descriptor_document(config: MockServerConfig) -> bytes:
    """Serialize the mock IdP as a single EntityDescriptor document."""
    entity = build_idp_entity(config.entity_id, config.sso_url, _certificate_for(config))
    return etree.tostring(entity, xml_declaration=True, encoding="UTF-8", pretty_print=True)


def entities_descriptor_document(config: MockServerConfig) -> bytes:
    """Serialize an aggregate listing an SP first and the mock IdP second."""
    aggregate = etree.Element(_md("EntitiesDescriptor"), nsmap=NSMAP)
    aggregate.set("Name", "mock-federation")

    sp_acs = config.sp_entity_id.rsplit("/saml/metadata", 1)[0] + "/saml/acs"
    aggregate.append(build_sp_entity(config.sp_entity_id, sp_acs))
    aggregate.append(
        build_idp_entity(config.entity_id, config.sso_url, _certificate_for(config))
    )
    return etree.tostring(aggregate, xml_declaration=True, encoding="UTF-8", pretty_print=True)
