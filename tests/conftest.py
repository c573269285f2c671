"""
Shared pytest configuration and fixtures.

This module provides fixtures used across the unit and integration test
suites: SAML metadata documents in both accepted shapes and a generated
IdP signing certificate.
"""

import base64
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

MD_NS = "urn:oasis:names:tc:SAML:2.0:metadata"
DS_NS = "http://www.w3.org/2000/09/xmldsig#"

IDP_ENTITY_ID = "https://idp.example.com/saml/metadata"
SP_ENTITY_ID = "https://sp.example.com/saml/metadata"


def generate_certificate(
    common_name: str = "idp.example.com",
    days_valid: int = 365,
) -> tuple[x509.Certificate, rsa.RSAPrivateKey]:
    """Generate a self-signed certificate for tests.

    Args:
        common_name: Subject and issuer CN
        days_valid: Validity period starting yesterday

    Returns:
        Tuple of (certificate, private key)
    """
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "TestOrg"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=days_valid))
        .sign(private_key, hashes.SHA256())
    )
    return certificate, private_key


def certificate_b64(certificate: x509.Certificate) -> str:
    """Return certificate as base64 DER, the form used in ds:X509Certificate."""
    return base64.b64encode(certificate.public_bytes(serialization.Encoding.DER)).decode("ascii")


def idp_entity_element(entity_id: str = IDP_ENTITY_ID, cert_b64: str = "") -> str:
    """Return an EntityDescriptor element with an IDPSSODescriptor."""
    key_descriptor = ""
    if cert_b64:
        key_descriptor = f"""
    <md:KeyDescriptor use="signing">
      <ds:KeyInfo>
        <ds:X509Data>
          <ds:X509Certificate>{cert_b64}</ds:X509Certificate>
        </ds:X509Data>
      </ds:KeyInfo>
    </md:KeyDescriptor>"""
    return f"""<md:EntityDescriptor xmlns:md="{MD_NS}" xmlns:ds="{DS_NS}" entityID="{entity_id}">
  <md:IDPSSODescriptor protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol"
                       WantAuthnRequestsSigned="true">{key_descriptor}
    <md:SingleLogoutService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
                            Location="https://idp.example.com/saml/slo"/>
    <md:NameIDFormat>urn:oasis:names:tc:SAML:2.0:nameid-format:transient</md:NameIDFormat>
    <md:SingleSignOnService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
                            Location="https://idp.example.com/saml/sso"/>
    <md:SingleSignOnService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
                            Location="https://idp.example.com/saml/sso"/>
  </md:IDPSSODescriptor>
</md:EntityDescriptor>"""


def sp_entity_element(entity_id: str = SP_ENTITY_ID) -> str:
    """Return an EntityDescriptor element with only an SPSSODescriptor."""
    return f"""<md:EntityDescriptor xmlns:md="{MD_NS}" entityID="{entity_id}">
  <md:SPSSODescriptor protocolSupportEnumeration="urn:oasis:names:tc:SAML:2.0:protocol"
                      AuthnRequestsSigned="true" WantAssertionsSigned="true">
    <md:AssertionConsumerService Binding="urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
                                 Location="https://sp.example.com/saml/acs" index="1"
                                 isDefault="true"/>
  </md:SPSSODescriptor>
</md:EntityDescriptor>"""


def aggregate_document(*entities: str, name: str = "test-federation") -> bytes:
    """Wrap entity elements in an EntitiesDescriptor document."""
    body = "\n".join(entities)
    return (
        f'<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<md:EntitiesDescriptor xmlns:md="{MD_NS}" Name="{name}">\n{body}\n'
        f"</md:EntitiesDescriptor>"
    ).encode("utf-8")


@pytest.fixture(scope="session")
def idp_certificate() -> tuple[x509.Certificate, rsa.RSAPrivateKey]:
    """Session-scoped IdP signing certificate and key."""
    return generate_certificate()


@pytest.fixture(scope="session")
def idp_certificate_b64(idp_certificate) -> str:
    """IdP signing certificate as base64 DER."""
    certificate, _ = idp_certificate
    return certificate_b64(certificate)


@pytest.fixture
def idp_metadata_xml(idp_certificate_b64: str) -> bytes:
    """Single EntityDescriptor document for the IdP."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        + idp_entity_element(cert_b64=idp_certificate_b64)
    ).encode("utf-8")


@pytest.fixture
def sp_metadata_xml() -> bytes:
    """Single EntityDescriptor document without an IdP role."""
    return sp_entity_element().encode("utf-8")


@pytest.fixture
def aggregate_metadata_xml(idp_certificate_b64: str) -> bytes:
    """Aggregate listing an SP first and the IdP second."""
    return aggregate_document(
        sp_entity_element(),
        idp_entity_element(cert_b64=idp_certificate_b64),
    )


@pytest.fixture
def aggregate_without_idp_xml() -> bytes:
    """Aggregate listing only SP entities."""
    return aggregate_document(
        sp_entity_element("https://sp-a.example.com/saml/metadata"),
        sp_entity_element("https://sp-b.example.com/saml/metadata"),
    )


@pytest.fixture
def sp_key_files(tmp_path: Path) -> tuple[Path, Path]:
    """Write an SP key and certificate as PEM files.

    Returns:
        Tuple of (key_path, cert_path)
    """
    certificate, private_key = generate_certificate("sp.example.com")
    key_path = tmp_path / "sp-key.pem"
    cert_path = tmp_path / "sp-cert.pem"
    key_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    cert_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    return key_path, cert_path


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Isolate tests from SAML_SP_* / MOCK_IDP_* variables and a local .env.

    Changes into tmp_path so default relative paths (config/, logs/, mocks/)
    resolve inside the test directory.
    """
    for name in list(os.environ):
        if name.startswith(("SAML_SP_", "MOCK_IDP_")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def make_idp_entity():
    """Factory for IdP EntityDescriptor elements."""
    return idp_entity_element


@pytest.fixture
def make_sp_entity():
    """Factory for SP-only EntityDescriptor elements."""
    return sp_entity_element


@pytest.fixture
def make_aggregate():
    """Factory wrapping entity elements in an EntitiesDescriptor document."""
    return aggregate_document


@pytest.fixture
def make_certificate():
    """Factory for self-signed certificates as (certificate, key)."""
    return generate_certificate


@pytest.fixture
def reset_logging():
    """Remove handlers installed by configure_logging after the test."""
    import saml_sp.logging_audit.logger as logger_module

    yield
    root_logger = logging.getLogger()
    while logger_module._installed_handlers:
        handler = logger_module._installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()
