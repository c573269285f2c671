"""Unit tests for the metadata HTTP session factory."""

import logging
import ssl
from unittest.mock import patch

import requests
from requests.adapters import HTTPAdapter

from saml_sp import __version__
from saml_sp.transport.http_client import TLS12Adapter, create_session


class TestCreateSession:
    """Tests for create_session."""

    def test_adapters_never_retry(self):
        session = create_session()
        try:
            http_adapter = session.get_adapter("http://idp.example.com/")
            https_adapter = session.get_adapter("https://idp.example.com/")

            assert type(http_adapter) is HTTPAdapter
            assert isinstance(https_adapter, TLS12Adapter)
            assert http_adapter.max_retries.total == 0
            assert https_adapter.max_retries.total == 0
        finally:
            session.close()

    def test_headers(self):
        session = create_session()
        try:
            assert session.headers["User-Agent"] == f"saml-sp/{__version__}"
            assert "application/samlmetadata+xml" in session.headers["Accept"]
        finally:
            session.close()

    def test_verify_enabled_by_default(self):
        session = create_session()
        try:
            assert session.verify is True
        finally:
            session.close()

    def test_verify_disabled_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="saml_sp.transport.http_client"):
            session = create_session(verify_tls=False)
        try:
            assert session.verify is False
            assert "TLS certificate verification is DISABLED" in caplog.text
        finally:
            session.close()

    def test_custom_user_agent(self):
        session = create_session(user_agent="test-agent/1.0")
        try:
            assert session.headers["User-Agent"] == "test-agent/1.0"
        finally:
            session.close()


class TestTLS12Adapter:
    """Tests for TLS12Adapter."""

    def test_minimum_tls_version(self):
        with patch.object(HTTPAdapter, "init_poolmanager") as mock_init:
            adapter = TLS12Adapter()
            adapter.init_poolmanager(10, 10)

        context = mock_init.call_args.kwargs["ssl_context"]
        assert context.minimum_version == ssl.TLSVersion.TLSv1_2
        assert isinstance(adapter, requests.adapters.HTTPAdapter)
