"""Integration test fixtures and configuration.

This module provides fixtures that run the mock IdP metadata server on a
real socket so the resolver is exercised over HTTP, including retries
against injected failures.
"""

import logging
import socket
import threading
import time
from typing import Callable, Generator, Iterator

import pytest
import requests
from werkzeug.serving import BaseWSGIServer, make_server

from saml_sp.mock_server.app import create_app
from saml_sp.mock_server.config import MockServerConfig

logger = logging.getLogger(__name__)


def find_free_port() -> int:
    """Find an available port on localhost.

    Returns:
        int: An available port number.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


def wait_for_server(url: str, timeout: float = 10.0, interval: float = 0.1) -> bool:
    """Wait for server to become available.

    Args:
        url: URL to check (e.g., health endpoint).
        timeout: Maximum time to wait in seconds.
        interval: Time between checks in seconds.

    Returns:
        bool: True if server became available, False if timeout.
    """
    start_time = time.time()
    while time.time() - start_time < timeout:
        try:
            response = requests.get(url, timeout=1)
            if response.status_code == 200:
                return True
        except requests.exceptions.RequestException:
            pass
        time.sleep(interval)
    return False


@pytest.fixture
def mock_idp_server() -> Iterator[Callable[..., str]]:
    """Start mock IdP servers on free ports in background threads.

    Yields a factory taking MockServerConfig overrides and returning the
    server's base URL. Every started server is shut down after the test.

    Usage:
        def test_resolution(mock_idp_server):
            base_url = mock_idp_server(fail_first_n=2)
            entity = resolve_metadata(f"{base_url}/saml/metadata")
    """
    servers: list[tuple[BaseWSGIServer, threading.Thread]] = []

    def start(**overrides) -> str:
        port = find_free_port()
        base_url = f"http://127.0.0.1:{port}"
        config = MockServerConfig(
            host="127.0.0.1",
            port=port,
            entity_id=f"{base_url}/saml/metadata",
            sso_url=f"{base_url}/saml/sso",
            log_level="WARNING",
            **overrides,
        )
        server = make_server("127.0.0.1", port, create_app(config), threaded=True)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append((server, thread))

        if not wait_for_server(f"{base_url}/health"):
            pytest.fail(f"Mock IdP server failed to start on port {port}")
        logger.info(f"Mock IdP server started at {base_url}")
        return base_url

    yield start

    for server, thread in servers:
        server.shutdown()
        thread.join(timeout=5)
        server.server_close()


@pytest.fixture
def unused_url() -> Generator[str, None, None]:
    """URL of a local port with nothing listening."""
    yield f"http://127.0.0.1:{find_free_port()}/saml/metadata"
