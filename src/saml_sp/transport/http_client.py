"""HTTP session factory for fetching IdP metadata.

Sessions built here never retry on their own: the metadata resolver owns
the retry policy, so the adapters are mounted with retries disabled.
"""

import logging
import ssl

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.ssl_ import create_urllib3_context

from saml_sp import __version__

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"saml-sp/{__version__}"


class TLS12Adapter(HTTPAdapter):
    """Force TLS 1.2+ for HTTPS connections.

    Example:
        >>> session = requests.Session()
        >>> session.mount('https://', TLS12Adapter())
    """

    def init_poolmanager(self, *args, **kwargs):
        """Initialize connection pool with TLS 1.2+ enforcement."""
        context = create_urllib3_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        kwargs['ssl_context'] = context
        return super().init_poolmanager(*args, **kwargs)


def create_session(
    verify_tls: bool = True,
    user_agent: str = DEFAULT_USER_AGENT,
) -> requests.Session:
    """Create a session for metadata fetching.

    Args:
        verify_tls: Whether to verify server TLS certificates
        user_agent: User-Agent header sent with every request

    Returns:
        Configured requests.Session. Caller is responsible for closing.

    Example:
        >>> session = create_session(verify_tls=True)
        >>> try:
        ...     response = session.get(url, timeout=(10, 30))
        ... finally:
        ...     session.close()
    """
    session = requests.Session()
    session.mount("http://", HTTPAdapter(max_retries=0))
    session.mount("https://", TLS12Adapter(max_retries=0))
    session.verify = verify_tls
    session.headers["User-Agent"] = user_agent
    session.headers["Accept"] = "application/samlmetadata+xml, application/xml, text/xml"

    if not verify_tls:
        logger.warning(
            "TLS certificate verification is DISABLED for metadata fetching. "
            "This should only be used for development with self-signed certificates."
        )

    logger.debug(f"Created metadata HTTP session (verify_tls={verify_tls})")
    return session
