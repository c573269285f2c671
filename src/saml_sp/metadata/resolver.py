"""IdP metadata resolver with fixed-delay retry.

Fetches the Identity Provider's metadata document from a URL, retrying
transport failures and non-2xx responses with a fixed delay, then decodes
the body with the candidate decoders (single EntityDescriptor first, then
EntitiesDescriptor aggregate).

Decode and selection failures are never retried: the same bytes would fail
the same way.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

import requests

from saml_sp.metadata.decoders import DEFAULT_DECODERS, CandidateDecoder, decode_metadata
from saml_sp.models.metadata import EntityDescriptor
from saml_sp.transport.http_client import create_session
from saml_sp.utils.exceptions import (
    MetadataFetchError,
    MetadataHTTPStatusError,
    MetadataResolutionCancelled,
)

logger = logging.getLogger(__name__)

# Default retry settings: 12 attempts, 11 fixed 5 second delays
DEFAULT_MAX_ATTEMPTS = 12
DEFAULT_RETRY_DELAY = 5.0
DEFAULT_TIMEOUT = (10, 30)

Timeout = Union[float, tuple[float, float]]


@dataclass
class RetryPolicy:
    """Retry policy for metadata fetching.

    Attributes:
        max_attempts: Total number of fetch attempts, including the first.
            Must be >= 1.
        delay: Fixed delay in seconds between attempts (no growth, no jitter).
            Must be >= 0.

    Example:
        >>> policy = RetryPolicy(max_attempts=3, delay=0.5)
        >>> resolver = MetadataResolver(retry_policy=policy)
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay: float = DEFAULT_RETRY_DELAY

    def __post_init__(self) -> None:
        """Validate policy values."""
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be >= 1, got {self.max_attempts}"
            )
        if self.delay < 0:
            raise ValueError(
                f"delay must be >= 0, got {self.delay}"
            )


class MetadataResolver:
    """Resolves an IdP EntityDescriptor from a metadata URL.

    Each call to resolve() is independent: it owns its attempt counter and
    buffers, and shares no mutable state with concurrent calls.

    Attributes:
        session: HTTP session used for fetching
        retry_policy: Attempt budget and fixed delay
        timeout: requests timeout, a number or (connect, read) tuple
        decoders: Candidate decoders in priority order

    Example:
        >>> with MetadataResolver(retry_policy=RetryPolicy(max_attempts=3)) as resolver:
        ...     idp = resolver.resolve("https://idp.example.com/saml/metadata")
        >>> idp.has_idp_capability
        True
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: Timeout = DEFAULT_TIMEOUT,
        sleep: Optional[Callable[[float], object]] = None,
        decoders: Sequence[CandidateDecoder] = DEFAULT_DECODERS,
        cancel_event: Optional[threading.Event] = None,
        verify_tls: bool = True,
    ) -> None:
        """Initialize the resolver.

        Args:
            session: HTTP session. A session from create_session() is created
                and owned by the resolver if not provided.
            retry_policy: Retry policy. Uses 12 attempts / 5s if not provided.
            timeout: Per-request timeout passed to requests
            sleep: Callable invoked with the delay between attempts.
                Defaults to cancel_event.wait when a cancel event is given,
                otherwise time.sleep.
            decoders: Candidate decoders in priority order
            cancel_event: Optional event; when set, resolution stops before
                the next attempt with MetadataResolutionCancelled
            verify_tls: TLS verification for the session created when none
                is provided
        """
        self._owns_session = session is None
        self.session = session if session is not None else create_session(verify_tls=verify_tls)
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout
        self.decoders = decoders
        self.cancel_event = cancel_event
        if sleep is None:
            sleep = cancel_event.wait if cancel_event is not None else time.sleep
        self._sleep = sleep

    def resolve(self, url: str) -> EntityDescriptor:
        """Fetch and decode the IdP metadata published at url.

        Args:
            url: HTTP or HTTPS metadata URL

        Returns:
            EntityDescriptor of the IdP

        Raises:
            MetadataFetchError: Transport failure after the retry budget
            MetadataHTTPStatusError: Non-2xx status after the retry budget
            MetadataResolutionCancelled: If cancel_event was set
            MetadataDecodeError: Body is neither accepted shape (first shape's error)
            NoIdentityProviderError: Aggregate without an IDPSSODescriptor
        """
        data = self.fetch(url)
        entity = decode_metadata(data, self.decoders)
        logger.info(f"Resolved IdP metadata from {url}: entityID={entity.entity_id}")
        return entity

    def fetch(self, url: str) -> bytes:
        """Fetch the metadata document body, retrying failed attempts.

        Args:
            url: Metadata URL

        Returns:
            Complete response body

        Raises:
            MetadataFetchError: Last attempt error once the budget is exhausted,
                with attempts set to the number of attempts made
            MetadataResolutionCancelled: If cancel_event was set
        """
        attempt = 0
        while True:
            self._check_cancelled(url, attempt)
            logger.debug(
                f"Metadata fetch attempt {attempt + 1}/{self.retry_policy.max_attempts}: {url}"
            )
            try:
                return self._fetch_once(url)
            except MetadataFetchError as e:
                attempt += 1
                if attempt >= self.retry_policy.max_attempts:
                    e.attempts = attempt
                    logger.error(f"{url}: {e}")
                    raise
                logger.warning(f"{url}: {e} (will retry)")
                self._sleep(self.retry_policy.delay)

    def _fetch_once(self, url: str) -> bytes:
        """Perform a single GET and read the whole body.

        Raises:
            MetadataFetchError: On transport or body read failure
            MetadataHTTPStatusError: On a non-2xx status
        """
        try:
            response = self.session.get(url, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise MetadataFetchError(url, f"{type(e).__name__}: {e}") from e

        try:
            if not 200 <= response.status_code < 300:
                raise MetadataHTTPStatusError(url, response.status_code, response.reason)
            try:
                return response.content
            except requests.RequestException as e:
                raise MetadataFetchError(
                    url, f"failed to read response body: {type(e).__name__}: {e}"
                ) from e
        finally:
            response.close()

    def _check_cancelled(self, url: str, attempts: int) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.info(f"Metadata resolution of {url} cancelled after {attempts} attempts")
            raise MetadataResolutionCancelled(url, attempts)

    def close(self) -> None:
        """Close the session if the resolver created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "MetadataResolver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def resolve_metadata(url: str, **kwargs) -> EntityDescriptor:
    """Resolve IdP metadata with a one-off resolver.

    Args:
        url: Metadata URL
        **kwargs: Passed to MetadataResolver

    Returns:
        EntityDescriptor of the IdP

    Example:
        >>> idp = resolve_metadata(
        ...     "https://idp.example.com/saml/metadata",
        ...     retry_policy=RetryPolicy(max_attempts=3, delay=1.0),
        ... )
    """
    with MetadataResolver(**kwargs) as resolver:
        return resolver.resolve(url)
