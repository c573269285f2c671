"""IdP metadata resolution examples.

This module demonstrates how to bootstrap a Service Provider from an IdP
metadata URL, how retries behave against a flaky IdP, and how to tell the
different resolution failures apart.

Start the mock IdP first:

    saml-sp mock start --fail-first 2
"""

import logging
import threading

from saml_sp.metadata import MetadataResolver, RetryPolicy
from saml_sp.sp import ServiceProviderOptions, get_certificate_info, new_service_provider
from saml_sp.utils.exceptions import (
    MetadataDecodeError,
    MetadataFetchError,
    MetadataResolutionCancelled,
    NoIdentityProviderError,
)

# Configure logging to see retry warnings
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

MOCK_IDP = "http://localhost:8080"


def example_1_bootstrap_service_provider():
    """Example 1: Build a Service Provider from an IdP metadata URL.

    The mock IdP answers the first requests with HTTP 503; the resolver
    retries with a fixed delay until the document is served.
    """
    print("=" * 80)
    print("EXAMPLE 1: Bootstrap a Service Provider")
    print("=" * 80)
    print()

    options = ServiceProviderOptions(
        url="http://localhost:8000",
        idp_metadata_url=f"{MOCK_IDP}/saml/metadata/aggregate",
    )

    with MetadataResolver(retry_policy=RetryPolicy(max_attempts=5, delay=1.0)) as resolver:
        try:
            sp = new_service_provider(options, resolver)
        except MetadataFetchError as e:
            print(f"IdP unreachable: {e}")
            return

    print(f"SP metadata URL: {sp.metadata_url}")
    print(f"SP ACS URL:      {sp.acs_url}")
    print(f"Trusted IdP:     {sp.idp_metadata.entity_id}")
    for cert in sp.idp_metadata.idp_sso_descriptor.signing_certificates():
        info = get_certificate_info(cert)
        print(f"  Signing cert:  {info.subject} (expires {info.not_after:%Y-%m-%d})")
    print()


def example_2_distinguish_failures():
    """Example 2: Handle each resolution failure differently.

    Transport failures are only reported once the retry budget is spent.
    Decode and selection failures are reported immediately.
    """
    print("=" * 80)
    print("EXAMPLE 2: Distinguishing Resolution Failures")
    print("=" * 80)
    print()

    urls = [
        f"{MOCK_IDP}/saml/metadata",
        f"{MOCK_IDP}/health",  # JSON, not metadata
        "http://localhost:9/saml/metadata",  # nothing listening
    ]

    with MetadataResolver(retry_policy=RetryPolicy(max_attempts=2, delay=0.5)) as resolver:
        for url in urls:
            try:
                entity = resolver.resolve(url)
                print(f"OK        {url}: {entity.entity_id}")
            except MetadataFetchError as e:
                print(f"FETCH     {url}: {e}")
            except MetadataDecodeError as e:
                print(f"DECODE    {url}: {e}")
            except NoIdentityProviderError as e:
                print(f"NO IDP    {url}: {e}")
    print()


def example_3_cancel_resolution():
    """Example 3: Cancel a long-running resolution from another thread."""
    print("=" * 80)
    print("EXAMPLE 3: Cancelling Resolution")
    print("=" * 80)
    print()

    cancel = threading.Event()
    threading.Timer(2.0, cancel.set).start()

    with MetadataResolver(cancel_event=cancel) as resolver:
        try:
            resolver.resolve("http://localhost:9/saml/metadata")
        except MetadataResolutionCancelled as e:
            print(f"Stopped: {e}")
    print()


if __name__ == "__main__":
    example_1_bootstrap_service_provider()
    example_2_distinguish_failures()
    example_3_cancel_resolution()
