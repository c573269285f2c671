"""Mock IdP metadata server for local testing."""

from .app import create_app, run_server
from .config import MockServerConfig, load_config

__all__ = [
    "create_app",
    "run_server",
    "MockServerConfig",
    "load_config",
]
