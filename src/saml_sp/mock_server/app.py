"""Flask application serving mock IdP metadata.

Endpoints:
- GET /health: server status
- GET <metadata_endpoint>: single EntityDescriptor
- GET <aggregate_endpoint>: EntitiesDescriptor with an SP and the IdP

The first ``fail_first_n`` metadata requests (across both metadata
endpoints) are answered with ``failure_status`` to exercise resolver retries.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

from flask import Flask, Response, current_app, jsonify, request

from saml_sp import __version__

from .config import MockServerConfig, load_config
from .documents import entities_descriptor_document, entity_descriptor_document

METADATA_MIMETYPE = "application/samlmetadata+xml"

logger = logging.getLogger("saml_sp.mock_server")


@dataclass
class MockServerState:
    """Mutable per-app state: request counters and remaining failures."""

    config: MockServerConfig
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_count: int = 0
    failures_remaining: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock)

    def take_failure(self) -> bool:
        """Consume one injected failure, returning True if one was left."""
        with self.lock:
            if self.failures_remaining > 0:
                self.failures_remaining -= 1
                return True
            return False


def _state() -> MockServerState:
    return current_app.extensions["saml_sp_mock"]


def _metadata_response(document: bytes) -> Response | tuple[Response, int]:
    state = _state()
    if state.take_failure():
        logger.warning(
            f"Injected failure for {request.path}: HTTP {state.config.failure_status} "
            f"({state.failures_remaining} remaining)"
        )
        return (
            Response("Injected metadata failure\n", mimetype="text/plain"),
            state.config.failure_status,
        )
    return Response(document, mimetype=METADATA_MIMETYPE)


def create_app(config: MockServerConfig | None = None) -> Flask:
    """Create the mock IdP metadata Flask app.

    Args:
        config: Mock server configuration (loads from file if not provided)

    Returns:
        Configured Flask application

    Example:
        >>> app = create_app(MockServerConfig(fail_first_n=2))
        >>> client = app.test_client()
        >>> client.get("/saml/metadata").status_code
        503
    """
    if config is None:
        config = load_config()

    # Documents are static for the lifetime of the app
    entity_document = entity_descriptor_document(config)
    aggregate_document = entities_descriptor_document(config)

    app = Flask(__name__)
    app.extensions["saml_sp_mock"] = MockServerState(
        config=config,
        failures_remaining=config.fail_first_n,
    )

    @app.before_request
    def log_request():
        state = _state()
        with state.lock:
            state.request_count += 1
            count = state.request_count
        logger.info(f"Request #{count}: {request.method} {request.path}")

    @app.route("/health", methods=["GET"])
    def health_check():
        state = _state()
        uptime_seconds = int((datetime.now(timezone.utc) - state.start_time).total_seconds())
        return jsonify({
            "status": "healthy",
            "version": __version__,
            "entity_id": state.config.entity_id,
            "endpoints": [
                "/health",
                state.config.metadata_endpoint,
                state.config.aggregate_endpoint,
            ],
            "failures_remaining": state.failures_remaining,
            "uptime_seconds": uptime_seconds,
            "request_count": state.request_count,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }), 200

    @app.route(config.metadata_endpoint, methods=["GET"], endpoint="entity_metadata")
    def entity_metadata():
        return _metadata_response(entity_document)

    @app.route(config.aggregate_endpoint, methods=["GET"], endpoint="aggregate_metadata")
    def aggregate_metadata():
        return _metadata_response(aggregate_document)

    logger.info(
        f"Mock IdP metadata app created: entity_id={config.entity_id}, "
        f"fail_first_n={config.fail_first_n}"
    )
    return app


def run_server(config: MockServerConfig | None = None, debug: bool = False) -> None:
    """Run the mock IdP metadata server in the foreground.

    Args:
        config: Mock server configuration (loads from file if not provided)
        debug: Enable Flask debug mode
    """
    if config is None:
        config = load_config()

    logging.getLogger("saml_sp.mock_server").setLevel(config.log_level)
    app = create_app(config)

    logger.info(f"Starting mock IdP on http://{config.host}:{config.port}")
    logger.info(
        f"Metadata available at: http://{config.host}:{config.port}{config.metadata_endpoint}"
    )

    app.run(
        host=config.host,
        port=config.port,
        debug=debug,
        use_reloader=False,  # Disable reloader to avoid duplicate startup
    )
