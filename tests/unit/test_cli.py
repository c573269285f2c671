"""Unit tests for CLI commands.

This module tests the saml-sp command-line interface: the main group,
configuration validation, metadata inspection, Service Provider display
and the mock server launcher.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from saml_sp import __version__
from saml_sp.cli.main import cli
from saml_sp.metadata.resolver import RetryPolicy
from saml_sp.utils.exceptions import MetadataFetchError, MetadataHTTPStatusError

pytestmark = pytest.mark.usefixtures("clean_env", "reset_logging")

IDP_ENTITY_ID = "https://idp.example.com/saml/metadata"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Valid configuration file pointing at a metadata URL."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "service_provider": {
            "url": "https://sp.example.com",
            "idp_metadata_url": IDP_ENTITY_ID,
        },
        "retry": {"max_attempts": 2, "delay_seconds": 0.0},
        "logging": {"level": "WARNING", "log_file": str(tmp_path / "logs" / "cli.log")},
    }))
    return path


def mock_resolver(fetch_result=None, fetch_error=None) -> MagicMock:
    """Mock MetadataResolver class usable as a context manager."""
    resolver_cls = MagicMock()
    resolver = resolver_cls.return_value.__enter__.return_value
    if fetch_error is not None:
        resolver.fetch.side_effect = fetch_error
        resolver.resolve.side_effect = fetch_error
    else:
        resolver.fetch.return_value = fetch_result
    return resolver_cls


class TestMainCLI:
    """Test cases for main CLI entry point."""

    def test_cli_help(self, runner):
        # Act
        result = runner.invoke(cli, ["--help"])

        # Assert
        assert result.exit_code == 0
        assert "SAML SP utility" in result.output
        assert "--verbose" in result.output
        assert "metadata" in result.output
        assert "mock" in result.output

    def test_cli_version_option(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "saml-sp" in result.output
        assert __version__ in result.output

    def test_cli_version_command(self, runner):
        result = runner.invoke(cli, ["version"])

        assert result.exit_code == 0
        assert f"saml-sp version {__version__}" in result.output

    def test_log_file_created(self, runner, tmp_path):
        log_file = tmp_path / "custom" / "run.log"

        result = runner.invoke(cli, ["--log-file", str(log_file), "version"])

        assert result.exit_code == 0
        assert log_file.parent.is_dir()

    def test_invalid_config_exits(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"service_provider": {"url": "nope"}}')

        result = runner.invoke(cli, ["--config", str(bad), "version"])

        assert result.exit_code == 1
        assert "Error loading configuration" in result.output


class TestConfigValidate:
    """Tests for config validate."""

    def test_valid_config(self, runner, config_file):
        result = runner.invoke(cli, ["config", "validate", str(config_file)])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "https://sp.example.com" in result.output
        assert IDP_ENTITY_ID in result.output
        assert "Attempts:    2" in result.output

    def test_invalid_config(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"service_provider": {"url": "https://sp"}, "retry": {"max_attempts": 0}}')

        result = runner.invoke(cli, ["config", "validate", str(bad)])

        assert result.exit_code == 1
        assert "Configuration validation failed" in result.output


class TestMetadataParse:
    """Tests for metadata parse."""

    def test_parse_aggregate(self, runner, tmp_path, aggregate_metadata_xml):
        metadata_file = tmp_path / "idp.xml"
        metadata_file.write_bytes(aggregate_metadata_xml)

        result = runner.invoke(cli, ["metadata", "parse", str(metadata_file)])

        assert result.exit_code == 0
        assert f"Entity: {IDP_ENTITY_ID}" in result.output
        assert "https://idp.example.com/saml/sso" in result.output
        assert "Signing certificates: 1" in result.output
        assert "CN=idp.example.com" in result.output

    def test_parse_json(self, runner, tmp_path, config_file, idp_metadata_xml):
        metadata_file = tmp_path / "idp.xml"
        metadata_file.write_bytes(idp_metadata_xml)

        result = runner.invoke(
            cli, ["--config", str(config_file), "metadata", "parse", "--json", str(metadata_file)]
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["entity_id"] == IDP_ENTITY_ID
        assert data["idp_sso_descriptor"]["want_authn_requests_signed"] is True

    def test_parse_invalid_document(self, runner, tmp_path):
        metadata_file = tmp_path / "idp.xml"
        metadata_file.write_text("<html/>")

        result = runner.invoke(cli, ["metadata", "parse", str(metadata_file)])

        assert result.exit_code == 1
        assert "Metadata error" in result.output
        assert "expected element type <EntityDescriptor>" in result.output

    def test_parse_aggregate_without_idp(self, runner, tmp_path, aggregate_without_idp_xml):
        metadata_file = tmp_path / "sps.xml"
        metadata_file.write_bytes(aggregate_without_idp_xml)

        result = runner.invoke(cli, ["metadata", "parse", str(metadata_file)])

        assert result.exit_code == 1
        assert "no entity returned with IDPSSODescriptor" in result.output


class TestMetadataFetch:
    """Tests for metadata fetch."""

    def test_fetch_uses_config_policy(self, runner, config_file, idp_metadata_xml):
        resolver_cls = mock_resolver(fetch_result=idp_metadata_xml)

        with patch("saml_sp.cli.metadata_commands.MetadataResolver", resolver_cls):
            result = runner.invoke(
                cli, ["--config", str(config_file), "metadata", "fetch", IDP_ENTITY_ID]
            )

        assert result.exit_code == 0, result.output
        kwargs = resolver_cls.call_args.kwargs
        assert kwargs["retry_policy"] == RetryPolicy(max_attempts=2, delay=0.0)
        assert kwargs["timeout"] == (10, 30)
        assert f"Entity: {IDP_ENTITY_ID}" in result.output

    def test_fetch_options_override_config(self, runner, config_file, idp_metadata_xml, tmp_path):
        resolver_cls = mock_resolver(fetch_result=idp_metadata_xml)
        saved = tmp_path / "saved.xml"

        with patch("saml_sp.cli.metadata_commands.MetadataResolver", resolver_cls):
            result = runner.invoke(cli, [
                "--config", str(config_file),
                "metadata", "fetch", IDP_ENTITY_ID,
                "--max-attempts", "5", "--delay", "0.5", "--save", str(saved),
            ])

        assert result.exit_code == 0, result.output
        assert resolver_cls.call_args.kwargs["retry_policy"] == RetryPolicy(max_attempts=5, delay=0.5)
        assert saved.read_bytes() == idp_metadata_xml

    def test_fetch_save_failure(self, runner, config_file, idp_metadata_xml, tmp_path):
        resolver_cls = mock_resolver(fetch_result=idp_metadata_xml)
        saved = tmp_path / "no-such-dir" / "saved.xml"

        with patch("saml_sp.cli.metadata_commands.MetadataResolver", resolver_cls):
            result = runner.invoke(cli, [
                "--config", str(config_file),
                "metadata", "fetch", IDP_ENTITY_ID, "--save", str(saved),
            ])

        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "✗ Failed to save metadata" in result.output
        assert "directory exists and is writable" in result.output
        assert not saved.exists()

    def test_fetch_failure(self, runner, config_file):
        error = MetadataHTTPStatusError(IDP_ENTITY_ID, 503, "Service Unavailable", attempts=2)
        resolver_cls = mock_resolver(fetch_error=error)

        with patch("saml_sp.cli.metadata_commands.MetadataResolver", resolver_cls):
            result = runner.invoke(
                cli, ["--config", str(config_file), "metadata", "fetch", IDP_ENTITY_ID]
            )

        assert result.exit_code == 1
        assert "503 Service Unavailable (after 2 attempts)" in result.output
        assert "Check network connectivity" in result.output


class TestSPShow:
    """Tests for sp show."""

    def test_show_with_metadata_file(self, runner, tmp_path, idp_metadata_xml, sp_key_files):
        key_path, cert_path = sp_key_files
        metadata_file = tmp_path / "idp.xml"
        metadata_file.write_bytes(idp_metadata_xml)
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "service_provider": {
                "url": "https://sp.example.com/",
                "key_path": str(key_path),
                "cert_path": str(cert_path),
                "idp_metadata_path": str(metadata_file),
            },
        }))

        result = runner.invoke(cli, ["--config", str(config_file), "sp", "show"])

        assert result.exit_code == 0, result.output
        assert "Metadata URL:   https://sp.example.com/saml/metadata" in result.output
        assert "ACS URL:        https://sp.example.com/saml/acs" in result.output
        assert "Key:            configured" in result.output
        assert f"IdP:            {IDP_ENTITY_ID}" in result.output
        assert "PRIVATE KEY" not in result.output

    def test_show_without_idp(self, runner, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "service_provider": {"url": "https://sp.example.com", "idp_metadata_url": ""},
        }))

        result = runner.invoke(cli, ["--config", str(config_file), "sp", "show"])

        assert result.exit_code == 0, result.output
        assert "not configured (provide it out of band)" in result.output

    def test_show_resolution_failure(self, runner, config_file):
        error = MetadataFetchError(IDP_ENTITY_ID, "ConnectionError: refused", attempts=2)
        resolver_cls = mock_resolver(fetch_error=error)

        with patch("saml_sp.cli.sp_commands.resolver_from_config", resolver_cls):
            result = runner.invoke(cli, ["--config", str(config_file), "sp", "show"])

        assert result.exit_code == 1
        assert "IdP metadata could not be resolved" in result.output
        assert "(after 2 attempts)" in result.output

    def test_show_unreadable_key(self, runner, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "service_provider": {
                "url": "https://sp.example.com",
                "key_path": str(tmp_path / "missing-key.pem"),
                "idp_metadata_url": "",
            },
        }))

        result = runner.invoke(cli, ["--config", str(config_file), "sp", "show"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output


class TestMockStart:
    """Tests for mock start."""

    def test_start_with_overrides(self, runner):
        with patch("saml_sp.cli.mock_commands.run_server") as mock_run:
            result = runner.invoke(
                cli, ["mock", "start", "--host", "0.0.0.0", "--port", "18080", "--fail-first", "2"]
            )

        assert result.exit_code == 0, result.output
        config = mock_run.call_args.args[0]
        assert config.host == "0.0.0.0"
        assert config.port == 18080
        assert config.fail_first_n == 2
        assert "http://0.0.0.0:18080/saml/metadata" in result.output

    def test_start_defaults(self, runner):
        with patch("saml_sp.cli.mock_commands.run_server") as mock_run:
            result = runner.invoke(cli, ["mock", "start"])

        assert result.exit_code == 0, result.output
        config = mock_run.call_args.args[0]
        assert config.port == 8080
        assert config.fail_first_n == 0

    def test_start_missing_mock_config(self, runner, tmp_path):
        with patch("saml_sp.cli.mock_commands.run_server") as mock_run:
            result = runner.invoke(
                cli, ["mock", "start", "--mock-config", str(tmp_path / "missing.json")]
            )

        assert result.exit_code == 1
        assert "Mock configuration error" in result.output
        mock_run.assert_not_called()
