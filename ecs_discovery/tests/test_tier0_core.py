"""Tests for tier0_core modules."""
from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError as PydanticValidationError
from structlog.testing import capture_logs

from ecs_discovery.tier0_core.config import DiscoveryConfig, get_config
from ecs_discovery.tier0_core.errors import ConfigurationError, DiscoveryError, UpstreamError
from ecs_discovery.tier0_core.logging import _REDACTED, _redact_processor, configure_logging, get_logger


# ── errors ─────────────────────────────────────────────────────────────────

class TestErrors:
    def test_discovery_error_has_code(self):
        e = DiscoveryError("ecs_down", user_message="ECS unreachable")
        assert e.code == "ecs_down"
        assert "ECS unreachable" in str(e)

    def test_configuration_error_is_not_retryable(self):
        e = ConfigurationError(user_message="Bad region")
        assert isinstance(e, DiscoveryError)
        assert e.code == "configuration_error"
        assert e.retryable is False

    def test_upstream_error_is_retryable_and_keeps_metadata(self):
        e = UpstreamError(user_message="metadata down", upstream_service="ec2-metadata")
        assert e.retryable is True
        assert e.to_dict()["error"]["metadata"] == {"upstream_service": "ec2-metadata"}


# ── config ─────────────────────────────────────────────────────────────────

class TestConfig:
    def test_defaults(self, monkeypatch):
        for key in ("ECS_CLUSTERS", "ECS_CLUSTER", "ECS_AUTO_DISCOVER_CLUSTERS", "ECS_EXPOSED_BY_DEFAULT"):
            monkeypatch.delenv(key, raising=False)
        config = DiscoveryConfig(_env_file=None)
        assert config.clusters == ["default"]
        assert config.exposed_by_default is True
        assert config.refresh_seconds == 15
        assert config.watch is True

    def test_reads_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("ECS_CLUSTERS", '["prod-web", "prod-batch"]')
        monkeypatch.setenv("ECS_EXPOSED_BY_DEFAULT", "false")
        monkeypatch.setenv("ECS_REFRESH_SECONDS", "30")
        config = get_config()
        assert config.clusters == ["prod-web", "prod-batch"]
        assert config.exposed_by_default is False
        assert config.refresh_seconds == 30

    def test_refresh_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            DiscoveryConfig(_env_file=None, refresh_seconds=0)

    def test_selection_uses_cluster_list(self):
        config = DiscoveryConfig(_env_file=None, clusters=["a", "b"])
        selection = config.cluster_selection()
        assert selection.auto_discover is False
        assert selection.names == ("a", "b")
        assert selection.legacy is False

    def test_selection_legacy_cluster_overrides_list(self):
        config = DiscoveryConfig(_env_file=None, clusters=["a", "b"], cluster="old")
        selection = config.cluster_selection()
        assert selection.names == ("old",)
        assert selection.legacy is True

    def test_selection_auto_discover_overrides_everything(self):
        config = DiscoveryConfig(
            _env_file=None, clusters=["a"], cluster="old", auto_discover_clusters=True
        )
        selection = config.cluster_selection()
        assert selection.auto_discover is True
        assert selection.names == ()

    def test_static_credentials_need_both_keys(self):
        assert DiscoveryConfig(_env_file=None, access_key_id="AKIA").has_static_credentials is False
        assert DiscoveryConfig(
            _env_file=None, access_key_id="AKIA", secret_access_key="shh"
        ).has_static_credentials is True


# ── logging ────────────────────────────────────────────────────────────────

class TestRedaction:
    def test_redacts_aws_secrets(self):
        event = {"event": "aws.client_created", "secret_access_key": "shh", "region": "eu-west-1"}
        result = _redact_processor(None, "info", event)
        assert result["secret_access_key"] == _REDACTED
        assert result["region"] == "eu-west-1"

    def test_key_match_is_case_insensitive(self):
        result = _redact_processor(None, "info", {"AWS_SESSION_TOKEN": "abc"})
        assert result["AWS_SESSION_TOKEN"] == _REDACTED


# ── logging configuration ──────────────────────────────────────────────────

class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_debug_logging(self):
        yield
        configure_logging(DiscoveryConfig(_env_file=None, log_level="DEBUG", log_format="console"))

    def test_level_comes_from_config(self):
        configure_logging(DiscoveryConfig(_env_file=None, log_level="warning"))
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("botocore").level == logging.WARNING

    def test_trace_turns_on_botocore_debug(self):
        configure_logging(DiscoveryConfig(_env_file=None, trace=True))
        assert logging.getLogger("botocore").level == logging.DEBUG

    def test_reconfiguring_keeps_one_handler(self):
        handlers_before = len(logging.getLogger().handlers)
        configure_logging(DiscoveryConfig(_env_file=None, log_format="json"))
        configure_logging(DiscoveryConfig(_env_file=None, log_format="console"))
        assert len(logging.getLogger().handlers) == handlers_before

    def test_debug_filtered_below_configured_level(self):
        configure_logging(DiscoveryConfig(_env_file=None, log_level="INFO"))
        with capture_logs() as logs:
            get_logger("test").debug("filter.no_port")
            get_logger("test").info("poll.completed")
        assert [e["event"] for e in logs] == ["poll.completed"]

    def test_unknown_level_rejected(self):
        with pytest.raises(PydanticValidationError):
            DiscoveryConfig(_env_file=None, log_level="LOUD")
