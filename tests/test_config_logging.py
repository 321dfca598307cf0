import json
import logging
from xml.etree import ElementTree

import pytest

from policybridge import config
from policybridge.iam.client import IdentityClient
from policybridge.logging_config import PACKAGE_LOGGER, JsonLogFormatter, configure_logging
from policybridge.model.types import Effect


def test_defaults_when_environment_is_empty(monkeypatch):
    for name in (
        "POLICYBRIDGE_IAM_ENDPOINT",
        "POLICYBRIDGE_IAM_API_VERSION",
        "POLICYBRIDGE_TIMEOUT_SECONDS",
        "POLICYBRIDGE_PROVIDER_NAMESPACE",
        "POLICYBRIDGE_MAX_POLICY_NAME_LENGTH",
    ):
        monkeypatch.delenv(name, raising=False)
    assert config.get_iam_endpoint() == "https://iam.amazonaws.com/"
    assert config.get_iam_api_version() == "2010-05-08"
    assert config.get_timeout_seconds() == 10.0
    assert config.get_provider_namespace() == "aws"
    assert config.get_max_policy_name_length() == 128


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("POLICYBRIDGE_IAM_ENDPOINT", " https://iam.us-gov.amazonaws.com/ ")
    monkeypatch.setenv("POLICYBRIDGE_TIMEOUT_SECONDS", "0")
    monkeypatch.setenv("POLICYBRIDGE_MAX_POLICY_NAME_LENGTH", "64")
    monkeypatch.setenv("POLICYBRIDGE_LOG_LEVEL", "debug")
    monkeypatch.setenv("POLICYBRIDGE_LOG_FORMAT", "TEXT")
    assert config.get_iam_endpoint() == "https://iam.us-gov.amazonaws.com/"
    assert config.get_timeout_seconds() == 0.1
    assert config.get_max_policy_name_length() == 64
    assert config.get_log_level() == "DEBUG"
    assert config.get_log_format() == "text"


def test_invalid_number_names_variable(monkeypatch):
    monkeypatch.setenv("POLICYBRIDGE_MAX_POLICY_NAME_LENGTH", "lots")
    with pytest.raises(ValueError, match="POLICYBRIDGE_MAX_POLICY_NAME_LENGTH"):
        config.get_max_policy_name_length()


def test_json_formatter_includes_call_context():
    record = logging.LogRecord("policybridge.iam.client", logging.INFO, __file__, 1, "put %s", ("Ops+ANY",), None)
    record.iam_action = "PutUserPolicy"
    record.policy_name = "Ops+ANY"
    record.owner = "bob"
    payload = json.loads(JsonLogFormatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "policybridge.iam.client"
    assert payload["event"] == "put Ops+ANY"
    assert payload["iam_action"] == "PutUserPolicy"
    assert payload["policy_name"] == "Ops+ANY"
    assert payload["owner"] == "bob"
    assert "status_code" not in payload
    assert "ts" in payload


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    saved = (logger.level, logger.propagate, list(logger.handlers))
    yield logger
    logger.setLevel(saved[0])
    logger.propagate = saved[1]
    logger.handlers = saved[2]


def test_configure_logging_leaves_root_logger_alone(monkeypatch, package_logger):
    root = logging.getLogger()
    root_level, root_handlers = root.level, list(root.handlers)
    root_formatters = [h.formatter for h in root_handlers]
    monkeypatch.setenv("POLICYBRIDGE_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("POLICYBRIDGE_LOG_FORMAT", "json")

    assert configure_logging() is package_logger
    assert package_logger.level == logging.WARNING
    assert not package_logger.propagate
    assert root.level == root_level
    assert root.handlers == root_handlers
    assert [h.formatter for h in root.handlers] == root_formatters
    ours = [h for h in package_logger.handlers if h.get_name() == "policybridge"]
    assert len(ours) == 1
    assert isinstance(ours[0].formatter, JsonLogFormatter)


def test_configure_logging_twice_reuses_handler(package_logger):
    configure_logging(level="debug", log_format="json")
    configure_logging(level="info", log_format="text")
    ours = [h for h in package_logger.handlers if h.get_name() == "policybridge"]
    assert len(ours) == 1
    assert not isinstance(ours[0].formatter, JsonLogFormatter)
    assert package_logger.level == logging.INFO


class _OneUserTransport:
    def invoke(self, action, parameters=None):
        if action == "ListUsers":
            return ElementTree.fromstring(
                "<ListUsersResponse><Users><member><UserId>AID1</UserId>"
                "<UserName>alice</UserName></member></Users></ListUsersResponse>"
            )
        return ElementTree.fromstring("<PutUserPolicyResponse/>")


def test_client_writes_log_with_context(caplog):
    with caplog.at_level(logging.INFO, logger="policybridge.iam.client"):
        IdentityClient(_OneUserTransport()).put_user_policy("AID1", "Ops", Effect.ALLOW)
    record = next(r for r in caplog.records if getattr(r, "iam_action", None) == "PutUserPolicy")
    assert record.policy_name == "Ops+ANY"
    assert record.owner == "alice"
