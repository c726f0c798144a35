from __future__ import annotations

import logging

import pytest

from masterdata.config import (
    ConfigurationError,
    MissingConfigurationError,
    env_bool,
    env_int,
    get_service_config,
    get_store_config,
    level_from_env,
    normalize_domain,
    require_env_vars,
)
from masterdata.domain.expand_index import ExpandIndexLayout
from masterdata.trading_partners import PRODUCTION_LIST_PATH, TEST_LIST_PATH


def test_require_env_vars_reports_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOMAIN", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["DOMAIN", "TOKEN"])

    assert "DOMAIN, TOKEN" in str(exc.value)
    assert exc.value.names == ("DOMAIN", "TOKEN")


def test_store_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOMAIN", "oada.example.com/")
    monkeypatch.setenv("TOKEN", "secret")
    monkeypatch.setenv("CONNECT_TIMEOUT", "5")
    monkeypatch.setenv("STORE_MAX_CALLS_PER_SECOND", "10")

    config = get_store_config()

    assert config.base_url == "https://oada.example.com"
    assert config.resilience.base_url == "https://oada.example.com"
    assert config.resilience.connect_timeout_seconds == 5.0
    assert config.resilience.ratelimit is not None
    assert config.resilience.ratelimit.max_calls == 10
    assert config.resilience.default_headers == {"Authorization": "Bearer secret"}
    assert "POST" not in config.resilience.retry.allowed_methods


def test_store_config_requires_credentials() -> None:
    with pytest.raises(MissingConfigurationError):
        get_store_config()


@pytest.mark.parametrize(
    ("domain", "expected"),
    [
        ("localhost:3000", "https://localhost:3000"),
        ("http://localhost:3000/", "http://localhost:3000"),
        (" https://oada.test ", "https://oada.test"),
    ],
)
def test_normalize_domain(domain: str, expected: str) -> None:
    assert normalize_domain(domain) == expected


def test_service_config_defaults() -> None:
    config = get_service_config()

    assert config.service_name == "test-trellis-data-manager"
    assert config.list_path == TEST_LIST_PATH
    assert config.query_timeout_seconds == 86_400.0
    assert config.concurrency == 1
    assert config.resume is True
    assert config.expand_index_layout is ExpandIndexLayout.META


def test_service_config_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRODUCTION", "true")
    monkeypatch.setenv("SERVICE_NAME", "tdm")
    monkeypatch.setenv("RESUME", "no")
    monkeypatch.setenv("EXPAND_INDEX_LAYOUT", "Sibling")
    monkeypatch.setenv("CONCURRENCY", "4")

    config = get_service_config()

    assert config.service_name == "tdm"
    assert config.list_path == PRODUCTION_LIST_PATH
    assert config.resume is False
    assert config.expand_index_layout is ExpandIndexLayout.SIBLING
    assert config.concurrency == 4


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("EXPAND_INDEX_LAYOUT", "flat"),
        ("CONCURRENCY", "0"),
        ("CONCURRENCY", "many"),
        ("QUERY_TIMEOUT", "-1"),
        ("PRODUCTION", "maybe"),
    ],
)
def test_invalid_service_settings(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        get_service_config()


def test_env_helpers_fall_back_to_defaults() -> None:
    assert env_bool("PRODUCTION", True) is True
    assert env_int("CONCURRENCY", 3) == 3


def test_level_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    assert level_from_env() == logging.INFO

    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert level_from_env() == logging.DEBUG

    monkeypatch.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ConfigurationError):
        level_from_env()
