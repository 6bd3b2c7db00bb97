"""
Tests for configuration management.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from quizpay.config import Settings, get_settings
from quizpay.constants import WHATSONCHAIN_API_MAINNET, WHATSONCHAIN_API_TESTNET


def test_default_settings() -> None:
    settings = Settings(_env_file=None)
    assert settings.network == "mainnet"
    assert settings.indexer_url == WHATSONCHAIN_API_MAINNET
    assert settings.request_timeout == 10.0
    assert settings.settle_delay == 2.0
    assert settings.fee_rate_per_kb == 10
    assert settings.dust_threshold == 5
    assert settings.platform_wif is None


def test_testnet_indexer_default() -> None:
    settings = Settings(_env_file=None, network="testnet")
    assert settings.indexer_url == WHATSONCHAIN_API_TESTNET


def test_explicit_indexer_url_kept() -> None:
    settings = Settings(_env_file=None, network="testnet", indexer_url="http://localhost:9000")
    assert settings.indexer_url == "http://localhost:9000"


def test_platform_wif_from_environment(monkeypatch: pytest.MonkeyPatch, platform_wif: str) -> None:
    monkeypatch.setenv("PLATFORM_WIF", platform_wif)
    settings = get_settings()
    assert settings.platform_wif is not None
    assert settings.platform_wif.get_secret_value() == platform_wif
    assert platform_wif not in repr(settings)


def test_case_insensitive_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("fee_rate_per_kb", "50")
    assert Settings(_env_file=None).fee_rate_per_kb == 50


@pytest.mark.parametrize(
    "field,value",
    [
        ("network", "regtest"),
        ("request_timeout", 0),
        ("settle_delay", -1),
        ("fee_rate_per_kb", -1),
        ("dust_threshold", 0),
    ],
)
def test_invalid_values(field: str, value: object) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})
