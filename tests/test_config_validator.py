"""Tests for monitor configuration validation."""

from __future__ import annotations

import pytest

from utils.config_validator import ConfigurationError, validate_config

TOKEN_MINT = "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R"
POOL_ID = "58oQChx4yWmvKdwLLZzBi4ChoCc2fqCUWBkwMihLYQo2"


def _valid_config(**overrides):
    config = {
        "token_mint_address": TOKEN_MINT,
        "pool_id": POOL_ID,
        "buy_threshold": "1000000",
        "sell_threshold": "500000",
        "buy_amount": "0.1",
        "sell_amount": "1000",
    }
    config.update(overrides)
    return config


def test_valid_config_passes():
    validate_config(_valid_config())


def test_full_config_passes():
    validate_config(
        _valid_config(
            rpc_url="https://rpc.example",
            mode="dry-run",
            poll_interval_sec=15,
            call_timeout_sec="10",
            cooldown_sec=0,
            slippage_bps="50",
            compute_unit_price_micro_lamports=465915,
            usd_denominated="true",
            check_balances=False,
        )
    )


def test_thresholds_are_optional():
    config = _valid_config()
    del config["buy_threshold"]
    del config["sell_threshold"]
    validate_config(config)


@pytest.mark.parametrize("field", ["token_mint_address", "pool_id", "buy_amount", "sell_amount"])
def test_missing_required_field_fails(field):
    config = _valid_config()
    del config[field]
    with pytest.raises(ConfigurationError, match=field):
        validate_config(config)


@pytest.mark.parametrize("value", ["abc", "nan", "inf", "-inf", True])
def test_thresholds_must_be_finite_numbers(value):
    with pytest.raises(ConfigurationError, match="buy_threshold"):
        validate_config(_valid_config(buy_threshold=value))


@pytest.mark.parametrize("value", ["0", "-1", 0])
def test_amounts_must_be_positive(value):
    with pytest.raises(ConfigurationError, match="sell_amount"):
        validate_config(_valid_config(sell_amount=value))


def test_invalid_pubkey_fails():
    with pytest.raises(ConfigurationError, match="pool_id"):
        validate_config(_valid_config(pool_id="not-a-pubkey"))


def test_invalid_mode_fails():
    with pytest.raises(ConfigurationError, match="mode"):
        validate_config(_valid_config(mode="paper"))


def test_slippage_range_enforced():
    with pytest.raises(ConfigurationError, match="slippage_bps"):
        validate_config(_valid_config(slippage_bps=10_001))
    with pytest.raises(ConfigurationError, match="slippage_bps"):
        validate_config(_valid_config(slippage_bps="1.5"))


def test_poll_interval_must_be_positive():
    with pytest.raises(ConfigurationError, match="poll_interval_sec"):
        validate_config(_valid_config(poll_interval_sec=0))


def test_rpc_url_scheme_enforced():
    with pytest.raises(ConfigurationError, match="rpc_url"):
        validate_config(_valid_config(rpc_url="wss://rpc.example"))


def test_boolean_flags_validated():
    with pytest.raises(ConfigurationError, match="check_balances"):
        validate_config(_valid_config(check_balances="maybe"))


def test_empty_or_non_dict_config_fails():
    with pytest.raises(ConfigurationError):
        validate_config({})
    with pytest.raises(ConfigurationError):
        validate_config(["not", "a", "dict"])
