"""Configuration validation utilities for the market-cap bot."""

from __future__ import annotations

import math
import re
from typing import Any

from solders.pubkey import Pubkey

from utils.settings import parse_bool

MODES = {"live", "dry-run", "monitor"}


class ConfigurationError(ValueError):
    """Raised when configuration validation fails."""


def validate_pubkey(config: dict[str, Any], field: str, *, required: bool = True) -> None:
    """Validate that a field holds a base58 Solana address."""
    if _is_missing(config, field):
        if required:
            raise ConfigurationError(f"Missing required field: {field}")
        return

    value = config[field]
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{field} must be a non-empty string")
    try:
        Pubkey.from_string(value.strip())
    except ValueError as exc:
        raise ConfigurationError(
            f"{field} is not a valid Solana address: {value}"
        ) from exc


def validate_finite_number(
    config: dict[str, Any],
    field: str,
    *,
    required: bool = True,
    minimum: float | None = None,
    exclusive_minimum: bool = False,
) -> None:
    """Validate that a field parses as a finite float (no NaN or infinity)."""
    if _is_missing(config, field):
        if required:
            raise ConfigurationError(f"Missing required field: {field}")
        return

    value = config[field]
    if isinstance(value, bool):
        raise ConfigurationError(f"{field} must be a number, got: {value}")
    try:
        number = float(str(value).strip())
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(f"{field} must be a valid number, got: {value}") from exc

    if not math.isfinite(number):
        raise ConfigurationError(f"{field} must be a finite number, got: {value}")
    if minimum is not None:
        if exclusive_minimum and number <= minimum:
            raise ConfigurationError(f"{field} must be > {minimum}, got: {number}")
        if not exclusive_minimum and number < minimum:
            raise ConfigurationError(f"{field} must be >= {minimum}, got: {number}")


def validate_integer(
    config: dict[str, Any],
    field: str,
    *,
    required: bool = True,
    minimum: int = 0,
    maximum: int | None = None,
) -> None:
    """Validate that a field is an integer, accepting digit strings from env."""
    if _is_missing(config, field):
        if required:
            raise ConfigurationError(f"Missing required field: {field}")
        return

    value = config[field]
    if isinstance(value, bool):
        raise ConfigurationError(f"{field} must be an integer, got: {value}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        number = int(value.strip())
    else:
        raise ConfigurationError(
            f"{field} must be an integer, got: {type(value).__name__}"
        )

    if number < minimum:
        raise ConfigurationError(f"{field} must be >= {minimum}, got: {number}")
    if maximum is not None and number > maximum:
        raise ConfigurationError(f"{field} must be <= {maximum}, got: {number}")


def validate_boolean(config: dict[str, Any], field: str) -> None:
    if _is_missing(config, field):
        return
    try:
        parse_bool(config[field])
    except ValueError as exc:
        raise ConfigurationError(f"{field} must be a boolean, got: {config[field]}") from exc


def validate_choice(
    config: dict[str, Any], field: str, choices: set[str], *, required: bool = True
) -> None:
    """Validate that a field is one of the allowed choices."""
    if _is_missing(config, field):
        if required:
            raise ConfigurationError(f"Missing required field: {field}")
        return

    value = config[field]
    if not isinstance(value, str):
        raise ConfigurationError(
            f"{field} must be a string, got: {type(value).__name__}"
        )

    if value not in choices:
        choices_str = ", ".join(sorted(choices))
        raise ConfigurationError(
            f"{field} must be one of [{choices_str}], got: {value}"
        )


def validate_url(config: dict[str, Any], field: str = "rpc_url") -> None:
    """Validate that a URL field is properly formatted."""
    if _is_missing(config, field):
        return

    url = config[field]
    if not isinstance(url, str) or not url.strip():
        raise ConfigurationError(f"{field} must be a non-empty string")

    if not re.match(r"^https?://", url, re.IGNORECASE):
        raise ConfigurationError(
            f"{field} must start with http:// or https://, got: {url}"
        )


def validate_monitor_config(config: dict[str, Any]) -> None:
    """Validate configuration for the market-cap monitor."""
    validate_pubkey(config, "token_mint_address")
    validate_pubkey(config, "pool_id")
    validate_url(config)

    validate_finite_number(config, "buy_threshold", required=False)
    validate_finite_number(config, "sell_threshold", required=False)
    validate_finite_number(config, "buy_amount", minimum=0, exclusive_minimum=True)
    validate_finite_number(config, "sell_amount", minimum=0, exclusive_minimum=True)

    validate_choice(config, "mode", MODES, required=False)
    validate_finite_number(
        config, "poll_interval_sec", required=False, minimum=0, exclusive_minimum=True
    )
    validate_finite_number(
        config, "call_timeout_sec", required=False, minimum=0, exclusive_minimum=True
    )
    validate_finite_number(config, "cooldown_sec", required=False, minimum=0)
    validate_integer(config, "slippage_bps", required=False, minimum=0, maximum=10_000)
    validate_integer(
        config, "compute_unit_price_micro_lamports", required=False, minimum=0
    )
    validate_boolean(config, "usd_denominated")
    validate_boolean(config, "check_balances")


def validate_config(config: dict[str, Any]) -> None:
    """
    Validate a monitor configuration mapping.

    Args:
        config: Configuration dictionary (file values merged with environment)

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration must be a dictionary")

    if not config:
        raise ConfigurationError("Configuration cannot be empty")

    validate_monitor_config(config)


def _is_missing(config: dict[str, Any], field: str) -> bool:
    value = config.get(field)
    return value is None or (isinstance(value, str) and not value.strip())
