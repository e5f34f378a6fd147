"""Config file loading and environment overlay for the market-cap bot."""

from __future__ import annotations

import json
import os
import re
import sys
from pathlib import Path
from typing import Any, Mapping

import yaml

SUPPORTED_FORMATS = (".json", ".toml", ".yaml", ".yml")

# Config key -> environment variable.
ENV_KEYS: dict[str, str] = {
    "private_key": "PRIVATE_KEY",
    "rpc_url": "RPC_URL",
    "token_mint_address": "TOKEN_MINT_ADDRESS",
    "pool_id": "POOL_ID",
    "buy_threshold": "BUY_THRESHOLD",
    "sell_threshold": "SELL_THRESHOLD",
    "buy_amount": "BUY_AMOUNT",
    "sell_amount": "SELL_AMOUNT",
    "poll_interval_sec": "POLL_INTERVAL_SEC",
    "call_timeout_sec": "CALL_TIMEOUT_SEC",
    "slippage_bps": "SLIPPAGE_BPS",
    "compute_unit_price_micro_lamports": "COMPUTE_UNIT_PRICE_MICRO_LAMPORTS",
    "mode": "MODE",
    "cooldown_sec": "COOLDOWN_SEC",
    "usd_denominated": "USD_DENOMINATED",
    "check_balances": "CHECK_BALANCES",
}

_ENV_PATTERN = re.compile(r"^\$\{([A-Z0-9_]+)\}$")
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def load_config_file(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}. Ensure the path is correct and readable."
        )
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        supported = ", ".join(SUPPORTED_FORMATS)
        raise ValueError(
            f"Unsupported config format '{suffix}'. Supported formats: {supported}."
        )
    text = config_path.read_text(encoding="utf-8")
    try:
        if suffix == ".json":
            data = json.loads(text)
        elif suffix == ".toml":
            data = _load_toml(text)
        else:
            data = yaml.safe_load(text)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config file {config_path}: {exc}. Validate the file format."
        ) from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file {config_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Config file {config_path} must contain a JSON/TOML/YAML object mapping."
        )
    return data


def merge_environment(
    config: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Resolve ``${VAR}`` placeholders and fill missing keys from the environment.

    Values present in ``config`` win over environment variables.
    """
    env = os.environ if environ is None else environ
    merged: dict[str, Any] = {}
    for key, value in (config or {}).items():
        merged[key] = _resolve_placeholder(value, env)
    for key, env_name in ENV_KEYS.items():
        if merged.get(key) in (None, ""):
            env_value = env.get(env_name)
            if env_value is not None and env_value.strip():
                merged[key] = env_value.strip()
    return merged


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ValueError(f"Not a boolean value: {value!r}")


def redact(config: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy safe to log."""
    return {
        key: ("[REDACTED]" if key == "private_key" and value else value)
        for key, value in config.items()
    }


def _resolve_placeholder(value: Any, env: Mapping[str, str]) -> Any:
    if not isinstance(value, str):
        return value
    match = _ENV_PATTERN.match(value.strip())
    if match:
        return env.get(match.group(1))
    return value


def _load_toml(text: str) -> dict[str, Any]:
    if sys.version_info >= (3, 11):
        import tomllib

        return tomllib.loads(text)
    import tomli

    return tomli.loads(text)
