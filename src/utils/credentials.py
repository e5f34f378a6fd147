"""Wallet key loading helpers for the market-cap bot."""

from __future__ import annotations

import json
import os
import re
from typing import Mapping

import base58
import keyring
from keyring.errors import KeyringError
from solders.keypair import Keypair

from utils.config_validator import ConfigurationError

DEFAULT_SERVICE_NAME = "raydium-mcap-bot"
DEFAULT_PRIVATE_KEY_ENV = "PRIVATE_KEY"
DEFAULT_PRIVATE_KEY_USERNAME = "private_key"
_ENV_PATTERN = re.compile(r"^\$\{([A-Z0-9_]+)\}$")


def load_keypair(
    service_name: str,
    config: Mapping[str, object] | None = None,
    *,
    private_key_env: str = DEFAULT_PRIVATE_KEY_ENV,
    private_key_username: str = DEFAULT_PRIVATE_KEY_USERNAME,
) -> Keypair:
    """Load the wallet keypair from config, env vars, or keyring in order."""
    secret = _resolve_value(config, "private_key")
    if not secret:
        secret = _clean_value(os.getenv(private_key_env))
    if not secret:
        secret = _get_keyring_value(service_name, private_key_username)

    if not secret:
        raise ConfigurationError(
            "Wallet private key is missing. Provide private_key in the config, "
            f"set {private_key_env}, or store it in the keychain "
            f"for service '{service_name}'."
        )
    return decode_keypair(secret)


def decode_keypair(secret: str) -> Keypair:
    """Decode a base58 secret key or a JSON byte array (solana-keygen format)."""
    candidate = secret.strip()
    try:
        if candidate.startswith("["):
            raw = bytes(json.loads(candidate))
        else:
            raw = base58.b58decode(candidate)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError("Wallet private key is malformed.") from exc
    if len(raw) != 64:
        raise ConfigurationError(
            f"Wallet private key must decode to 64 bytes, got {len(raw)}."
        )
    try:
        return Keypair.from_bytes(raw)
    except ValueError as exc:
        raise ConfigurationError("Wallet private key is not a valid keypair.") from exc


def store_private_key(
    service_name: str,
    private_key: str,
    *,
    private_key_username: str = DEFAULT_PRIVATE_KEY_USERNAME,
) -> None:
    """Store the wallet private key in the OS keychain via keyring."""
    value = _clean_value(private_key)
    if not value:
        raise ValueError("private_key must be a non-empty string.")
    decode_keypair(value)
    try:
        keyring.set_password(service_name, private_key_username, value)
    except KeyringError as exc:
        raise RuntimeError(
            "Failed to store the private key in the OS keychain. "
            "Ensure a keyring backend is available."
        ) from exc


def _resolve_value(config: Mapping[str, object] | None, key: str) -> str | None:
    if not config or key not in config:
        return None
    raw = config.get(key)
    if not isinstance(raw, str):
        return _clean_value(str(raw)) if raw is not None else None
    raw = raw.strip()
    if not raw:
        return None
    match = _ENV_PATTERN.match(raw)
    if match:
        return _clean_value(os.getenv(match.group(1)))
    return _clean_value(raw)


def _clean_value(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _get_keyring_value(service_name: str, username: str) -> str | None:
    try:
        return _clean_value(keyring.get_password(service_name, username))
    except KeyringError as exc:
        raise RuntimeError(
            "Failed to access the OS keychain. "
            "Ensure a keyring backend is available."
        ) from exc
