"""CLI entry point for the Raydium market-cap bot."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from engine.errors import PoolNotFound
from engine.monitor_runner import run_monitor
from strategies import threshold_describe
from utils.config_validator import MODES, ConfigurationError
from utils.credentials import DEFAULT_SERVICE_NAME, store_private_key
from utils.logging_config import setup_logging
from utils.settings import load_config_file, merge_environment, redact

LOGGER = logging.getLogger("mcap_bot.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Raydium market-cap bot CLI")
    parser.add_argument("--version", action="version", version="mcap-bot 0.1.0")
    subparsers = parser.add_subparsers(dest="command", required=True)

    start_parser = subparsers.add_parser(
        "start", help="Monitor the pool and trade on threshold crossings."
    )
    start_parser.add_argument(
        "--config",
        help="Optional JSON/TOML/YAML config file. Environment variables fill missing keys.",
    )
    start_parser.add_argument(
        "--env-file",
        default=".env",
        help="dotenv file loaded before reading the environment (default: .env).",
    )
    start_parser.add_argument(
        "--mode",
        choices=sorted(MODES),
        help="Override the configured mode (live, dry-run, monitor).",
    )
    start_parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single tick and exit.",
    )
    start_parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    start_parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default="text",
        help="Log line format.",
    )
    start_parser.set_defaults(handler=run_start)

    key_parser = subparsers.add_parser(
        "store-key", help="Store the wallet private key in the OS keychain."
    )
    key_parser.add_argument(
        "--service-name",
        default=DEFAULT_SERVICE_NAME,
        help="Keychain service name.",
    )
    key_parser.set_defaults(handler=run_store_key)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if hasattr(args, "handler"):
        return args.handler(args)
    parser.print_help()
    return 1


def run_start(args: argparse.Namespace) -> int:
    configure_logging(args.log_level, args.log_format)
    try:
        config = load_config(args.config, args.env_file)
        if args.mode:
            config["mode"] = args.mode
        LOGGER.info("Starting Raydium market-cap bot")
        LOGGER.info("Strategy: %s", threshold_describe())
        LOGGER.info("Loaded config: %s", redact(config))
        asyncio.run(run_monitor(config, once=args.once))
    except (ConfigurationError, PoolNotFound) as exc:
        LOGGER.error("Startup failed: %s", exc)
        return 2
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        LOGGER.error(str(exc))
        return 2
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
        return 0
    except Exception as exc:  # pragma: no cover - safeguard for unexpected issues.
        LOGGER.exception("Unexpected error: %s", exc)
        return 3
    return 0


def run_store_key(args: argparse.Namespace) -> int:
    configure_logging("INFO", "text")
    secret = getpass.getpass("Wallet private key (base58 or JSON array): ")
    try:
        store_private_key(args.service_name, secret)
    except (ConfigurationError, ValueError, RuntimeError) as exc:
        LOGGER.error(str(exc))
        return 2
    LOGGER.info("Private key stored for service '%s'", args.service_name)
    return 0


def configure_logging(level: str, log_format: str = "text") -> None:
    """Configure logging with sanitization and proper formatting."""
    setup_logging(level=level, sanitize=True, structured=log_format == "json")


def load_config(config_path: str | None, env_file: str | None = None) -> dict[str, Any]:
    if env_file:
        load_dotenv(Path(env_file).expanduser(), override=False)
    file_config = (
        load_config_file(Path(config_path).expanduser()) if config_path else {}
    )
    return merge_environment(file_config)


if __name__ == "__main__":
    raise SystemExit(main())
