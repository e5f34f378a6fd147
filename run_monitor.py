#!/usr/bin/env python
"""Raydium market-cap monitor runner."""

from __future__ import annotations

import asyncio
import os
import sys

import yaml
from dotenv import load_dotenv

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from engine.monitor_runner import run_monitor
from utils.logging_config import setup_logging
from utils.settings import merge_environment


def load_config(config_file: str) -> dict:
    with open(config_file, "r") as handle:
        return yaml.safe_load(handle) or {}


def run_monitor_from_file(config_file: str) -> None:
    load_dotenv()
    config = merge_environment(load_config(config_file))
    asyncio.run(run_monitor(config))


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python run_monitor.py <config_file>")
        sys.exit(1)
    config_path = sys.argv[1]
    if not os.path.exists(config_path):
        print(f"Error: Config file '{config_path}' not found.")
        sys.exit(1)
    setup_logging()
    run_monitor_from_file(config_path)
