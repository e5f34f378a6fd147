"""Tests for the mcap-bot command line."""

from __future__ import annotations

import base58
import pytest
from solders.keypair import Keypair

import cli.main as cli_main
import utils.credentials as credentials
from engine.errors import PoolNotFound
from engine.state import RunnerState
from utils.config_validator import ConfigurationError

VALID_YAML = """\
token_mint_address: 4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R
pool_id: 58oQChx4yWmvKdwLLZzBi4ChoCc2fqCUWBkwMihLYQo2
buy_amount: 0.1
sell_amount: 1000
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "monitor.yml"
    path.write_text(VALID_YAML, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli_main, "setup_logging", lambda **kwargs: None)


def test_start_passes_mode_and_once(monkeypatch, config_file, tmp_path):
    captured = {}

    async def fake_run_monitor(config, *, once=False):
        captured["config"] = config
        captured["once"] = once
        return RunnerState()

    monkeypatch.setattr(cli_main, "run_monitor", fake_run_monitor)

    exit_code = cli_main.main(
        [
            "start",
            "--config",
            str(config_file),
            "--mode",
            "dry-run",
            "--once",
            "--env-file",
            str(tmp_path / "missing.env"),
        ]
    )

    assert exit_code == 0
    assert captured["once"] is True
    assert captured["config"]["mode"] == "dry-run"
    assert captured["config"]["sell_amount"] == 1000


def test_start_reads_env_file(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("TOKEN_MINT_ADDRESS=mint-from-dotenv\n", encoding="utf-8")
    monkeypatch.setenv("TOKEN_MINT_ADDRESS", "")
    monkeypatch.delenv("TOKEN_MINT_ADDRESS")
    captured = {}

    async def fake_run_monitor(config, *, once=False):
        captured.update(config)
        return RunnerState()

    monkeypatch.setattr(cli_main, "run_monitor", fake_run_monitor)

    assert cli_main.main(["start", "--env-file", str(env_file)]) == 0
    assert captured["token_mint_address"] == "mint-from-dotenv"


@pytest.mark.parametrize(
    "error", [ConfigurationError("bad threshold"), PoolNotFound("no pool")]
)
def test_start_fatal_errors_exit_2(monkeypatch, config_file, error):
    async def failing_run_monitor(config, *, once=False):
        raise error

    monkeypatch.setattr(cli_main, "run_monitor", failing_run_monitor)

    assert cli_main.main(["start", "--config", str(config_file)]) == 2


def test_start_missing_config_file_exits_2(tmp_path):
    assert cli_main.main(["start", "--config", str(tmp_path / "nope.yml")]) == 2


def test_store_key_saves_to_keyring(monkeypatch):
    secret = "secret-value"
    stored = {}
    monkeypatch.setattr(cli_main.getpass, "getpass", lambda prompt: secret)
    monkeypatch.setattr(
        cli_main,
        "store_private_key",
        lambda service, value: stored.update({service: value}),
    )

    assert cli_main.main(["store-key", "--service-name", "svc"]) == 0
    assert stored == {"svc": secret}


def test_store_key_rejects_invalid_key(monkeypatch):
    monkeypatch.setattr(cli_main.getpass, "getpass", lambda prompt: "0OIl")
    monkeypatch.setattr(
        credentials.keyring,
        "set_password",
        lambda *args: pytest.fail("invalid key must not be stored"),
    )

    assert cli_main.main(["store-key"]) == 2


def test_store_key_accepts_real_keypair(monkeypatch):
    secret = base58.b58encode(bytes(Keypair())).decode("ascii")
    stored = {}
    monkeypatch.setattr(cli_main.getpass, "getpass", lambda prompt: secret)
    monkeypatch.setattr(
        credentials.keyring,
        "set_password",
        lambda service, username, value: stored.update({username: value}),
    )

    assert cli_main.main(["store-key"]) == 0
    assert stored == {"private_key": secret}
