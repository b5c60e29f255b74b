"""Unit tests for the interactive batch-transfer action."""

import asyncio

import pytest

import main
from errors import ConfigError


def _answers(monkeypatch, *answers):
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda _: next(replies))


@pytest.fixture
def recipients_csv(tmp_path):
    path = tmp_path / "wallet.csv"
    path.write_text("address\n0x" + "1" * 40 + "\n", encoding="utf-8")
    return str(path)


def test_missing_key_file_is_config_error(monkeypatch, tmp_path, recipients_csv):
    _answers(monkeypatch, str(tmp_path / "absent.txt"), recipients_csv, "http://node", "1")

    with pytest.raises(ConfigError, match="absent.txt"):
        asyncio.run(main.run_transfer("http://node"))


def test_declined_confirmation_sends_nothing(monkeypatch, tmp_path, recipients_csv):
    key_file = tmp_path / "pk.txt"
    key_file.write_text("0xabc\n", encoding="utf-8")
    _answers(monkeypatch, str(key_file), recipients_csv, "http://node", "1", "n")

    async def fail(*args, **kwargs):
        raise AssertionError("transfer must not start")

    monkeypatch.setattr(main, "run_batch_transfer", fail)

    asyncio.run(main.run_transfer("http://node"))
