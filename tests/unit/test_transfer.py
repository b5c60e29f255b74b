"""Unit tests for batch transfers."""

import asyncio
import threading
from decimal import Decimal
from types import SimpleNamespace

import pandas as pd
import pytest

from chain_client import PendingTx, Receipt
from errors import ConfigError, InsufficientBalanceError, SubmissionError
from transfer import TransferResult, parse_amount, run_batch_transfer, save_transfer_results

ONE_ETHER = 10 ** 18
RECIPIENTS = ["0x" + f"{i:040x}" for i in range(1, 5)]


class FakeTransferClient:

    def __init__(self, balance=10 * ONE_ETHER, failing=()):
        self.balance = balance
        self.failing = set(failing)
        self.sent = []
        self.threads = []

    def connect(self, rpc_url, proxy=None):
        return SimpleNamespace(rpc_url=rpc_url)

    def derive_account(self, private_key, w3):
        return SimpleNamespace(address="0x" + "f" * 40)

    def get_balance(self, w3, address):
        self.threads.append(threading.get_ident())
        return self.balance

    def get_nonce(self, w3, address):
        return 40

    def fee_params(self, w3):
        return {"maxPriorityFeePerGas": 1, "maxFeePerGas": 2}

    def send_value(self, account, w3, to_address, value, gas_limit, fee_params, nonce=None):
        if to_address in self.failing:
            raise SubmissionError(f"Transfer to {to_address} failed: replacement underpriced")
        self.sent.append((to_address, value, gas_limit, nonce))
        self.threads.append(threading.get_ident())
        return PendingTx(w3=w3, tx_hash=f"0x{nonce:064x}")

    def await_confirmation(self, pending):
        return Receipt(tx_hash=pending.tx_hash, block_number=1, status=1)


def _run(coro):
    return asyncio.run(coro)


@pytest.mark.parametrize("mode", ["sequential", "fan_out"])
def test_sends_to_every_recipient(mode):
    client = FakeTransferClient()

    results = _run(run_batch_transfer(client, "http://node", "0xkey", RECIPIENTS, Decimal("0.5"), mode=mode))

    assert [r.to_address for r in results] == RECIPIENTS
    assert all(r.success for r in results)
    assert sorted(nonce for _, _, _, nonce in client.sent) == [40, 41, 42, 43]
    assert {value for _, value, _, _ in client.sent} == {ONE_ETHER // 2}
    assert {gas for _, _, gas, _ in client.sent} == {21_000}


def test_sequential_keeps_order():
    client = FakeTransferClient()
    _run(run_batch_transfer(client, "http://node", "0xkey", RECIPIENTS, Decimal("1"), mode="sequential"))
    assert [to for to, _, _, _ in client.sent] == RECIPIENTS


@pytest.mark.parametrize("mode", ["sequential", "fan_out"])
def test_rpc_calls_run_off_the_event_loop_thread(mode):
    client = FakeTransferClient()

    _run(run_batch_transfer(client, "http://node", "0xkey", RECIPIENTS, Decimal("1"), mode=mode))

    assert len(client.threads) == len(RECIPIENTS) + 1
    assert threading.get_ident() not in client.threads


@pytest.mark.parametrize("mode", ["sequential", "fan_out"])
def test_one_failure_does_not_abort_others(mode):
    client = FakeTransferClient(failing=[RECIPIENTS[1]])

    results = _run(run_batch_transfer(client, "http://node", "0xkey", RECIPIENTS, Decimal("1"), mode=mode))

    assert [r.success for r in results] == [True, False, True, True]
    assert "replacement underpriced" in results[1].error


def test_insufficient_balance():
    client = FakeTransferClient(balance=ONE_ETHER)

    with pytest.raises(InsufficientBalanceError):
        _run(run_batch_transfer(client, "http://node", "0xkey", RECIPIENTS, Decimal("0.5")))
    assert client.sent == []


def test_unknown_mode():
    with pytest.raises(ConfigError):
        _run(run_batch_transfer(FakeTransferClient(), "http://node", "0xkey", RECIPIENTS, Decimal("1"), mode="parallel"))


@pytest.mark.parametrize("raw, expected", [("0.01", Decimal("0.01")), (" 2 ", Decimal("2"))])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", ["", "abc", "0", "-1", "NaN"])
def test_parse_amount_rejects(raw):
    with pytest.raises(ConfigError):
        parse_amount(raw)


def test_save_transfer_results(tmp_path):
    results = [
        TransferResult(0, RECIPIENTS[0], True, tx_hash="0xaa"),
        TransferResult(1, RECIPIENTS[1], False, error="nonce too low"),
    ]

    path = save_transfer_results(results, str(tmp_path))

    df = pd.read_csv(path)
    assert list(df.columns) == ["index", "to_address", "status", "detail"]
    assert df["index"].tolist() == [1, 2]
    assert df["status"].tolist() == ["success", "failed"]
    assert df["detail"].tolist() == ["0xaa", "nonce too low"]
