# transfer.py
import asyncio
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from web3 import Web3

import config
from chain_client import ChainClient
from errors import ConfigError, InsufficientBalanceError
from logger import get_logger

logger = get_logger("Transfer", config.LOG_LEVEL)

TRANSFER_MODES = ("sequential", "fan_out")


@dataclass
class TransferResult:
    index: int
    to_address: str
    success: bool
    tx_hash: Optional[str] = None
    error: Optional[str] = None


def parse_amount(amount: str) -> Decimal:
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ConfigError(f"Invalid transfer amount: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise ConfigError(f"Transfer amount must be positive: {amount!r}")
    return value


def _transfer_one(client: ChainClient, account: Any, w3: Web3, to_address: str, value: int,
                  fee_params: Dict[str, int], nonce: int, index: int, total: int) -> TransferResult:
    try:
        logger.info(f"[{index + 1}/{total}] Sending {Web3.from_wei(value, 'ether')} ETH to {to_address}...")
        pending = client.send_value(account, w3, to_address, value, config.TRANSFER_GAS_LIMIT, fee_params, nonce=nonce)
        receipt = client.await_confirmation(pending)
        logger.info(f"[{index + 1}/{total}] Transfer successful, tx: {receipt.tx_hash}")
        return TransferResult(index, to_address, True, tx_hash=receipt.tx_hash)
    except Exception as e:
        logger.error(f"[{index + 1}/{total}] Transfer to {to_address} failed: {e}")
        return TransferResult(index, to_address, False, error=str(e))


def _prepare(client: ChainClient, rpc_url: str, private_key: str, amount_eth: Decimal, total: int):
    """Connects, checks the sender covers every transfer and fixes fees and the first nonce."""
    w3 = client.connect(rpc_url)
    account = client.derive_account(private_key, w3)
    logger.info(f"Sender wallet: {account.address}")

    value = Web3.to_wei(amount_eth, "ether")
    required = value * total
    balance = client.get_balance(w3, account.address)
    logger.info(
        f"Balance {Web3.from_wei(balance, 'ether')} ETH, {total} recipients x {amount_eth} ETH "
        f"= {Web3.from_wei(required, 'ether')} ETH required"
    )
    if balance < required:
        raise InsufficientBalanceError(
            f"Insufficient balance: need at least {Web3.from_wei(required, 'ether')} ETH, "
            f"have {Web3.from_wei(balance, 'ether')} ETH"
        )

    return w3, account, value, client.fee_params(w3), client.get_nonce(w3, account.address)


async def run_batch_transfer(
    client: ChainClient,
    rpc_url: str,
    private_key: str,
    recipients: Sequence[str],
    amount_eth: Decimal,
    mode: str = config.TRANSFER_MODE,
    max_workers: int = config.TRANSFER_WORKERS,
) -> List[TransferResult]:
    """Sends amount_eth from one wallet to every recipient.
    mode="sequential" waits for each transfer before the next one,
    mode="fan_out" issues all transfers at once and waits for them together.
    All RPC work runs on a worker pool so the event loop is never blocked.
    """
    if mode not in TRANSFER_MODES:
        raise ConfigError(f"Unknown transfer mode {mode!r}, expected one of {TRANSFER_MODES}")

    total = len(recipients)
    loop = asyncio.get_running_loop()
    workers = 1 if mode == "sequential" else max(1, max_workers)
    executor = ThreadPoolExecutor(max_workers=workers)
    try:
        w3, account, value, fee_params, base_nonce = await loop.run_in_executor(
            executor, _prepare, client, rpc_url, private_key, amount_eth, total
        )
        logger.info(f"Starting batch transfer ({mode})...")

        if mode == "sequential":
            results = []
            for i, to in enumerate(recipients):
                results.append(await loop.run_in_executor(
                    executor, _transfer_one, client, account, w3, to, value, fee_params, base_nonce + i, i, total
                ))
        else:
            results = await asyncio.gather(*[
                loop.run_in_executor(
                    executor, _transfer_one, client, account, w3, to, value, fee_params, base_nonce + i, i, total
                )
                for i, to in enumerate(recipients)
            ])
    finally:
        executor.shutdown(wait=True)

    successful = sum(1 for r in results if r.success)
    logger.info(f"Batch transfer completed: success {successful}/{total}, failed {total - successful}/{total}")
    return list(results)


def save_transfer_results(results: Sequence[TransferResult], directory: str = config.OUTPUT_DIR) -> str:
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    path = os.path.join(directory, f"transfer_results-{timestamp}.csv")
    df = pd.DataFrame(
        [
            {
                "index": r.index + 1,
                "to_address": r.to_address,
                "status": "success" if r.success else "failed",
                "detail": r.tx_hash if r.success else r.error,
            }
            for r in results
        ],
        columns=["index", "to_address", "status", "detail"],
    )
    df.to_csv(path, index=False)
    logger.info(f"Transfer results saved to {path}")
    return path
