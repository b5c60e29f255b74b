# wallet_gen.py
import os
from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence

import pandas as pd
from eth_account import Account

import config
from logger import get_logger

logger = get_logger("WalletGen", config.LOG_LEVEL)

Account.enable_unaudited_hdwallet_features()


@dataclass(frozen=True)
class GeneratedWallet:
    address: str
    private_key: str
    mnemonic: str


def generate_wallets(count: int) -> List[GeneratedWallet]:
    if count < 1:
        raise ValueError("Wallet count must be a positive integer")

    logger.info(f"Generating {count} wallets...")
    wallets = []
    for i in range(count):
        account, mnemonic = Account.create_with_mnemonic()
        wallets.append(GeneratedWallet(account.address, "0x" + account.key.hex().removeprefix("0x"), mnemonic))
        logger.info(f"Wallet {i + 1} generated: {account.address}")
    return wallets


def save_wallets(wallets: Sequence[GeneratedWallet], directory: str = config.OUTPUT_DIR) -> str:
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    path = os.path.join(directory, f"wallets-{timestamp}.csv")
    df = pd.DataFrame(
        [
            {"index": i + 1, "address": w.address, "private_key": w.private_key, "mnemonic": w.mnemonic}
            for i, w in enumerate(wallets)
        ],
        columns=["index", "address", "private_key", "mnemonic"],
    )
    df.to_csv(path, index=False)
    logger.info(f"Wallets saved to {path}")
    return path
