# utils.py
import json
import os
from typing import Any, List, Optional

import pandas as pd

import config
from errors import ConfigError
from logger import get_logger

logger = get_logger("Utils", config.LOG_LEVEL)

RECIPIENT_COLUMNS = ("address", "wallet_address", "wallet")
PROXY_SCHEMES = ("http", "https", "socks4", "socks4a", "socks5", "socks5h")


def shorten_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


def format_private_key(private_key: str) -> str:
    private_key = private_key.strip()
    if not private_key.startswith("0x"):
        return "0x" + private_key
    return private_key


def read_lines(path: str) -> List[str]:
    """Reads a text file and returns its trimmed, non-empty lines in order."""
    with open(path, encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def load_credentials(path: str) -> List[str]:
    """Loads private keys, one per line. Missing or unreadable file is a ConfigError."""
    try:
        keys = read_lines(path)
    except OSError as e:
        raise ConfigError(f"Failed to read private key file {path}: {e}") from e
    logger.info(f"Loaded {len(keys)} private keys from {path}")
    return keys


def load_proxies(path: Optional[str]) -> List[str]:
    """Loads proxies, one per line. A missing file means no proxies."""
    if not path or not os.path.exists(path):
        logger.info(f"Proxy file {path} not found, running without proxies")
        return []
    try:
        proxies = read_lines(path)
    except OSError as e:
        logger.error(f"Failed to read proxy file {path}: {e}")
        return []
    for proxy in proxies:
        scheme = proxy.split("://", 1)[0].lower() if "://" in proxy else ""
        if scheme not in PROXY_SCHEMES:
            raise ConfigError(f"Unsupported proxy {proxy!r}, expected scheme://[user:pass@]host:port with scheme in {PROXY_SCHEMES}")
    logger.info(f"Loaded {len(proxies)} proxies from {path}")
    return proxies


def load_abi(path: str) -> Any:
    """Loads contract ABI from JSON file."""
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to read contract ABI {path}: {e}") from e


def load_recipients(path: str) -> List[str]:
    """Loads recipient addresses from a CSV or Excel file.
    The address column may be named address, wallet_address or wallet (any case).
    """
    try:
        if path.lower().endswith((".xlsx", ".xls")):
            df = pd.read_excel(path, engine="openpyxl")
        else:
            df = pd.read_csv(path)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to read recipients file {path}: {e}") from e

    df.columns = df.columns.str.lower().str.strip()
    column = next((c for c in RECIPIENT_COLUMNS if c in df.columns), None)
    if column is None:
        raise ConfigError(f"Recipients file must contain one of the columns: {RECIPIENT_COLUMNS}")

    addresses = [str(a).strip() for a in df[column].dropna() if str(a).strip()]
    if not addresses:
        raise ConfigError(f"No recipient addresses found in {path}")
    logger.info(f"Loaded {len(addresses)} recipient addresses from {path}")
    return addresses
