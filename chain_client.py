# chain_client.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from eth_account.signers.local import LocalAccount
from requests import Session
from web3 import Web3, HTTPProvider
from web3.contract import Contract
from web3.exceptions import TimeExhausted
from web3.logs import DISCARD

import config
from errors import ConfirmationError, QueryError, SubmissionError
from logger import get_logger
from utils import format_private_key, shorten_address

logger = get_logger("ChainClient", config.LOG_LEVEL)


@dataclass
class PendingTx:
    w3: Web3
    tx_hash: str
    contract: Optional[Contract] = None


@dataclass
class Receipt:
    tx_hash: str
    block_number: int
    status: int
    events: List[Dict[str, Any]] = field(default_factory=list)


class ChainClient:
    """Thin wrapper over web3: connections, reads, signed submissions and receipts."""

    def __init__(self, tx_timeout: int = config.TX_TIMEOUT, request_timeout: int = config.REQUEST_TIMEOUT,
                 gas_price_multiplier: float = config.GAS_PRICE_MULTIPLIER):
        self.tx_timeout = tx_timeout
        self.request_timeout = request_timeout
        self.gas_price_multiplier = gas_price_multiplier

    def connect(self, rpc_url: str, proxy: Optional[str] = None) -> Web3:
        """Returns Web3 connection to RPC (with optional HTTP proxy session)."""
        request_kwargs = {'timeout': self.request_timeout}
        if proxy:
            session = Session()
            session.proxies = {'http': proxy, 'https': proxy}
            provider = HTTPProvider(rpc_url, request_kwargs=request_kwargs, session=session)
        else:
            provider = HTTPProvider(rpc_url, request_kwargs=request_kwargs)
        return Web3(provider)

    def derive_account(self, private_key: str, w3: Web3) -> LocalAccount:
        try:
            return w3.eth.account.from_key(format_private_key(private_key))
        except Exception as e:
            raise SubmissionError(f"Invalid private key: {e}") from e

    def chain_id(self, w3: Web3) -> int:
        return w3.eth.chain_id

    def contract(self, w3: Web3, address: str, abi: Any) -> Contract:
        return w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def read_state(self, w3: Web3, address: str, abi: Any, method: str, *args: Any) -> Any:
        try:
            contract = self.contract(w3, address, abi)
            return getattr(contract.functions, method)(*args).call()
        except Exception as e:
            raise QueryError(f"{method} call failed: {e}") from e

    def get_balance(self, w3: Web3, address: str) -> int:
        try:
            return int(w3.eth.get_balance(address))
        except Exception as e:
            raise QueryError(f"Balance check failed for {shorten_address(address)}: {e}") from e

    def get_nonce(self, w3: Web3, address: str) -> int:
        return w3.eth.get_transaction_count(address)

    def _fee_history(self, w3: Web3) -> Dict[str, Any]:
        try:
            return w3.eth.fee_history(config.FEE_HISTORY_BLOCKS, "pending", [config.FEE_HISTORY_PERCENTILE])
        except Exception as e:
            logger.debug(f"eth_feeHistory unavailable: {e}")
            return {}

    def fee_params(self, w3: Web3) -> Dict[str, int]:
        """EIP-1559 fee fields for the next transaction.

        Priority fee: eth_maxPriorityFeePerGas, else the median tip over the last blocks
        from eth_feeHistory, else a tenth of the legacy gas price.
        Base fee: pending block, else the next-block entry of eth_feeHistory, else the legacy gas price.
        """
        history = None
        try:
            priority = w3.eth.max_priority_fee
        except Exception as e:
            logger.debug(f"eth_maxPriorityFeePerGas unavailable: {e}")
            priority = None
        if priority is None:
            history = self._fee_history(w3)
            tips = sorted(int(r[0]) for r in history.get("reward") or [] if r)
            if tips:
                priority = tips[len(tips) // 2]
            else:
                try:
                    priority = int(w3.eth.gas_price * 0.1)
                except Exception:
                    priority = config.DEFAULT_PRIORITY_FEE

        try:
            base_fee = w3.eth.get_block("pending").get("baseFeePerGas")
        except Exception as e:
            logger.debug(f"Pending block unavailable: {e}")
            base_fee = None
        if base_fee is None:
            if history is None:
                history = self._fee_history(w3)
            # last entry is the base fee of the block after the newest one
            base_fees = history.get("baseFeePerGas") or []
            base_fee = base_fees[-1] if base_fees else w3.eth.gas_price

        max_fee = int((int(base_fee) * 2 + int(priority)) * self.gas_price_multiplier)
        return {"maxPriorityFeePerGas": int(priority), "maxFeePerGas": max_fee}

    def _base_tx(self, account: LocalAccount, w3: Web3, gas_limit: int, fee_params: Dict[str, int],
                 nonce: Optional[int]) -> Dict[str, Any]:
        if nonce is None:
            nonce = w3.eth.get_transaction_count(account.address)
        return {
            "from": account.address,
            "nonce": nonce,
            "gas": gas_limit,
            "maxFeePerGas": fee_params["maxFeePerGas"],
            "maxPriorityFeePerGas": fee_params["maxPriorityFeePerGas"],
            "chainId": w3.eth.chain_id,
        }

    def _sign_and_send(self, account: LocalAccount, w3: Web3, txn: Dict[str, Any]) -> str:
        signed_txn = account.sign_transaction(txn)
        tx_hash = Web3.to_hex(w3.eth.send_raw_transaction(signed_txn.raw_transaction))
        logger.info(f"Transaction sent ({shorten_address(account.address)}), tx: {tx_hash}")
        return tx_hash

    def submit_call(self, account: LocalAccount, w3: Web3, address: str, abi: Any, method: str,
                    gas_limit: int, fee_params: Dict[str, int], *args: Any,
                    nonce: Optional[int] = None) -> PendingTx:
        try:
            contract = self.contract(w3, address, abi)
            txn = getattr(contract.functions, method)(*args).build_transaction(
                self._base_tx(account, w3, gas_limit, fee_params, nonce)
            )
            txn.pop("gasPrice", None)
            return PendingTx(w3=w3, tx_hash=self._sign_and_send(account, w3, txn), contract=contract)
        except Exception as e:
            raise SubmissionError(f"{method} submission failed: {e}") from e

    def send_value(self, account: LocalAccount, w3: Web3, to_address: str, value: int, gas_limit: int,
                   fee_params: Dict[str, int], nonce: Optional[int] = None) -> PendingTx:
        try:
            txn = self._base_tx(account, w3, gas_limit, fee_params, nonce)
            txn.update({"to": Web3.to_checksum_address(to_address), "value": value})
            return PendingTx(w3=w3, tx_hash=self._sign_and_send(account, w3, txn))
        except Exception as e:
            raise SubmissionError(f"Transfer to {to_address} failed: {e}") from e

    def await_confirmation(self, pending: PendingTx) -> Receipt:
        """Blocks until the transaction is mined. Reverted or timed out transactions raise ConfirmationError."""
        try:
            raw = pending.w3.eth.wait_for_transaction_receipt(pending.tx_hash, timeout=self.tx_timeout)
        except TimeExhausted as e:
            raise ConfirmationError(f"Receipt not received in {self.tx_timeout}s", pending.tx_hash) from e
        except Exception as e:
            raise ConfirmationError(f"Receipt wait failed: {e}", pending.tx_hash) from e

        if raw["status"] != 1:
            raise ConfirmationError("Transaction reverted", pending.tx_hash)

        return Receipt(
            tx_hash=Web3.to_hex(raw["transactionHash"]),
            block_number=raw["blockNumber"],
            status=raw["status"],
            events=self._decode_events(pending.contract, raw),
        )

    @staticmethod
    def _decode_events(contract: Optional[Contract], raw_receipt: Any) -> List[Dict[str, Any]]:
        if contract is None:
            return []
        events = []
        for item in contract.abi:
            if item.get("type") != "event":
                continue
            try:
                decoded = getattr(contract.events, item["name"])().process_receipt(raw_receipt, errors=DISCARD)
            except Exception as e:
                logger.debug(f"Could not decode {item['name']} events: {e}")
                continue
            events.extend({"event": log["event"], "args": dict(log["args"])} for log in decoded)
        return events
