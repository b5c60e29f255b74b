"""In-memory fakes shared by the claimer tests."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from chain_client import PendingTx, Receipt
from claimer import ClaimSettings
from errors import ConfirmationError, QueryError, SubmissionError

ONE_ETHER = 10 ** 18


def address_for(credential: str) -> str:
    return "0x" + credential.rjust(40, "0")


class FakeChainClient:
    """In-memory stand-in for ChainClient.

    rewards maps address -> available reward (default one ether),
    query_errors lists addresses whose reward read raises,
    fail_submissions maps address -> number of submissions that fail before success
    (-1 fails forever).
    """

    def __init__(
        self,
        rewards: Optional[Dict[str, int]] = None,
        query_errors: Optional[List[str]] = None,
        fail_submissions: Optional[Dict[str, int]] = None,
        revert: bool = False,
    ):
        self.rewards = rewards or {}
        self.query_errors = set(query_errors or [])
        self.fail_submissions = dict(fail_submissions or {})
        self.revert = revert
        self.connects: List[Optional[str]] = []
        self.derived: List[str] = []
        self.submissions: List[str] = []
        self.attempts: Dict[str, int] = {}

    def connect(self, rpc_url: str, proxy: Optional[str] = None) -> Any:
        self.connects.append(proxy)
        return SimpleNamespace(rpc_url=rpc_url, proxy=proxy)

    def derive_account(self, credential: str, w3: Any) -> Any:
        address = address_for(credential)
        self.derived.append(address)
        self.attempts[address] = self.attempts.get(address, 0) + 1
        return SimpleNamespace(address=address)

    def read_state(self, w3: Any, address: str, abi: Any, method: str, *args: Any) -> Any:
        user = args[0]
        if user in self.query_errors:
            raise QueryError(f"{method} call failed: execution reverted")
        return self.rewards.get(user, ONE_ETHER)

    def fee_params(self, w3: Any) -> Dict[str, int]:
        return {"maxPriorityFeePerGas": 1, "maxFeePerGas": 2}

    def submit_call(self, account: Any, w3: Any, address: str, abi: Any, method: str,
                    gas_limit: int, fee_params: Dict[str, int], *args: Any, nonce: Optional[int] = None) -> PendingTx:
        remaining = self.fail_submissions.get(account.address, 0)
        if remaining != 0:
            self.fail_submissions[account.address] = remaining - 1 if remaining > 0 else -1
            raise SubmissionError("claimReward submission failed: nonce too low")
        self.submissions.append(account.address)
        return PendingTx(w3=w3, tx_hash=f"0x{len(self.submissions):064x}")

    def await_confirmation(self, pending: PendingTx) -> Receipt:
        if self.revert:
            raise ConfirmationError("Transaction reverted", pending.tx_hash)
        return Receipt(
            tx_hash=pending.tx_hash,
            block_number=100,
            status=1,
            events=[{"event": "RewardClaimed", "args": {"user": "0x0", "rewardType": 0, "amount": ONE_ETHER}}],
        )


class SleepRecorder:
    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_settings(directory, **overrides) -> ClaimSettings:
    values = dict(
        abi=[],
        rpc_url="http://localhost:8545",
        max_retries=3,
        retry_delay=0,
        escalation_factor=1.0,
        min_pause=10,
        max_pause=60,
        success_log=str(directory / "claim_log.txt"),
        error_log=str(directory / "claim_error_log.txt"),
    )
    values.update(overrides)
    return ClaimSettings(**values)


