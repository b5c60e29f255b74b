# claimer.py
import random
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

import config
from chain_client import ChainClient
from errors import ConfigError, ExhaustedRetries, QueryError
from logger import get_logger
from utils import shorten_address

logger = get_logger("Claimer", config.LOG_LEVEL)

# Lock for record file writes
_file_write_lock = threading.Lock()


class ClaimStatus(Enum):
    SUCCESS = "success"
    SKIPPED_ALREADY_CLAIMED = "skipped"
    FAILURE = "failure"


class RunState(Enum):
    IDLE = "idle"
    RUNNING_CYCLE = "running_cycle"
    WAITING = "waiting"


@dataclass(frozen=True)
class AttemptResult:
    status: ClaimStatus
    index: int
    address: Optional[str] = None
    tx_hash: Optional[str] = None
    reason: Optional[str] = None
    retries: int = 0


@dataclass
class CycleStats:
    success: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    results: List[AttemptResult] = field(default_factory=list)

    @property
    def duration(self) -> timedelta:
        if self.started_at is None or self.finished_at is None:
            return timedelta(0)
        return self.finished_at - self.started_at

    def add(self, result: AttemptResult) -> None:
        self.results.append(result)
        if result.status is ClaimStatus.SUCCESS:
            self.success += 1
        elif result.status is ClaimStatus.SKIPPED_ALREADY_CLAIMED:
            self.skipped += 1
        else:
            self.failed += 1


@dataclass
class ClaimSettings:
    """Everything one orchestration run needs. Defaults mirror config.py."""

    abi: Any = field(default_factory=list)
    rpc_url: str = config.RPC_URL
    contract_address: str = config.CONTRACT_ADDRESS
    query_method: str = config.REWARDS_QUERY_METHOD
    claim_method: str = config.CLAIM_METHOD
    claim_event: str = config.CLAIM_EVENT
    max_retries: int = config.MAX_RETRIES
    retry_delay: float = config.RETRY_DELAY_SEC
    escalation_factor: float = config.ESCALATION_FACTOR
    min_pause: int = config.MIN_PAUSE_SEC
    max_pause: int = config.MAX_PAUSE_SEC
    check_interval_hours: float = config.CHECK_INTERVAL_HOURS
    hours_after_claim: float = config.HOURS_TO_WAIT_AFTER_CLAIM
    gas_limit: int = config.CLAIM_GAS_LIMIT
    success_log: str = config.CLAIM_LOG_FILE
    error_log: str = config.CLAIM_ERROR_LOG_FILE

    def __post_init__(self):
        if self.max_retries < 0:
            raise ConfigError("max_retries must be >= 0")
        if self.retry_delay < 0:
            raise ConfigError("retry_delay must be >= 0")
        if self.escalation_factor < 1:
            raise ConfigError("escalation_factor must be >= 1.0")
        if self.min_pause < 0 or self.min_pause > self.max_pause:
            raise ConfigError(f"Invalid pause range [{self.min_pause}, {self.max_pause}]")
        if self.check_interval_hours < 0 or self.hours_after_claim < 0:
            raise ConfigError("Schedule intervals must be >= 0")

    def single_wallet(self) -> "ClaimSettings":
        """Same settings with the exponential backoff preset used for a single wallet."""
        return replace(
            self,
            max_retries=config.SINGLE_MAX_RETRIES,
            retry_delay=config.SINGLE_RETRY_DELAY_SEC,
            escalation_factor=config.SINGLE_ESCALATION_FACTOR,
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClaimOrchestrator:
    def __init__(
        self,
        client: ChainClient,
        settings: ClaimSettings,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = _utc_now,
    ):
        self.client = client
        self.settings = settings
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._now = now
        self.state = RunState.IDLE
        self.last_stats: Optional[CycleStats] = None

    def _record(self, path: str, line: str) -> None:
        with _file_write_lock:
            with open(path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def _timestamp(self) -> str:
        return self._now().isoformat(timespec="milliseconds")

    def _claim_once(self, credential: str, proxy: Optional[str], index: int, total: int) -> AttemptResult:
        s = self.settings
        tag = f"Wallet {index + 1}/{total}"

        w3 = self.client.connect(s.rpc_url, proxy)
        account = self.client.derive_account(credential, w3)
        address = account.address
        tag = f"{tag} ({shorten_address(address)})"
        logger.info(f"{tag}: address {address}" + (f", proxy {proxy}" if proxy else ""))

        try:
            available = self.client.read_state(w3, s.contract_address, s.abi, s.query_method, address)
        except QueryError as e:
            logger.warning(f"{tag}: Rewards check failed ({e}), trying to claim anyway")
        else:
            if available == 0:
                logger.info(f"{tag}: Rewards already claimed, skipping")
                return AttemptResult(ClaimStatus.SKIPPED_ALREADY_CLAIMED, index, address=address)
            logger.info(f"{tag}: Daily rewards available = {available / 1e18:.6f}")

        fee_params = self.client.fee_params(w3)
        logger.info(f"{tag}: Sending {s.claim_method} transaction...")
        pending = self.client.submit_call(account, w3, s.contract_address, s.abi, s.claim_method, s.gas_limit, fee_params)
        logger.info(f"{tag}: Waiting for confirmation of {pending.tx_hash}")
        receipt = self.client.await_confirmation(pending)
        logger.info(f"{tag}: Claim confirmed in block {receipt.block_number}")

        claimed = [e for e in receipt.events if e.get("event") == s.claim_event]
        if claimed and "amount" in claimed[0]["args"]:
            logger.info(f"{tag}: Claimed {claimed[0]['args']['amount'] / 1e18:.6f}")

        self._record(
            s.success_log,
            f"{self._timestamp()} - wallet {index + 1}/{total} - address: {address} - tx: {receipt.tx_hash}",
        )
        return AttemptResult(ClaimStatus.SUCCESS, index, address=address, tx_hash=receipt.tx_hash)

    def attempt_claim(self, credential: str, proxy: Optional[str], index: int, total: int) -> AttemptResult:
        """Claims for one wallet, retrying the whole attempt up to max_retries times."""
        s = self.settings
        retries = 0
        delay = s.retry_delay
        while True:
            if retries > 0:
                logger.info(f"Wallet {index + 1}/{total}: Retry {retries}/{s.max_retries}")
            try:
                result = self._claim_once(credential, proxy, index, total)
                return replace(result, retries=retries)
            except Exception as e:
                logger.error(f"Wallet {index + 1}/{total}: Claim failed: {e}")
                if retries >= s.max_retries:
                    exhausted = ExhaustedRetries(retries, e)
                    logger.error(f"Wallet {index + 1}/{total}: Max retries ({s.max_retries}) reached, giving up")
                    self._record(
                        s.error_log,
                        f"{self._timestamp()} - wallet {index + 1}/{total} - error: {exhausted}",
                    )
                    return AttemptResult(ClaimStatus.FAILURE, index, reason=str(e), retries=retries)

            retries += 1
            if delay > 0:
                logger.info(f"Wallet {index + 1}/{total}: Retrying in {delay:.1f} seconds...")
                self._sleep(delay)
            delay *= s.escalation_factor

    def run_cycle(self, credentials: Sequence[str], proxies: Sequence[str]) -> CycleStats:
        shuffled = list(credentials)
        self._rng.shuffle(shuffled)
        total = len(shuffled)

        stats = CycleStats(total=total, started_at=self._now())
        logger.info(f"===== Claim cycle started: {total} wallets =====")

        for i, credential in enumerate(shuffled):
            proxy = proxies[i % len(proxies)] if proxies else None
            stats.add(self.attempt_claim(credential, proxy, i, total))

            if i < total - 1:
                pause = self._rng.randint(self.settings.min_pause, self.settings.max_pause)
                logger.info(f"Pausing {pause} seconds before next wallet...")
                if pause > 0:
                    self._sleep(pause)

        stats.finished_at = self._now()
        logger.info(
            f"===== Claim cycle finished in {stats.duration.total_seconds() / 60:.1f} min: "
            f"total {stats.total}, success {stats.success}, skipped {stats.skipped}, failed {stats.failed} ====="
        )
        return stats

    def next_run_delay(self, stats: CycleStats) -> float:
        """Seconds to wait before the next cycle."""
        if stats.success > 0:
            return self.settings.hours_after_claim * 3600
        return self.settings.check_interval_hours * 3600

    def run_forever(self, credentials: Sequence[str], proxies: Sequence[str],
                    max_cycles: Optional[int] = None) -> Optional[CycleStats]:
        """Runs claim cycles back to back with a computed wait in between.
        Without max_cycles it only ends when the process is stopped.
        """
        if not credentials:
            raise ConfigError("No private keys to process")

        cycles = 0
        try:
            while max_cycles is None or cycles < max_cycles:
                self.state = RunState.RUNNING_CYCLE
                self.last_stats = self.run_cycle(credentials, proxies)
                cycles += 1
                if max_cycles is not None and cycles >= max_cycles:
                    break

                delay = self.next_run_delay(self.last_stats)
                self.state = RunState.WAITING
                next_run = self._now() + timedelta(seconds=delay)
                logger.info(f"Next cycle at {next_run:%Y-%m-%d %H:%M:%S} (in {delay / 3600:.1f} hours)")
                self._sleep(delay)
        finally:
            self.state = RunState.IDLE
        return self.last_stats
