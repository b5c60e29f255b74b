# config.py
# Configuration

# Default RPC endpoint (overridden by the first command line argument)
RPC_URL = "https://rpc.testnet.humanity.org"

# Chain ID of the default network (used by the RPC check)
CHAIN_ID = 1942999413

# Address of the rewards contract
CONTRACT_ADDRESS = "0xa18f6FCB2Fd4884436d10610E69DB7BFa1bFe8C7"

# Path to the rewards contract ABI
CONTRACT_ABI_PATH = "abis/rewards_abi.json"

# Contract methods and event used by the claimer
REWARDS_QUERY_METHOD = "dailyRewardsAvailable"
CLAIM_METHOD = "claimReward"
CLAIM_EVENT = "RewardClaimed"

# Input files
PRIVATE_KEYS_FILE = "pk.txt"
PROXIES_FILE = "proxies.txt"  # optional, one proxy per line: scheme://[user:pass@]host:port

# Retries for multi-wallet claim (retries after the first attempt)
MAX_RETRIES = 10
RETRY_DELAY_SEC = 0  # 0 = retry immediately
ESCALATION_FACTOR = 1.0  # 1.0 = constant delay

# Retries for single wallet claim (exponential backoff)
SINGLE_MAX_RETRIES = 5
SINGLE_RETRY_DELAY_SEC = 5
SINGLE_ESCALATION_FACTOR = 1.5

# Random pause between wallets in seconds [min, max]
MIN_PAUSE_SEC = 10
MAX_PAUSE_SEC = 60

# Continuous mode
CHECK_INTERVAL_HOURS = 1  # re-check interval when nothing was claimed
HOURS_TO_WAIT_AFTER_CLAIM = 23  # wait after at least one successful claim

# Gas limit for the claim transaction
CLAIM_GAS_LIMIT = 300_000

# Gas limit for plain ETH transfers
TRANSFER_GAS_LIMIT = 21_000

# Gas price multiplier for safety (applied to maxFeePerGas)
GAS_PRICE_MULTIPLIER = 1.1

# eth_feeHistory window used when the node has no eth_maxPriorityFeePerGas
FEE_HISTORY_BLOCKS = 5
FEE_HISTORY_PERCENTILE = 50

# Last-resort priority fee in wei (1 gwei)
DEFAULT_PRIORITY_FEE = 1_000_000_000

# Transaction timeout in seconds
TX_TIMEOUT = 300

# HTTP request timeout for RPC calls in seconds
REQUEST_TIMEOUT = 30

# Batch transfer dispatch: "sequential" or "fan_out"
TRANSFER_MODE = "fan_out"

# Max concurrent transfers in fan_out mode (ThreadPool max workers)
TRANSFER_WORKERS = 10

# Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
LOG_LEVEL = "INFO"

# Application log file path
LOG_FILE = "claimer.log"

# Append-only claim records
CLAIM_LOG_FILE = "claim_log.txt"
CLAIM_ERROR_LOG_FILE = "claim_error_log.txt"

# Output directory for transfer results and generated wallets
OUTPUT_DIR = "."
