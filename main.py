# main.py
import asyncio
import sys

import config
from chain_client import ChainClient
from claimer import ClaimOrchestrator, ClaimSettings
from errors import ClaimerError
from logger import get_logger
from transfer import parse_amount, run_batch_transfer, save_transfer_results
from utils import load_abi, load_credentials, load_proxies, load_recipients
from wallet_gen import generate_wallets, save_wallets

logger = get_logger("Main", config.LOG_LEVEL)


def menu() -> None:
    print("Select an action:")
    print("1. Multi-wallet claim (continuous)")
    print("2. Multi-wallet claim (single cycle)")
    print("3. Single wallet claim")
    print("4. Batch transfer ETH")
    print("5. Generate wallets")
    print("6. Check RPC connection")
    print("7. Exit")


def prompt(question: str, default: str = "") -> str:
    answer = input(f"{question}" + (f" (default: {default})" if default else "") + ": ").strip()
    return answer or default


def build_orchestrator(rpc_url: str) -> ClaimOrchestrator:
    settings = ClaimSettings(abi=load_abi(config.CONTRACT_ABI_PATH), rpc_url=rpc_url)
    return ClaimOrchestrator(ChainClient(), settings)


def run_claim(rpc_url: str, continuous: bool) -> None:
    orchestrator = build_orchestrator(rpc_url)
    credentials = load_credentials(config.PRIVATE_KEYS_FILE)
    proxies = load_proxies(config.PROXIES_FILE)
    logger.info(f"RPC: {rpc_url}, random pause {config.MIN_PAUSE_SEC}-{config.MAX_PAUSE_SEC} seconds")
    if continuous:
        logger.info(
            f"Continuous mode: re-check every {config.CHECK_INTERVAL_HOURS}h, "
            f"wait {config.HOURS_TO_WAIT_AFTER_CLAIM}h after a successful claim"
        )
        orchestrator.run_forever(credentials, proxies)
    else:
        orchestrator.run_forever(credentials, proxies, max_cycles=1)


def run_single_claim(rpc_url: str) -> None:
    orchestrator = build_orchestrator(rpc_url)
    orchestrator.settings = orchestrator.settings.single_wallet()
    credentials = load_credentials(config.PRIVATE_KEYS_FILE)
    if not credentials:
        raise ClaimerError(f"No private key in {config.PRIVATE_KEYS_FILE}")
    result = orchestrator.attempt_claim(credentials[0], None, 0, 1)
    logger.info(f"Single wallet claim finished: {result.status.value}")


async def run_transfer(rpc_url: str) -> None:
    key_file = prompt("Private key file", config.PRIVATE_KEYS_FILE)
    recipients_file = prompt("Recipients CSV/XLSX file", "wallet.csv")
    rpc_url = prompt("RPC URL", rpc_url)
    amount = parse_amount(prompt("Amount per address (ETH)"))

    keys = load_credentials(key_file)
    if not keys:
        raise ClaimerError(f"No private key in {key_file}")
    recipients = load_recipients(recipients_file)

    if prompt(f"Send {amount} ETH to {len(recipients)} addresses? (y/n)").lower() != "y":
        logger.info("Batch transfer cancelled")
        return
    results = await run_batch_transfer(ChainClient(), rpc_url, keys[0], recipients, amount)
    save_transfer_results(results)


def run_wallet_generation() -> None:
    count_input = prompt("How many wallets to generate")
    try:
        count = int(count_input)
    except ValueError:
        print("Please enter a positive integer.\n")
        return
    save_wallets(generate_wallets(count))


async def check_rpc(rpc_url: str) -> None:
    """Checks availability of the RPC node and reports chain_id match"""
    client = ChainClient()
    try:
        chain_id = client.chain_id(client.connect(rpc_url))
        status = "OK" if chain_id == config.CHAIN_ID else "UNEXPECTED CHAIN"
        print(f"{rpc_url}: {status} (chain_id: {chain_id})\n")
    except Exception as e:
        print(f"{rpc_url}: ERROR ({e})\n")


async def main_loop(rpc_url: str) -> None:
    while True:
        try:
            menu()
            choice = input("Enter action number: ").strip()
            if choice == "1":
                logger.info("Starting continuous multi-wallet claim...")
                run_claim(rpc_url, continuous=True)
            elif choice == "2":
                logger.info("Starting single claim cycle...")
                run_claim(rpc_url, continuous=False)
            elif choice == "3":
                logger.info("Starting single wallet claim...")
                run_single_claim(rpc_url)
            elif choice == "4":
                await run_transfer(rpc_url)
            elif choice == "5":
                run_wallet_generation()
            elif choice == "6":
                logger.info("Checking RPC connectivity...")
                await check_rpc(rpc_url)
            elif choice == "7":
                logger.info("Exiting...")
                sys.exit(0)
            else:
                print("Invalid input, please try again.\n")
        except ClaimerError as e:
            logger.error(f"{e}")
        except Exception as e:
            logger.error(f"Error in main loop: {e}")
            print("An error occurred, please check the log.\n")


def main() -> None:
    rpc_url = sys.argv[1] if len(sys.argv) > 1 else config.RPC_URL
    try:
        asyncio.run(main_loop(rpc_url))
    except KeyboardInterrupt:
        logger.info("Stopped by user")


if __name__ == "__main__":
    main()
