"""Client configuration — loaded from .env or environment variables."""

import os
from pathlib import Path
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# Per-network program addresses
NETWORK_CONFIGS: dict[str, dict[str, str]] = {
    "local": {
        "cpmm_program_id": "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C",
        "cpmm_config_id": "D4FPEruKEHrG5TenZ2mpDGEfu1iUvTiqBxvpU8HLBvC2",
        "create_pool_fee_receiver": "DNXgeM9EiiaAbaWvwjHj9fQQLAX5ZsfHyvmYUNRAdNC8",
    },
    "devnet": {
        "cpmm_program_id": "CPMDWBwJDtYax9qW7AyRuVC19Cc4L4Vcy4n2BHAbHkCW",
        "cpmm_config_id": "9zSzfkYy6awexsHvmggeH36pfVUdDGyCcwmjT3AQPBj6",
        "create_pool_fee_receiver": "G11FKBRaAkHAKuLCgLM6K6NUc9rTjPAznRCjZifrTQe2",
    },
    "mainnet": {
        "cpmm_program_id": "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C",
        "cpmm_config_id": "D4FPEruKEHrG5TenZ2mpDGEfu1iUvTiqBxvpU8HLBvC2",
        "create_pool_fee_receiver": "DNXgeM9EiiaAbaWvwjHj9fQQLAX5ZsfHyvmYUNRAdNC8",
    },
}

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


def get_network_type(rpc_url: str) -> str:
    url = rpc_url.lower()
    if "localhost" in url or "127.0.0.1" in url:
        return "local"
    if "devnet" in url:
        return "devnet"
    if "mainnet" in url:
        return "mainnet"
    raise ValueError(f"Cannot tell the network from RPC url: {rpc_url}")


@dataclass
class ClientConfig:
    rpc_url: str = ""
    network: str = "mainnet"
    wallet_path: str = ""
    private_key: str = ""
    cpmm_program_id: str = NETWORK_CONFIGS["mainnet"]["cpmm_program_id"]
    cpmm_config_id: str = NETWORK_CONFIGS["mainnet"]["cpmm_config_id"]
    create_pool_fee_receiver: str = NETWORK_CONFIGS["mainnet"]["create_pool_fee_receiver"]
    compute_unit_limit: int = 400_000
    compute_unit_price: int = 100_000  # micro-lamports per CU
    slippage_bps: int = 500
    lp_safety_margin_bps: int = 200
    fee_reserve_lamports: int = 5_000
    commitment: str = "confirmed"
    unwrap_in_same_tx: bool = False
    dry_run: bool = False


def load_config() -> ClientConfig:
    env = os.environ

    rpc_url = env.get("RPC_URL", "")
    if not rpc_url:
        raise ValueError("RPC_URL is required")

    network = get_network_type(rpc_url)
    defaults = NETWORK_CONFIGS[network]

    commitment = env.get("COMMITMENT", "confirmed").lower()
    if commitment not in COMMITMENT_LEVELS:
        raise ValueError(f"COMMITMENT must be one of {COMMITMENT_LEVELS}, got {commitment}")

    return ClientConfig(
        rpc_url=rpc_url,
        network=network,
        wallet_path=env.get(
            "WALLET_PATH", str(Path.home() / ".config" / "solana" / "id.json")
        ),
        private_key=env.get("PRIVATE_KEY", ""),
        cpmm_program_id=env.get("CPMM_PROGRAM_ID", defaults["cpmm_program_id"]),
        cpmm_config_id=env.get("CPMM_CONFIG_ID", defaults["cpmm_config_id"]),
        create_pool_fee_receiver=env.get(
            "CREATE_POOL_FEE_RECEIVER", defaults["create_pool_fee_receiver"]
        ),
        compute_unit_limit=int(env.get("COMPUTE_UNIT_LIMIT", "400000")),
        compute_unit_price=int(env.get("COMPUTE_UNIT_PRICE", "100000")),
        slippage_bps=int(env.get("SLIPPAGE_BPS", "500")),
        lp_safety_margin_bps=int(env.get("LP_SAFETY_MARGIN_BPS", "200")),
        fee_reserve_lamports=int(env.get("FEE_RESERVE_LAMPORTS", "5000")),
        commitment=commitment,
        unwrap_in_same_tx=env.get("UNWRAP_IN_SAME_TX", "false").lower() == "true",
        dry_run=env.get("DRY_RUN", "false").lower() == "true",
    )
