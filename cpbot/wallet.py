"""Wallet loading — JSON keypair file or base58 secret key."""

import json
from pathlib import Path

import base58
from solders.keypair import Keypair

from config import ClientConfig


def load_keypair(wallet_path: str) -> Keypair:
    resolved = Path(wallet_path).expanduser().resolve()
    if not resolved.exists():
        raise FileNotFoundError(f"Wallet file not found: {resolved}")

    secret = json.loads(resolved.read_text())
    return Keypair.from_bytes(bytes(secret))


def keypair_from_base58(private_key: str) -> Keypair:
    secret = base58.b58decode(private_key.strip())
    if len(secret) != 64:
        raise ValueError(f"Base58 secret key must decode to 64 bytes, got {len(secret)}")
    return Keypair.from_bytes(secret)


def load_wallet(config: ClientConfig) -> Keypair:
    """PRIVATE_KEY wins over WALLET_PATH when both are set."""
    if config.private_key:
        return keypair_from_base58(config.private_key)
    return load_keypair(config.wallet_path)
