import json
from decimal import Decimal

import base58
import pytest
from solders.keypair import Keypair

from config import NETWORK_CONFIGS, ClientConfig, get_network_type, load_config
from tokens import percent_to_bps, resolve_mint, to_raw_amount, to_ui_amount
from wallet import keypair_from_base58, load_keypair, load_wallet


@pytest.mark.parametrize("url,network", [
    ("http://localhost:8899", "local"),
    ("http://127.0.0.1:8899", "local"),
    ("https://api.devnet.solana.com", "devnet"),
    ("https://api.mainnet-beta.solana.com", "mainnet"),
])
def test_network_type(url, network):
    assert get_network_type(url) == network


def test_unknown_network():
    with pytest.raises(ValueError):
        get_network_type("https://rpc.example.org")


def test_load_config_uses_network_defaults(monkeypatch):
    monkeypatch.setenv("RPC_URL", "https://api.devnet.solana.com")
    monkeypatch.setenv("SLIPPAGE_BPS", "75")
    monkeypatch.setenv("DRY_RUN", "true")
    monkeypatch.delenv("CPMM_PROGRAM_ID", raising=False)
    monkeypatch.delenv("COMMITMENT", raising=False)

    config = load_config()

    assert config.network == "devnet"
    assert config.cpmm_program_id == NETWORK_CONFIGS["devnet"]["cpmm_program_id"]
    assert config.slippage_bps == 75
    assert config.dry_run is True


def test_load_config_requires_rpc(monkeypatch):
    monkeypatch.delenv("RPC_URL", raising=False)
    with pytest.raises(ValueError):
        load_config()


def test_bad_commitment(monkeypatch):
    monkeypatch.setenv("RPC_URL", "http://localhost:8899")
    monkeypatch.setenv("COMMITMENT", "instant")
    with pytest.raises(ValueError):
        load_config()


def test_wallet_sources(tmp_path):
    kp = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(kp))))
    secret = base58.b58encode(bytes(kp)).decode()

    assert load_keypair(str(path)).pubkey() == kp.pubkey()
    assert keypair_from_base58(secret).pubkey() == kp.pubkey()
    assert load_wallet(ClientConfig(private_key=secret, wallet_path="/nope")).pubkey() == kp.pubkey()
    with pytest.raises(FileNotFoundError):
        load_keypair(str(tmp_path / "missing.json"))
    with pytest.raises(ValueError):
        keypair_from_base58(base58.b58encode(b"short").decode())


def test_amount_conversion():
    assert to_raw_amount("1.5", 9) == 1_500_000_000
    assert to_raw_amount("0.0000001239", 9) == 123
    assert to_ui_amount(1_500_000, 6) == Decimal("1.5")
    assert percent_to_bps("0.5") == 50
    assert percent_to_bps("10") == 1_000
    assert resolve_mint("sol") == "So11111111111111111111111111111111111111112"
    with pytest.raises(ValueError):
        to_raw_amount("-1", 6)
