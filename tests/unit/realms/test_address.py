"""Unit tests for locking-script address resolution."""

from __future__ import annotations

import pytest

from realms.address import MAINNET, ScriptDecodeError, resolve, script_to_address

P2PKH_SCRIPT = "76a91462e907b15cbf27d5425399ebf6f0fb50ebb88f1888ac"
P2SH_SCRIPT = "a914" + "11" * 20 + "87"
P2WPKH_SCRIPT = "0014751e76e8199196d454941c45d1b3a323f1433bd6"
P2WSH_SCRIPT = "00201863143c14c5166804bd19203356da136c985678cd4d27a1b8c6329604903262"
P2TR_SCRIPT = "512079be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"


def test_resolve_empty_input_returns_none() -> None:
    """Missing or blank scripts have no address and raise nothing."""
    assert resolve(None) is None
    assert resolve("") is None
    assert resolve("   ") is None


def test_resolve_p2pkh() -> None:
    """Legacy pubkey-hash scripts encode as base58check with version 0x00."""
    assert resolve(P2PKH_SCRIPT) == "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"


def test_resolve_p2sh_uses_script_hash_version() -> None:
    """Script-hash outputs encode with version 0x05 (mainnet '3...')."""
    address = resolve(P2SH_SCRIPT)

    assert address is not None
    assert address.startswith("3")


def test_resolve_p2wpkh() -> None:
    """Witness v0 key hash encodes as bech32."""
    assert resolve(P2WPKH_SCRIPT) == "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"


def test_resolve_p2wsh() -> None:
    """Witness v0 script hash encodes as a 62-char bech32 address."""
    address = resolve(P2WSH_SCRIPT)

    assert address is not None
    assert address.startswith("bc1q")
    assert len(address) == 62


def test_resolve_p2tr_uses_bech32m() -> None:
    """Taproot outputs encode as witness v1 bech32m."""
    assert resolve(P2TR_SCRIPT) == "bc1p0xlxvlhemja6c4dqv22uapctqupfhlxm9h8z3k2e72q4k9hcz7vqzk5jj0"


def test_resolve_is_deterministic() -> None:
    """Same script resolves to the same address every call."""
    first = resolve(P2TR_SCRIPT)

    assert all(resolve(P2TR_SCRIPT) == first for _ in range(5))


def test_resolve_accepts_uppercase_hex() -> None:
    assert resolve(P2WPKH_SCRIPT.upper()) == resolve(P2WPKH_SCRIPT)


def test_resolve_rejects_non_hex() -> None:
    with pytest.raises(ScriptDecodeError):
        resolve("not-a-script")


@pytest.mark.parametrize(
    "script_hex",
    [
        "6a0568656c6c6f",  # OP_RETURN "hello"
        "21" + "02" * 33 + "ac",  # bare pubkey
        "0014" + "00" * 19,  # truncated witness program
        "5220" + "00" * 32,  # witness v2
    ],
)
def test_resolve_rejects_unaddressable_scripts(script_hex: str) -> None:
    """Outputs without a canonical address raise ScriptDecodeError."""
    with pytest.raises(ScriptDecodeError):
        resolve(script_hex)


def test_script_to_address_takes_raw_bytes() -> None:
    assert script_to_address(bytes.fromhex(P2PKH_SCRIPT), MAINNET) == resolve(P2PKH_SCRIPT)


def test_resolve_p2tr_key_path_output() -> None:
    """Taproot output keys carry the bech32m checksum, not the v0 one."""
    script_hex = "5120a60869f0dbcf1dc659c9cecbaf8050135ea9e8cdc487053f1dc6880949dc684c"

    assert resolve(script_hex) == "bc1p5cyxnuxmeuwuvkwfem96lqzszd02n6xdcjrs20cac6yqjjwudpxqkedrcr"
