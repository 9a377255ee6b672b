"""
Locking-script -> address resolution.

Only the standard addressable output patterns resolve:

    P2PKH   OP_DUP OP_HASH160 <20> OP_EQUALVERIFY OP_CHECKSIG
    P2SH    OP_HASH160 <20> OP_EQUAL
    P2WPKH  OP_0 <20>              (bech32)
    P2WSH   OP_0 <32>              (bech32)
    P2TR    OP_1 <32>              (bech32m)

Everything else (bare pubkey, multisig, OP_RETURN, unknown witness versions)
has no canonical address and raises ScriptDecodeError.
"""

from __future__ import annotations

from dataclasses import dataclass

from embit.base import EmbitError
from embit.networks import NETWORKS
from embit.script import Script

ADDRESSABLE_TYPES = frozenset({"p2pkh", "p2sh", "p2wpkh", "p2wsh", "p2tr"})


class ScriptDecodeError(ValueError):
    pass


@dataclass(frozen=True)
class NetworkProfile:
    bech32_hrp: str
    pubkey_hash: int
    script_hash: int
    wif: int

    def as_embit(self) -> dict:
        return {
            **NETWORKS["main"],
            "bech32": self.bech32_hrp,
            "p2pkh": bytes([self.pubkey_hash]),
            "p2sh": bytes([self.script_hash]),
            "wif": bytes([self.wif]),
        }


MAINNET = NetworkProfile(bech32_hrp="bc", pubkey_hash=0x00, script_hash=0x05, wif=0x80)


def script_to_address(script: bytes, network: NetworkProfile = MAINNET) -> str:
    parsed = Script(script)
    script_type = parsed.script_type()
    if script_type not in ADDRESSABLE_TYPES:
        raise ScriptDecodeError(f"Unrecognised output script ({len(script)} bytes).")

    try:
        address = parsed.address(network.as_embit())
    except (EmbitError, ValueError) as e:
        raise ScriptDecodeError(f"Cannot encode {script_type} script: {e}") from e

    if not address:
        raise ScriptDecodeError(f"Cannot encode {script_type} script.")
    return address


def resolve(script_hex: str | None, network: NetworkProfile = MAINNET) -> str | None:
    """
    Decode a hex locking script into its address, or None for empty input.
    """
    script_hex = (script_hex or "").strip()
    if not script_hex:
        return None

    try:
        script = bytes.fromhex(script_hex)
    except ValueError as e:
        raise ScriptDecodeError("Script is not valid hex.") from e

    return script_to_address(script, network)
