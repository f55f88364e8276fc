"""Address and byte-string normalization for entity keys."""

from __future__ import annotations

from typing import Any

from hexbytes import HexBytes
from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(value: Any) -> str:
    """Return the lowercase 0x-prefixed form of an address; raise ValueError if invalid."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise ValueError(f"address must be 20 bytes, got {len(value)}")
        return "0x" + bytes(value).hex()
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"invalid address: {value!r}")
    return Web3.to_checksum_address(value).lower()


def is_zero_address(address: str) -> bool:
    return address == ZERO_ADDRESS


def looks_like_address(value: Any) -> bool:
    return isinstance(value, str) and len(value) == 42 and Web3.is_address(value)


def normalize_hex(value: Any) -> str:
    """Return byte-like values (bytes32 roles, hashes, calldata) as lowercase 0x hex."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        return Web3.to_hex(HexBytes(value)).lower()
    raise ValueError(f"expected bytes or hex string, got {type(value).__name__}")
