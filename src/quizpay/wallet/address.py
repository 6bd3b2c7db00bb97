"""
Bitcoin SV address utilities (P2PKH, base58check).
"""

from __future__ import annotations

import hashlib

import base58

from quizpay.constants import P2PKH_VERSION


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def pubkey_to_p2pkh_address(pubkey_bytes: bytes, network: str = "mainnet") -> str:
    """
    Convert a public key (33-byte compressed or 65-byte uncompressed) to a
    legacy P2PKH address.
    """
    if len(pubkey_bytes) not in (33, 65):
        raise ValueError(f"Invalid pubkey length: {len(pubkey_bytes)}")

    version = P2PKH_VERSION[network]
    payload = bytes([version]) + hash160(pubkey_bytes)
    return base58.b58encode_check(payload).decode("ascii")


def p2pkh_script(pubkey_hash: bytes) -> bytes:
    """OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG"""
    return bytes([0x76, 0xA9, 0x14]) + pubkey_hash + bytes([0x88, 0xAC])


def address_to_scriptpubkey(address: str) -> bytes:
    """
    Convert a P2PKH address (mainnet 1..., testnet m.../n...) to its locking script.
    """
    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise ValueError(f"Invalid base58 address: {address}") from e

    if len(decoded) != 21:
        raise ValueError(f"Invalid address payload length: {len(decoded)}")

    version = decoded[0]
    if version not in P2PKH_VERSION.values():
        raise ValueError(f"Unknown address version: {version}")

    return p2pkh_script(decoded[1:])
