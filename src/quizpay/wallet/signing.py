"""
Bitcoin SV transaction serialization and signing for P2PKH inputs.

BSV signs legacy P2PKH inputs with the BIP143 digest algorithm plus the
SIGHASH_FORKID flag, so the sighash commits to the value of every input.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

from coincurve import PrivateKey

from quizpay.constants import SIGHASH_ALL, SIGHASH_FORKID
from quizpay.errors import SigningFailed

SIGHASH_ALL_FORKID = SIGHASH_ALL | SIGHASH_FORKID


@dataclass
class TxInput:
    txid_le: bytes
    vout: int
    value: int
    script_code: bytes
    script_sig: bytes = b""
    sequence: bytes = b"\xff\xff\xff\xff"


@dataclass
class TxOutput:
    value: int
    script: bytes


@dataclass
class Transaction:
    inputs: list[TxInput]
    outputs: list[TxOutput]
    version: bytes = (1).to_bytes(4, "little")
    locktime: bytes = b"\x00\x00\x00\x00"
    raw: bytes = field(default=b"", repr=False)


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    first = data[offset]
    offset += 1

    if first < 0xFD:
        return first, offset
    if first == 0xFD:
        value = int.from_bytes(data[offset : offset + 2], "little")
        return value, offset + 2
    if first == 0xFE:
        value = int.from_bytes(data[offset : offset + 4], "little")
        return value, offset + 4
    value = int.from_bytes(data[offset : offset + 8], "little")
    return value, offset + 8


def encode_varint(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def push_data(data: bytes) -> bytes:
    """Minimal script push for payloads shorter than OP_PUSHDATA1."""
    if len(data) >= 0x4C:
        raise ValueError(f"Push too large: {len(data)} bytes")
    return bytes([len(data)]) + data


def serialize_outputs(outputs: list[TxOutput]) -> bytes:
    return b"".join(
        out.value.to_bytes(8, "little") + encode_varint(len(out.script)) + out.script
        for out in outputs
    )


def serialize_transaction(tx: Transaction) -> bytes:
    """Serialize in the legacy (non-witness) format."""
    result = tx.version
    result += encode_varint(len(tx.inputs))
    for inp in tx.inputs:
        result += inp.txid_le + inp.vout.to_bytes(4, "little")
        result += encode_varint(len(inp.script_sig)) + inp.script_sig
        result += inp.sequence
    result += encode_varint(len(tx.outputs))
    result += serialize_outputs(tx.outputs)
    result += tx.locktime
    return result


def deserialize_transaction(tx_bytes: bytes) -> Transaction:
    try:
        offset = 0
        version = tx_bytes[offset : offset + 4]
        offset += 4

        input_count, offset = read_varint(tx_bytes, offset)
        inputs: list[TxInput] = []

        for _ in range(input_count):
            txid_le = tx_bytes[offset : offset + 32]
            offset += 32

            vout = int.from_bytes(tx_bytes[offset : offset + 4], "little")
            offset += 4

            script_len, offset = read_varint(tx_bytes, offset)
            script_sig = tx_bytes[offset : offset + script_len]
            offset += script_len

            sequence = tx_bytes[offset : offset + 4]
            offset += 4

            inputs.append(
                TxInput(
                    txid_le=txid_le,
                    vout=vout,
                    value=0,
                    script_code=b"",
                    script_sig=script_sig,
                    sequence=sequence,
                )
            )

        output_count, offset = read_varint(tx_bytes, offset)
        outputs: list[TxOutput] = []

        for _ in range(output_count):
            value = int.from_bytes(tx_bytes[offset : offset + 8], "little")
            offset += 8

            script_len, offset = read_varint(tx_bytes, offset)
            script = tx_bytes[offset : offset + script_len]
            offset += script_len

            outputs.append(TxOutput(value, script))

        locktime = tx_bytes[offset : offset + 4]
        if len(locktime) != 4 or offset + 4 != len(tx_bytes):
            raise ValueError("Trailing or missing bytes")
        return Transaction(inputs, outputs, version, locktime, tx_bytes)

    except (IndexError, ValueError) as e:
        raise ValueError(f"Failed to parse transaction: {e}") from e


def compute_sighash_forkid(
    tx: Transaction,
    input_index: int,
    sighash_type: int = SIGHASH_ALL_FORKID,
) -> bytes:
    """BIP143 digest as used by BSV with SIGHASH_FORKID (fork id 0)."""
    if input_index >= len(tx.inputs):
        raise SigningFailed("Input index out of range")

    hash_prevouts = hash256(
        b"".join(inp.txid_le + inp.vout.to_bytes(4, "little") for inp in tx.inputs)
    )
    hash_sequence = hash256(b"".join(inp.sequence for inp in tx.inputs))
    hash_outputs = hash256(serialize_outputs(tx.outputs))

    target_input = tx.inputs[input_index]

    preimage = (
        tx.version
        + hash_prevouts
        + hash_sequence
        + target_input.txid_le
        + target_input.vout.to_bytes(4, "little")
        + encode_varint(len(target_input.script_code))
        + target_input.script_code
        + target_input.value.to_bytes(8, "little")
        + target_input.sequence
        + hash_outputs
        + tx.locktime
        + sighash_type.to_bytes(4, "little")
    )

    return hash256(preimage)


def sign_p2pkh_input(
    tx: Transaction,
    input_index: int,
    private_key: PrivateKey,
    sighash_type: int = SIGHASH_ALL_FORKID,
) -> bytes:
    """Sign one input using coincurve.

    Returns:
        DER-encoded signature with the sighash type byte appended
    """
    sighash = compute_sighash_forkid(tx, input_index, sighash_type)

    # Pre-hashed digest, so skip coincurve's own hashing
    signature = private_key.sign(sighash, hasher=None)

    return signature + bytes([sighash_type])


def create_p2pkh_script_sig(signature: bytes, pubkey_bytes: bytes) -> bytes:
    return push_data(signature) + push_data(pubkey_bytes)


def sign_transaction(tx: Transaction, private_key: PrivateKey, pubkey_bytes: bytes) -> bytes:
    """Sign every input with one key and return the serialized transaction.

    Raises:
        SigningFailed: If any input cannot be signed
    """
    try:
        signatures = [sign_p2pkh_input(tx, i, private_key) for i in range(len(tx.inputs))]
        for inp, signature in zip(tx.inputs, signatures, strict=True):
            inp.script_sig = create_p2pkh_script_sig(signature, pubkey_bytes)
    except SigningFailed:
        raise
    except (ValueError, TypeError) as e:
        raise SigningFailed(f"Failed to sign transaction: {e}") from e

    tx.raw = serialize_transaction(tx)
    return tx.raw


def compute_txid(raw: bytes) -> str:
    return hash256(raw)[::-1].hex()
