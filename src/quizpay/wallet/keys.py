"""
Key material: generation, WIF import/export and address derivation.
"""

from __future__ import annotations

import base58
from coincurve import PrivateKey, PublicKey

from quizpay.constants import WIF_PREFIX
from quizpay.errors import InvalidKeyEncoding
from quizpay.wallet.address import pubkey_to_p2pkh_address

_NETWORK_BY_WIF_PREFIX = {prefix: network for network, prefix in WIF_PREFIX.items()}
_MASK_CHAR = "\u2022"


def mask_secret(secret: str) -> str:
    """Show only the first and last four characters of a secret."""
    if not secret:
        return ""
    if len(secret) <= 8:
        return _MASK_CHAR * len(secret)
    return f"{secret[:4]}{_MASK_CHAR * (len(secret) - 8)}{secret[-4:]}"


class KeyPair:
    """
    A signing key together with its derived public key and P2PKH address.

    Instances are immutable. The private key is never part of ``repr``.
    """

    def __init__(
        self,
        private_key: PrivateKey,
        network: str = "mainnet",
        compressed: bool = True,
    ):
        if network not in WIF_PREFIX:
            raise ValueError(f"Unsupported network: {network}")
        self._private_key = private_key
        self._public_key = private_key.public_key
        self._network = network
        self._compressed = compressed
        self._address = pubkey_to_p2pkh_address(self.public_key_bytes(), network)

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    @property
    def address(self) -> str:
        return self._address

    @property
    def network(self) -> str:
        return self._network

    @property
    def compressed(self) -> bool:
        return self._compressed

    def public_key_bytes(self) -> bytes:
        return self._public_key.format(compressed=self._compressed)

    def public_key_hex(self) -> str:
        return self.public_key_bytes().hex()

    def to_wif(self) -> str:
        return encode_wif(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyPair):
            return NotImplemented
        return (
            self._private_key.secret == other._private_key.secret
            and self._network == other._network
            and self._compressed == other._compressed
        )

    def __hash__(self) -> int:
        return hash((self._address, self._network))

    def __repr__(self) -> str:
        return f"KeyPair(address={self._address!r}, network={self._network!r})"


def generate_keypair(network: str = "mainnet") -> KeyPair:
    """Create a fresh key from the OS CSPRNG (coincurve default)."""
    return KeyPair(PrivateKey(), network=network)


def encode_wif(keypair: KeyPair) -> str:
    payload = bytes([WIF_PREFIX[keypair.network]]) + keypair.private_key.secret
    if keypair.compressed:
        payload += b"\x01"
    return base58.b58encode_check(payload).decode("ascii")


def keypair_from_wif(wif: str, network: str | None = None) -> KeyPair:
    """
    Decode a WIF private key.

    Args:
        wif: Base58check-encoded secret
        network: Expected network. When None, the network is taken from the prefix.

    Raises:
        InvalidKeyEncoding: On bad charset, checksum, length, prefix or scalar
    """
    try:
        decoded = base58.b58decode_check(wif.strip())
    except ValueError as e:
        raise InvalidKeyEncoding(f"Invalid WIF encoding: {e}") from e

    if len(decoded) == 34 and decoded[-1] == 0x01:
        secret = decoded[1:33]
        compressed = True
    elif len(decoded) == 33:
        secret = decoded[1:]
        compressed = False
    else:
        raise InvalidKeyEncoding(f"Invalid WIF payload length: {len(decoded)}")

    wif_network = _NETWORK_BY_WIF_PREFIX.get(decoded[0])
    if wif_network is None:
        raise InvalidKeyEncoding(f"Unknown WIF prefix: 0x{decoded[0]:02x}")
    if network is not None and wif_network != network:
        raise InvalidKeyEncoding(f"WIF is for {wif_network}, expected {network}")

    try:
        private_key = PrivateKey(secret)
    except ValueError as e:
        raise InvalidKeyEncoding(f"Invalid private key scalar: {e}") from e

    return KeyPair(private_key, network=wif_network, compressed=compressed)


def derive_address(keypair: KeyPair) -> str:
    return pubkey_to_p2pkh_address(keypair.public_key_bytes(), keypair.network)
