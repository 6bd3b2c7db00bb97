"""
Narrow wallet interface the disbursement core depends on.

Only the adapter knows which crypto libraries are in use; everything above it
works with KeyPair, UnspentOutput and PaymentTransaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from quizpay.errors import SigningFailed
from quizpay.wallet import models
from quizpay.wallet.address import address_to_scriptpubkey
from quizpay.wallet.keys import KeyPair, derive_address, generate_keypair, keypair_from_wif
from quizpay.wallet.signing import Transaction, TxInput, TxOutput, sign_transaction


class WalletAdapter(ABC):
    @abstractmethod
    def generate(self) -> KeyPair:
        """Create a new random key pair"""

    @abstractmethod
    def from_encoded_secret(self, secret: str) -> KeyPair:
        """Import a WIF secret, raising InvalidKeyEncoding on bad input"""

    @abstractmethod
    def derive_address(self, keypair: KeyPair) -> str:
        """Address owned by the key pair"""

    @abstractmethod
    def build_and_sign(
        self,
        payer_key: KeyPair,
        inputs: Sequence[models.UnspentOutput],
        outputs: Sequence[models.TxOutput],
    ) -> bytes:
        """Serialize and sign a transaction spending ``inputs``, returns raw bytes"""

    @abstractmethod
    def encode_transaction(self, transaction: models.PaymentTransaction) -> str:
        """Wire encoding (hex) for broadcast"""


class CoincurveWalletAdapter(WalletAdapter):
    """WalletAdapter backed by coincurve (secp256k1) and base58."""

    def __init__(self, network: str = "mainnet"):
        self.network = network

    def generate(self) -> KeyPair:
        return generate_keypair(self.network)

    def from_encoded_secret(self, secret: str) -> KeyPair:
        return keypair_from_wif(secret, self.network)

    def derive_address(self, keypair: KeyPair) -> str:
        return derive_address(keypair)

    def build_and_sign(
        self,
        payer_key: KeyPair,
        inputs: Sequence[models.UnspentOutput],
        outputs: Sequence[models.TxOutput],
    ) -> bytes:
        if not inputs:
            raise SigningFailed("No inputs to sign")

        try:
            script_code = address_to_scriptpubkey(payer_key.address)
            tx = Transaction(
                inputs=[
                    TxInput(
                        txid_le=bytes.fromhex(utxo.txid)[::-1],
                        vout=utxo.vout,
                        value=utxo.value,
                        script_code=script_code,
                    )
                    for utxo in inputs
                ],
                outputs=[
                    TxOutput(value=out.value, script=address_to_scriptpubkey(out.address))
                    for out in outputs
                ],
            )
        except ValueError as e:
            raise SigningFailed(f"Cannot build transaction: {e}") from e

        foreign = [utxo for utxo in inputs if utxo.address != payer_key.address]
        if foreign:
            raise SigningFailed(
                f"Input {foreign[0].txid}:{foreign[0].vout} is not owned by {payer_key.address}"
            )

        return sign_transaction(tx, payer_key.private_key, payer_key.public_key_bytes())

    def encode_transaction(self, transaction: models.PaymentTransaction) -> str:
        return transaction.raw.hex()
