"""
Signed transaction envelope for engine operations.
"""
import time
from typing import Optional

import msgpack

from synthvault.crypto import (
    ADDRESS_LENGTH,
    generate_hash,
    public_key_to_address,
    sign,
    verify_signature,
)

UPDATE_PRICE = "UPDATE_PRICE"
MINT = "MINT"
BURN = "BURN"
TRANSFER = "TRANSFER"
DEPOSIT_COLLATERAL = "DEPOSIT_COLLATERAL"
LIQUIDATE = "LIQUIDATE"

# msgpack integers are at most 64 bits wide
MAX_TX_AMOUNT = 2 ** 64 - 1

# Fields covered by the signature, in canonical order
SIGNED_FIELDS = ("sender_public_key", "tx_type", "data", "nonce", "timestamp", "chain_id")


def _is_amount(value) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value <= MAX_TX_AMOUNT
    )


def _is_address_hex(value) -> bool:
    if not isinstance(value, str):
        return False
    try:
        return len(bytes.fromhex(value)) == ADDRESS_LENGTH
    except ValueError:
        return False


# Required payload fields per transaction type. Zero and range rules for
# amounts belong to the engine.
PAYLOAD_RULES = {
    UPDATE_PRICE: {'price': _is_amount},
    MINT: {'amount': _is_amount},
    BURN: {'amount': _is_amount},
    DEPOSIT_COLLATERAL: {'amount': _is_amount},
    TRANSFER: {'to': _is_address_hex, 'amount': _is_amount},
    LIQUIDATE: {'owner': _is_address_hex},
}


class Transaction:
    def __init__(self,
                 sender_public_key: str,
                 tx_type: str,
                 data: dict,
                 nonce: int,
                 signature: Optional[bytes] = None,
                 timestamp: Optional[float] = None,
                 chain_id: Optional[int] = 1):
        self.sender_public_key = sender_public_key
        self.tx_type = tx_type
        self.data = data
        self.nonce = nonce
        self.signature = signature
        self.timestamp = timestamp if timestamp is not None else time.time()
        self.chain_id = chain_id

    @classmethod
    def from_dict(cls, data: dict) -> 'Transaction':
        """Accepts the signature as raw bytes or hex text."""
        signature = data.get("signature")
        if isinstance(signature, str):
            signature = bytes.fromhex(signature)
        fields = {name: data.get(name) for name in SIGNED_FIELDS}
        return cls(signature=signature, **fields)

    def to_dict(self, include_signature=True) -> dict:
        out = {name: getattr(self, name) for name in SIGNED_FIELDS}
        if include_signature and self.signature:
            out["signature"] = self.signature
        return out

    def get_signing_data(self) -> bytes:
        return msgpack.packb(self.to_dict(include_signature=False), use_bin_type=True)

    def sign(self, private_key):
        self.signature = sign(private_key, self.get_signing_data())

    def verify_signature(self) -> bool:
        if not self.signature:
            return False
        return verify_signature(self.sender_public_key, self.signature, self.get_signing_data())

    @property
    def sender_address(self) -> bytes:
        return public_key_to_address(self.sender_public_key)

    @property
    def id(self) -> bytes:
        """Keccak-256 of the signing data."""
        return generate_hash(self.get_signing_data())

    def validate_basic(self) -> tuple[bool, str]:
        """
        Stateless checks: signature, nonce shape, type and payload fields.
        Returns (is_valid, error_message).
        """
        if not self.verify_signature():
            return False, "Invalid signature"

        if isinstance(self.nonce, bool) or not isinstance(self.nonce, int) or self.nonce < 0:
            return False, "Nonce must be a non-negative integer"

        rules = PAYLOAD_RULES.get(self.tx_type)
        if rules is None:
            return False, f"Unknown transaction type: {self.tx_type}"

        if not isinstance(self.data, dict):
            return False, "Transaction data must be a dict"

        for field, check in rules.items():
            if not check(self.data.get(field)):
                return False, f"{self.tx_type} has a missing or malformed '{field}'"

        return True, ""

    def __repr__(self) -> str:
        return f"Transaction(type={self.tx_type}, nonce={self.nonce}, id={self.id.hex()[:16]})"
