"""
Vault records and the vault store.
"""
from enum import Enum
from typing import Optional

from synthvault.constants import PRICE_SCALE, RATIO_SCALE, VAULT_PREFIX
from synthvault.errors import InvalidPrice, VaultNotFound
from synthvault.safe_math import checked_add, checked_mul, checked_sub
from synthvault.state import StateBatch


class VaultStatus(Enum):
    EMPTY = "empty"
    ACTIVE = "active"
    COLLATERAL_ONLY = "collateral_only"


class Vault:
    """
    Per-account record of locked collateral and the synthetic amount it backs.

    ``price_at_lock`` is an informational snapshot of the oracle price at the
    last interaction; valuation always uses the live oracle price.
    """

    def __init__(self, data: dict = None):
        if data is None:
            data = {'collateral': 0, 'minted': 0, 'price_at_lock': 0}

        self.collateral = int(data['collateral'])
        self.minted = int(data['minted'])
        self.price_at_lock = int(data['price_at_lock'])

    def to_dict(self) -> dict:
        return {
            'collateral': str(self.collateral),
            'minted': str(self.minted),
            'price_at_lock': str(self.price_at_lock),
        }

    @property
    def status(self) -> VaultStatus:
        if self.minted > 0:
            return VaultStatus.ACTIVE
        if self.collateral > 0:
            return VaultStatus.COLLATERAL_ONLY
        return VaultStatus.EMPTY

    def add_collateral(self, amount: int, price: int):
        self.collateral = checked_add(self.collateral, amount)
        self.price_at_lock = price

    def release(self, collateral_amount: int, burn_amount: int, price: int):
        self.collateral = checked_sub(self.collateral, collateral_amount)
        self.minted = checked_sub(self.minted, burn_amount)
        self.price_at_lock = price

    def collateral_return(self, burn_amount: int) -> int:
        """Collateral released when ``burn_amount`` tokens are burned."""
        if self.minted == 0:
            raise VaultNotFound("Vault has no minted position")
        return checked_mul(self.collateral, burn_amount) // self.minted

    def collateral_ratio(self, price: int) -> int:
        """
        Collateral value over minted value, in percent, truncated.

        (collateral * 100 * 100) // (minted * price). Multiplications are
        guarded; the single division happens last.
        """
        if self.minted == 0:
            raise VaultNotFound("Vault has no minted position")

        numerator = checked_mul(checked_mul(self.collateral, RATIO_SCALE), PRICE_SCALE)
        denominator = checked_mul(self.minted, price)
        if denominator == 0:
            raise InvalidPrice("Cannot value a vault at a zero price")
        return numerator // denominator

    def __eq__(self, other) -> bool:
        if not isinstance(other, Vault):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"Vault("
            f"collateral={self.collateral}, "
            f"minted={self.minted}, "
            f"price_at_lock={self.price_at_lock})"
        )


class VaultStore:
    """Vault records keyed by account address."""

    def __init__(self, state: StateBatch):
        self.state = state

    @staticmethod
    def _key(address: bytes) -> bytes:
        return VAULT_PREFIX + address

    def get(self, address: bytes) -> Optional[Vault]:
        record = self.state.get_record(self._key(address))
        if record is None:
            return None
        return Vault(record)

    def get_or_default(self, address: bytes) -> Vault:
        return self.get(address) or Vault()

    def put(self, address: bytes, vault: Vault):
        self.state.put_record(self._key(address), vault.to_dict())

    def delete(self, address: bytes):
        self.state.delete(self._key(address))

    def items(self) -> list[tuple[bytes, Vault]]:
        return [
            (key[len(VAULT_PREFIX):], Vault(self.state.get_record(key)))
            for key, _ in self.state.prefix_items(VAULT_PREFIX)
        ]

    def total_collateral(self) -> int:
        total = 0
        for _, vault in self.items():
            total = checked_add(total, vault.collateral)
        return total
