"""
Synthetic token supply tracking.
"""
from decimal import Decimal

from synthvault.constants import TOKEN_UNIT
from synthvault.safe_math import checked_add, checked_sub


class SupplyState:
    """
    Total supply of the synthetic token plus lifetime mint/burn counters.

    total_supply always equals total_minted - total_burned.
    """

    def __init__(self, data: dict = None):
        """
        Initialize supply state.

        Args:
            data: Dict with supply tracking
        """
        if data is None:
            data = {
                'total_supply': 0,
                'total_minted': 0,
                'total_burned': 0,
            }

        self.total_supply = int(data['total_supply'])
        self.total_minted = int(data['total_minted'])
        self.total_burned = int(data['total_burned'])
        self._validate()

    def to_dict(self) -> dict:
        """
        Convert to dict for storage.
        """
        return {
            'total_supply': str(self.total_supply),
            'total_minted': str(self.total_minted),
            'total_burned': str(self.total_burned),
        }

    def record_mint(self, amount: int):
        self.total_supply = checked_add(self.total_supply, amount)
        self.total_minted = checked_add(self.total_minted, amount)

    def record_burn(self, amount: int):
        self.total_supply = checked_sub(self.total_supply, amount)
        self.total_burned = checked_add(self.total_burned, amount)

    def __repr__(self) -> str:
        supply_tokens = Decimal(self.total_supply) / Decimal(TOKEN_UNIT)
        return (
            f"SupplyState("
            f"minted={self.total_minted}, "
            f"burned={self.total_burned}, "
            f"supply={supply_tokens} tokens)"
        )

    def _validate(self):
        """Ensure state consistency."""
        if self.total_minted < 0 or self.total_burned < 0 or self.total_supply < 0:
            raise ValueError("Supply counters cannot be negative")

        if self.total_supply != self.total_minted - self.total_burned:
            raise ValueError(
                f"Supply mismatch: {self.total_supply} != "
                f"{self.total_minted} - {self.total_burned}"
            )
