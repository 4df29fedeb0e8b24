"""
Price oracle state - the single trusted asset price and the height at which
it was last reported.
"""
from synthvault.constants import EXPIRY_BLOCKS, MAXIMUM_PRICE, PRICE_SCALE
from synthvault.errors import InvalidPrice
from synthvault.safe_math import checked_sub


class OraclePrice:
    """
    Singleton oracle record.

    ``value`` is scaled by PRICE_SCALE (100 == 1.00). A value of 0 means no
    price has been reported yet, which no price-dependent operation accepts.
    """

    def __init__(self, data: dict = None):
        """
        Initialize oracle state.

        Args:
            data: Dict with 'value' and 'last_update_height'
        """
        if data is None:
            data = {'value': 0, 'last_update_height': 0}

        self.value = int(data['value'])
        self.last_update_height = int(data['last_update_height'])
        self._validate()

    def to_dict(self) -> dict:
        """
        Convert to dict for storage.
        """
        return {
            'value': str(self.value),
            'last_update_height': str(self.last_update_height),
        }

    @property
    def is_set(self) -> bool:
        return self.value > 0

    @staticmethod
    def check_price(new_price: int, maximum_price: int = MAXIMUM_PRICE):
        """Raise InvalidPrice unless 0 < new_price < maximum_price."""
        if isinstance(new_price, bool) or not isinstance(new_price, int):
            raise TypeError(f"Price must be an integer, got {type(new_price).__name__}")
        if new_price <= 0 or new_price >= maximum_price:
            raise InvalidPrice(
                f"Price {new_price} outside (0, {maximum_price})"
            )

    def update(self, new_price: int, height: int, maximum_price: int = MAXIMUM_PRICE):
        self.check_price(new_price, maximum_price)
        self.value = new_price
        self.last_update_height = height

    def blocks_since_update(self, current_height: int) -> int:
        return checked_sub(current_height, self.last_update_height)

    def is_fresh(self, current_height: int, expiry_blocks: int = EXPIRY_BLOCKS) -> bool:
        """
        True iff a price has been reported and no more than ``expiry_blocks``
        have elapsed since. Heights running backwards raise ArithmeticOverflow.
        """
        if not self.is_set:
            return False
        return self.blocks_since_update(current_height) <= expiry_blocks

    def __repr__(self) -> str:
        whole, cents = divmod(self.value, PRICE_SCALE)
        return (
            f"OraclePrice("
            f"value={whole}.{cents:02d}, "
            f"last_update_height={self.last_update_height})"
        )

    def _validate(self):
        if self.value < 0 or self.last_update_height < 0:
            raise ValueError("Oracle fields cannot be negative")
