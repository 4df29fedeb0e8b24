"""
Synthetic token ledger: per-account balances and the total supply.
"""
from synthvault.constants import BALANCE_PREFIX, SUPPLY_ADDRESS
from synthvault.errors import InsufficientBalance, InvalidRecipient, Unauthorized, ZeroAmount
from synthvault.safe_math import checked_add, checked_sub
from synthvault.state import StateBatch
from synthvault.supply_state import SupplyState


class TokenLedger:
    def __init__(self, state: StateBatch):
        self.state = state

    @staticmethod
    def _key(address: bytes) -> bytes:
        return BALANCE_PREFIX + address

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def has_entry(self, address: bytes) -> bool:
        """True if the account has ever held a ledger entry (even zero)."""
        return self.state.exists(self._key(address))

    def balance_of(self, address: bytes) -> int:
        raw = self.state.get(self._key(address))
        if raw is None:
            return 0
        return int(raw.decode())

    def set_balance(self, address: bytes, amount: int):
        self.state.put(self._key(address), str(amount).encode())

    def credit(self, address: bytes, amount: int):
        self.set_balance(address, checked_add(self.balance_of(address), amount))

    def debit(self, address: bytes, amount: int):
        balance = self.balance_of(address)
        if balance < amount:
            raise InsufficientBalance(
                f"Balance {balance} is below {amount}"
            )
        self.set_balance(address, checked_sub(balance, amount))

    def balances(self) -> list[tuple[bytes, int]]:
        return [
            (key[len(BALANCE_PREFIX):], int(value.decode()))
            for key, value in self.state.prefix_items(BALANCE_PREFIX)
        ]

    def transfer(self, sender: bytes, recipient: bytes, amount: int):
        """Move tokens between accounts. Total supply is unchanged."""
        if amount == 0:
            raise ZeroAmount()
        if sender == recipient:
            raise InvalidRecipient()
        if not self.has_entry(sender):
            raise Unauthorized("Sender has no ledger entry")

        self.debit(sender, amount)
        self.credit(recipient, amount)

    # ------------------------------------------------------------------
    # Supply
    # ------------------------------------------------------------------

    def get_supply(self) -> SupplyState:
        record = self.state.get_record(SUPPLY_ADDRESS)
        if record is None:
            return SupplyState()
        return SupplyState(record)

    def set_supply(self, supply: SupplyState):
        self.state.put_record(SUPPLY_ADDRESS, supply.to_dict())

    def total_supply(self) -> int:
        return self.get_supply().total_supply

    def mint(self, address: bytes, amount: int):
        """Credit new tokens and grow the supply."""
        self.credit(address, amount)
        supply = self.get_supply()
        supply.record_mint(amount)
        self.set_supply(supply)

    def burn(self, address: bytes, amount: int):
        """Debit tokens and shrink the supply."""
        self.debit(address, amount)
        supply = self.get_supply()
        supply.record_burn(amount)
        self.set_supply(supply)

    def retire_supply(self, amount: int):
        """Shrink the supply without touching any balance."""
        supply = self.get_supply()
        supply.record_burn(amount)
        self.set_supply(supply)
