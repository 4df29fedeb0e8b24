"""
Host environment collaborators: the per-call execution context and the
native currency used as collateral.
"""
from dataclasses import dataclass

from synthvault.constants import NATIVE_PREFIX
from synthvault.errors import TransferFailed
from synthvault.safe_math import checked_add, checked_sub
from synthvault.state import StateBatch


@dataclass(frozen=True)
class ExecutionContext:
    """Caller identity and current block height for one call."""
    caller: bytes
    height: int

    def __post_init__(self):
        if not isinstance(self.caller, bytes) or not self.caller:
            raise ValueError("caller must be a non-empty address")
        if self.height < 0:
            raise ValueError("height cannot be negative")


class NativeCurrency:
    """
    Native currency balances.

    Transfers stage their writes in the same StateBatch as the operation that
    requested them, so they commit or vanish with it.
    """

    def __init__(self, state: StateBatch):
        self.state = state

    @staticmethod
    def _key(address: bytes) -> bytes:
        return NATIVE_PREFIX + address

    def balance_of(self, address: bytes) -> int:
        raw = self.state.get(self._key(address))
        if raw is None:
            return 0
        return int(raw.decode())

    def _set(self, address: bytes, amount: int):
        self.state.put(self._key(address), str(amount).encode())

    def credit(self, address: bytes, amount: int):
        self._set(address, checked_add(self.balance_of(address), amount))

    def transfer(self, amount: int, sender: bytes, recipient: bytes):
        """Move native currency. A zero amount is a no-op."""
        if amount == 0:
            return
        if sender == recipient:
            raise TransferFailed("Sender and recipient are the same")

        balance = self.balance_of(sender)
        if balance < amount:
            raise TransferFailed(
                f"Native balance {balance} of {sender.hex()} is below {amount}"
            )
        self._set(sender, checked_sub(balance, amount))
        self.credit(recipient, amount)
