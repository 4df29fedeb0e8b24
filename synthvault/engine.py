"""
Collateralized synthetic-asset engine.

Users lock native currency in a vault to mint a synthetic token valued at the
oracle price, burn tokens to reclaim collateral proportionally, top up
collateral, and liquidate vaults whose collateral ratio falls below the
liquidation threshold.

Every public operation is one atomic unit: writes are staged in a
StateBatch and committed in a single LevelDB write batch only if the whole
operation succeeds. Any ProtocolError leaves the store untouched.
"""
import logging
import threading
import time
from typing import Optional

from synthvault.config import ProtocolConfig
from synthvault.constants import (
    ADMIN_KEY,
    ESCROW_ADDRESS,
    MAX_UINT,
    NONCE_PREFIX,
    ORACLE_ADDRESS,
    PRICE_SCALE,
    RATIO_SCALE,
)
from synthvault.core import (
    BURN,
    DEPOSIT_COLLATERAL,
    LIQUIDATE,
    MINT,
    TRANSFER,
    UPDATE_PRICE,
    Transaction,
)
from synthvault.db import DB
from synthvault.errors import (
    ArithmeticOverflow,
    InsufficientBalance,
    InsufficientCollateralDeposit,
    InvalidTokenAmount,
    InvalidTransaction,
    OraclePriceExpired,
    ProtocolError,
    TransferFailed,
    Unauthorized,
    VaultNotFound,
    ZeroAmount,
)
from synthvault.host import ExecutionContext, NativeCurrency
from synthvault.ledger import TokenLedger
from synthvault.oracle_state import OraclePrice
from synthvault.safe_math import checked_add, checked_mul
from synthvault.state import StateBatch
from synthvault.supply_state import SupplyState
from synthvault.vault_state import Vault, VaultStore

logger = logging.getLogger(__name__)


def _require_amount(amount: int):
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"Amount must be an integer, got {type(amount).__name__}")
    if amount < 0 or amount > MAX_UINT:
        raise ArithmeticOverflow(f"Amount out of uint range: {amount}")
    if amount == 0:
        raise ZeroAmount()


def _require_address(address: bytes, name: str):
    if not isinstance(address, bytes) or not address:
        raise TypeError(f"{name} must be a non-empty bytes address")


class SynthEngine:
    def __init__(self, db_path: str = None, db: DB = None,
                 administrator: bytes = None,
                 config: ProtocolConfig = None, monitor=None):
        self.config = config or ProtocolConfig()
        self.config.validate()

        if db:
            self.db = db
        elif db_path:
            self.db = DB(db_path)
        else:
            raise ValueError("Either db_path or a DB object must be provided.")

        # Serializes operations; each one runs to completion before the next
        self._lock = threading.RLock()

        self.administrator = self._initialize_administrator(administrator)

        self.monitor = monitor
        if monitor is not None:
            monitor.bind(self)

    def _initialize_administrator(self, administrator: Optional[bytes]) -> bytes:
        """
        Capture the administrator on first open. A reopened store keeps the
        deploying identity and refuses a different one.
        """
        stored = self.db.get(ADMIN_KEY)
        if stored is None:
            if administrator is None:
                raise ValueError("An administrator is required to deploy a new engine")
            _require_address(administrator, "administrator")
            self.db.put(ADMIN_KEY, administrator)
            logger.info(f"Engine deployed with administrator {administrator.hex()}")
            return administrator

        if administrator is not None and administrator != stored:
            raise ValueError("Engine was deployed with a different administrator")
        return stored

    # ==========================================================================
    # STATE MANAGEMENT HELPERS
    # ==========================================================================

    def _view(self) -> StateBatch:
        """Read-only view for queries; nothing staged is ever committed."""
        return StateBatch(self.db)

    def _get_oracle(self, state: StateBatch) -> OraclePrice:
        record = state.get_record(ORACLE_ADDRESS)
        if record is None:
            return OraclePrice()
        return OraclePrice(record)

    def _set_oracle(self, oracle: OraclePrice, state: StateBatch):
        state.put_record(ORACLE_ADDRESS, oracle.to_dict())

    def _get_nonce(self, state: StateBatch, address: bytes) -> int:
        raw = state.get(NONCE_PREFIX + address)
        return int(raw.decode()) if raw is not None else 0

    def _set_nonce(self, state: StateBatch, address: bytes, nonce: int):
        state.put(NONCE_PREFIX + address, str(nonce).encode())

    def _require_fresh_price(self, state: StateBatch, ctx: ExecutionContext) -> int:
        oracle = self._get_oracle(state)
        if not oracle.is_fresh(ctx.height, self.config.expiry_blocks):
            raise OraclePriceExpired(
                f"Price from height {oracle.last_update_height} is stale at {ctx.height}"
            )
        return oracle.value

    def _record(self, op: str, status: str, started: float):
        if self.monitor is not None:
            self.monitor.record_op(op, status, time.time() - started)

    def _execute(self, op: str, ctx: ExecutionContext, handler, *args):
        """Run ``handler`` against a fresh StateBatch and commit only on success."""
        started = time.time()
        with self._lock:
            state = StateBatch(self.db)
            try:
                result = handler(state, ctx, *args)
                state.commit()
            except ProtocolError as e:
                state.discard()
                logger.warning(
                    f"{op} by {ctx.caller.hex()[:16]} at height {ctx.height} "
                    f"rejected: {e.kind} ({e})"
                )
                self._record(op, e.kind, started)
                raise
            except Exception:
                state.discard()
                self._record(op, 'error', started)
                raise

        self._record(op, 'success', started)
        return result

    # ==========================================================================
    # OPERATION HANDLERS
    # ==========================================================================

    def _update_price(self, state: StateBatch, ctx: ExecutionContext, new_price: int):
        if ctx.caller != self.administrator:
            raise Unauthorized("Only the administrator can update the price")

        oracle = self._get_oracle(state)
        oracle.update(new_price, ctx.height, self.config.maximum_price)
        self._set_oracle(oracle, state)
        logger.info(f"Oracle price set to {new_price} at height {ctx.height}")

    def _mint(self, state: StateBatch, ctx: ExecutionContext, amount: int):
        _require_amount(amount)
        if amount < self.config.minimum_mint:
            raise InvalidTokenAmount(
                f"Mint of {amount} is below the minimum {self.config.minimum_mint}"
            )
        price = self._require_fresh_price(state, ctx)

        # The price is scaled down before multiplying; truncation at each
        # division is part of the numeric contract
        base_collateral = checked_mul(amount, price // PRICE_SCALE)
        required_collateral = checked_mul(base_collateral, self.config.collateral_ratio) // RATIO_SCALE

        try:
            NativeCurrency(state).transfer(required_collateral, ctx.caller, ESCROW_ADDRESS)
        except TransferFailed as e:
            raise InsufficientCollateralDeposit(
                f"Could not lock {required_collateral} collateral: {e}"
            ) from e

        # Replaces any existing vault record
        VaultStore(state).put(ctx.caller, Vault({
            'collateral': required_collateral,
            'minted': amount,
            'price_at_lock': price,
        }))
        TokenLedger(state).mint(ctx.caller, amount)
        logger.info(
            f"Minted {amount} to {ctx.caller.hex()[:16]} "
            f"against {required_collateral} collateral at price {price}"
        )

    def _burn(self, state: StateBatch, ctx: ExecutionContext, amount: int):
        vaults = VaultStore(state)
        ledger = TokenLedger(state)

        vault = vaults.get(ctx.caller)
        if vault is None:
            raise VaultNotFound()
        _require_amount(amount)
        price = self._require_fresh_price(state, ctx)

        balance = ledger.balance_of(ctx.caller)
        if balance < amount:
            raise InsufficientBalance(f"Balance {balance} is below {amount}")
        if vault.minted < amount:
            raise Unauthorized(f"Vault minted {vault.minted}, cannot burn {amount}")

        collateral_return = vault.collateral_return(amount)

        # Refund first; state below is only updated once it has gone through
        NativeCurrency(state).transfer(collateral_return, ESCROW_ADDRESS, ctx.caller)

        vault.release(collateral_return, amount, price)
        vaults.put(ctx.caller, vault)
        ledger.burn(ctx.caller, amount)
        logger.info(
            f"Burned {amount} from {ctx.caller.hex()[:16]}, "
            f"returned {collateral_return} collateral"
        )

    def _deposit_collateral(self, state: StateBatch, ctx: ExecutionContext, amount: int):
        _require_amount(amount)
        vaults = VaultStore(state)
        vault = vaults.get_or_default(ctx.caller)

        try:
            NativeCurrency(state).transfer(amount, ctx.caller, ESCROW_ADDRESS)
        except TransferFailed as e:
            raise InsufficientCollateralDeposit(f"Could not deposit {amount}: {e}") from e

        vault.add_collateral(amount, self._get_oracle(state).value)
        vaults.put(ctx.caller, vault)
        logger.info(f"Deposited {amount} collateral for {ctx.caller.hex()[:16]}")

    def _transfer(self, state: StateBatch, ctx: ExecutionContext, recipient: bytes, amount: int):
        _require_address(recipient, "recipient")
        TokenLedger(state).transfer(ctx.caller, recipient, amount)
        logger.info(f"Transferred {amount} from {ctx.caller.hex()[:16]} to {recipient.hex()[:16]}")

    def _liquidate(self, state: StateBatch, ctx: ExecutionContext, vault_owner: bytes):
        _require_address(vault_owner, "vault_owner")
        vaults = VaultStore(state)
        ledger = TokenLedger(state)

        vault = vaults.get(vault_owner)
        if vault is None:
            raise VaultNotFound()
        price = self._require_fresh_price(state, ctx)

        try:
            ratio = vault.collateral_ratio(price)
        except ProtocolError as e:
            raise Unauthorized(f"Vault cannot be valued: {e}") from e
        if ratio >= self.config.liquidation_threshold:
            raise Unauthorized(
                f"Vault ratio {ratio}% is not below {self.config.liquidation_threshold}%"
            )

        NativeCurrency(state).transfer(vault.collateral, ESCROW_ADDRESS, ctx.caller)
        vaults.delete(vault_owner)
        # The owner's whole balance goes, whatever its relation to minted
        ledger.set_balance(vault_owner, 0)
        ledger.retire_supply(vault.minted)
        logger.info(
            f"Liquidated vault of {vault_owner.hex()[:16]} at ratio {ratio}%: "
            f"{vault.collateral} collateral to {ctx.caller.hex()[:16]}, "
            f"{vault.minted} retired from supply"
        )

    # ==========================================================================
    # PUBLIC OPERATIONS
    # ==========================================================================

    def update_price(self, ctx: ExecutionContext, new_price: int):
        """Set the oracle price. Administrator only."""
        return self._execute('update_price', ctx, self._update_price, new_price)

    def mint(self, ctx: ExecutionContext, amount: int):
        """Lock collateral at 150% of the minted value and mint ``amount`` tokens."""
        return self._execute('mint', ctx, self._mint, amount)

    def burn(self, ctx: ExecutionContext, amount: int):
        """Burn tokens and receive the proportional share of vault collateral."""
        return self._execute('burn', ctx, self._burn, amount)

    def transfer(self, ctx: ExecutionContext, recipient: bytes, amount: int):
        return self._execute('transfer', ctx, self._transfer, recipient, amount)

    def deposit_collateral(self, ctx: ExecutionContext, amount: int):
        return self._execute('deposit_collateral', ctx, self._deposit_collateral, amount)

    def liquidate(self, ctx: ExecutionContext, vault_owner: bytes):
        """Close an undercollateralized vault; the caller receives its collateral."""
        return self._execute('liquidate', ctx, self._liquidate, vault_owner)

    def credit_native(self, address: bytes, amount: int):
        """Host-side funding of native currency (genesis, faucets, tests)."""
        _require_address(address, "address")
        _require_amount(amount)
        with self._lock:
            state = StateBatch(self.db)
            NativeCurrency(state).credit(address, amount)
            state.commit()

    # ==========================================================================
    # SIGNED TRANSACTIONS
    # ==========================================================================

    def process_transaction(self, tx: Transaction, height: int) -> bytes:
        """
        Verify and apply a signed transaction at ``height``.

        The sender nonce is checked and advanced inside the same atomic batch
        as the operation, so a rejected transaction leaves its nonce unused.
        Returns the transaction id.
        """
        is_valid, message = tx.validate_basic()
        if not is_valid:
            raise InvalidTransaction(message)
        if tx.chain_id != self.config.chain_id:
            raise InvalidTransaction(
                f"Wrong chain ID. Expected {self.config.chain_id}, got {tx.chain_id}"
            )

        data = tx.data
        if tx.tx_type == UPDATE_PRICE:
            op, handler, args = 'update_price', self._update_price, (data['price'],)
        elif tx.tx_type == MINT:
            op, handler, args = 'mint', self._mint, (data['amount'],)
        elif tx.tx_type == BURN:
            op, handler, args = 'burn', self._burn, (data['amount'],)
        elif tx.tx_type == DEPOSIT_COLLATERAL:
            op, handler, args = 'deposit_collateral', self._deposit_collateral, (data['amount'],)
        elif tx.tx_type == TRANSFER:
            op, handler, args = 'transfer', self._transfer, (bytes.fromhex(data['to']), data['amount'])
        elif tx.tx_type == LIQUIDATE:
            op, handler, args = 'liquidate', self._liquidate, (bytes.fromhex(data['owner']),)
        else:
            raise InvalidTransaction(f"Unknown transaction type: {tx.tx_type}")

        def apply(state: StateBatch, ctx: ExecutionContext):
            expected = self._get_nonce(state, ctx.caller)
            if tx.nonce != expected:
                raise InvalidTransaction(f"Invalid nonce. Expected {expected}, got {tx.nonce}")
            handler(state, ctx, *args)
            self._set_nonce(state, ctx.caller, expected + 1)

        ctx = ExecutionContext(caller=tx.sender_address, height=height)
        self._execute(op, ctx, apply)
        logger.debug(f"Transaction {tx.id.hex()[:8]} applied at height {height}")
        return tx.id

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    def balance_of(self, address: bytes) -> int:
        return TokenLedger(self._view()).balance_of(address)

    def total_supply(self) -> int:
        return TokenLedger(self._view()).total_supply()

    def supply_state(self) -> SupplyState:
        return TokenLedger(self._view()).get_supply()

    def oracle_price(self) -> OraclePrice:
        return self._get_oracle(self._view())

    def vault_of(self, address: bytes) -> Optional[Vault]:
        return VaultStore(self._view()).get(address)

    def vaults(self) -> list[tuple[bytes, Vault]]:
        return VaultStore(self._view()).items()

    def collateral_ratio(self, address: bytes) -> int:
        """Ratio of the vault at the live oracle price, in percent."""
        state = self._view()
        vault = VaultStore(state).get(address)
        if vault is None:
            raise VaultNotFound()
        return vault.collateral_ratio(self._get_oracle(state).value)

    def native_balance_of(self, address: bytes) -> int:
        return NativeCurrency(self._view()).balance_of(address)

    def escrow_balance(self) -> int:
        return self.native_balance_of(ESCROW_ADDRESS)

    def nonce_of(self, address: bytes) -> int:
        return self._get_nonce(self._view(), address)

    def get_stats(self) -> dict:
        state = self._view()
        supply = TokenLedger(state).get_supply()
        oracle = self._get_oracle(state)
        return {
            'administrator': self.administrator.hex(),
            'total_supply': supply.total_supply,
            'total_minted': supply.total_minted,
            'total_burned': supply.total_burned,
            'oracle_price': oracle.value,
            'oracle_last_update_height': oracle.last_update_height,
            'vault_count': len(VaultStore(state).items()),
            'escrow_balance': NativeCurrency(state).balance_of(ESCROW_ADDRESS),
        }

    def audit(self) -> dict:
        """
        Check the conservation invariants against the committed state:
        total supply equals the sum of balances, and escrow holds exactly
        the sum of vault collateral.
        """
        state = self._view()
        ledger = TokenLedger(state)
        supply = ledger.get_supply()

        balance_sum = 0
        for _, balance in ledger.balances():
            balance_sum = checked_add(balance_sum, balance)
        collateral_sum = VaultStore(state).total_collateral()
        escrow = NativeCurrency(state).balance_of(ESCROW_ADDRESS)

        report = {
            'total_supply': supply.total_supply,
            'balance_sum': balance_sum,
            'escrow_balance': escrow,
            'collateral_sum': collateral_sum,
            'supply_matches_balances': supply.total_supply == balance_sum,
            'escrow_matches_collateral': escrow == collateral_sum,
            'supply_bookkeeping': (
                supply.total_supply == supply.total_minted - supply.total_burned
            ),
        }
        report['ok'] = all((
            report['supply_matches_balances'],
            report['escrow_matches_collateral'],
            report['supply_bookkeeping'],
        ))
        if not report['ok']:
            logger.warning(f"Audit found invariant drift: {report}")
        return report

    def close(self):
        self.db.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
