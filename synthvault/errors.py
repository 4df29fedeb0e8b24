"""Error taxonomy for the synthetic-asset engine.

Every failure aborts the whole operation. Each error class carries a stable
integer ``code`` so external tooling can branch on the cause.
"""


class ProtocolError(Exception):
    """Base error class for protocol errors"""
    code = 0

    def __init__(self, message: str = None):
        super().__init__(message or self.__doc__)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {'code': self.code, 'kind': self.kind, 'message': str(self)}


class Unauthorized(ProtocolError):
    """Caller is not allowed to perform this operation"""
    code = 100


class ZeroAmount(ProtocolError):
    """Amount must be greater than zero"""
    code = 101


class InvalidTokenAmount(ProtocolError):
    """Amount is below the minimum mint"""
    code = 102


class InvalidRecipient(ProtocolError):
    """Sender and recipient must differ"""
    code = 103


class InvalidPrice(ProtocolError):
    """Price is zero or above the sanity ceiling"""
    code = 104


class OraclePriceExpired(ProtocolError):
    """Oracle price is stale"""
    code = 105


class InsufficientBalance(ProtocolError):
    """Token balance is too low"""
    code = 106


class InsufficientCollateralDeposit(ProtocolError):
    """Collateral deposit could not be transferred"""
    code = 107


class TransferFailed(ProtocolError):
    """Native currency transfer failed"""
    code = 108


class ArithmeticOverflow(ProtocolError, ArithmeticError):
    """Arithmetic overflow or underflow"""
    code = 109


class VaultNotFound(ProtocolError):
    """No vault exists for this account"""
    code = 110


class InvalidTransaction(ProtocolError):
    """Transaction envelope failed validation"""
    code = 111


ERRORS_BY_CODE = {
    cls.code: cls for cls in (
        Unauthorized,
        ZeroAmount,
        InvalidTokenAmount,
        InvalidRecipient,
        InvalidPrice,
        OraclePriceExpired,
        InsufficientBalance,
        InsufficientCollateralDeposit,
        TransferFailed,
        ArithmeticOverflow,
        VaultNotFound,
        InvalidTransaction,
    )
}
