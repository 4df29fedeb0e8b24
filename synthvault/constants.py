# Token fixed point (8 decimals)
TOKEN_DECIMALS = 8
TOKEN_UNIT = 10 ** TOKEN_DECIMALS

# Oracle prices are integers scaled by 100 (100 == 1.00)
PRICE_SCALE = 100
MAXIMUM_PRICE = 1_000_000_000_000  # sanity ceiling, exclusive
EXPIRY_BLOCKS = 900

# Vault parameters, percent
COLLATERAL_RATIO = 150
LIQUIDATION_THRESHOLD = 120
RATIO_SCALE = 100

MINIMUM_MINT = 1 * TOKEN_UNIT

# Unsigned 128-bit integers
UINT_BITS = 128
MAX_UINT = 2 ** UINT_BITS - 1

# Reserved addresses
ORACLE_ADDRESS = b'\x00' * 19 + b'\x01'
SUPPLY_ADDRESS = b'\x00' * 19 + b'\x02'
ESCROW_ADDRESS = b'\x00' * 19 + b'\x03'

# Key prefixes
ADMIN_KEY = b'ADMIN'
BALANCE_PREFIX = b'BALANCE:'
VAULT_PREFIX = b'VAULT:'
NATIVE_PREFIX = b'NATIVE:'
NONCE_PREFIX = b'NONCE:'
