"""
HopeSwap Constants

This module consolidates all global constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast

from dotenv import dotenv_values
from eth_utils import keccak

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: THE VALUES BELOW ARE CONSENSUS-CRITICAL. CHANGING ANY OF THEM CHANGES
# PAIR ADDRESSES, LIQUIDITY ACCOUNTING OR ORACLE READINGS FOR EVERY DEPLOYMENT.

# ==================================================================================
# ADDRESSING
# ==================================================================================
ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'

# Fixed fingerprint of the pair's initialization code. Its hash is the third
# input of the CREATE2 address derivation.
PAIR_INIT_CODE = b'hopeswap.exchange.pair.ExchangePair/v1'
PAIR_INIT_CODE_HASH = keccak(PAIR_INIT_CODE)


# ==================================================================================
# INTEGER WIDTHS
# ==================================================================================
UINT32_MODULUS = 2 ** 32
UINT112_MAX = 2 ** 112 - 1
UINT256_MODULUS = 2 ** 256
UINT256_MAX = UINT256_MODULUS - 1
Q112 = 2 ** 112


# ==================================================================================
# PAIR ECONOMICS
# ==================================================================================
MINIMUM_LIQUIDITY = 10 ** 3
SWAP_FEE_NUMERATOR = 3        # 0.3% taken from the input side
FEE_DENOMINATOR = 1000
PROTOCOL_FEE_FRACTION = 6     # protocol receives 1/6 of fee growth


# ==================================================================================
# LIQUIDITY TOKEN
# ==================================================================================
LP_TOKEN_NAME = 'HopeSwap LP'
LP_TOKEN_SYMBOL = 'HOPE-LP'
LP_TOKEN_DECIMALS = 18
EIP712_DOMAIN_VERSION = '1'
PERMIT_TYPEHASH = keccak(
    b'Permit(address owner,address spender,uint256 value,uint256 nonce,uint256 deadline)'
)
EIP712_DOMAIN_TYPEHASH = keccak(
    b'EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)'
)


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default


class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    def __hash__(self):
        return hash(bool(self))


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = LOGGER_DEFAULTS
namespace = globals()


def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v


for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
