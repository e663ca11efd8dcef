"""
HopeSwap Exceptions

Every failure raised by the exchange derives from HopeSwapError.  A raised
error always means the whole external call was reverted.
"""


class HopeSwapError(Exception):
    """Base exception for HopeSwap."""
    pass


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class IdenticalAddresses(HopeSwapError):
    """Both tokens of a pair are the same address."""
    pass


class ZeroAddress(HopeSwapError):
    """A token of a pair is the zero address."""
    pass


class PairExists(HopeSwapError):
    """A pair for this token combination was already created."""
    pass


class Forbidden(HopeSwapError):
    """Caller is not authorised for this operation."""
    pass


class IndexOutOfRange(HopeSwapError, IndexError):
    """Enumeration index past the end of the pair list."""
    pass


# ---------------------------------------------------------------------------
# Pair
# ---------------------------------------------------------------------------

class Locked(HopeSwapError):
    """Re-entrant call into a pair that is mid-operation."""
    pass


class InsufficientLiquidity(HopeSwapError):
    """Reserves cannot cover the request."""
    pass


class InsufficientLiquidityMinted(InsufficientLiquidity):
    pass


class InsufficientLiquidityBurned(InsufficientLiquidity):
    pass


class ReserveOverflow(InsufficientLiquidity):
    """A balance does not fit the 112-bit reserve register."""
    pass


class InsufficientOutputAmount(HopeSwapError):
    pass


class InsufficientInputAmount(HopeSwapError):
    pass


class InsufficientAmount(HopeSwapError):
    pass


class InvalidTo(HopeSwapError):
    """Swap recipient is unusable (a pair token or a missing callee)."""
    pass


class K(HopeSwapError):
    """Fee-adjusted constant product decreased."""
    pass


class TransferFailed(HopeSwapError):
    """A token transfer out of a pair failed."""
    pass


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

class InsufficientBalance(HopeSwapError):
    pass


class InsufficientAllowance(HopeSwapError):
    pass


class InvalidAmount(HopeSwapError, ValueError):
    """Token amount is not an integer in the uint256 range."""
    pass


class Expired(HopeSwapError):
    """Permit deadline is in the past."""
    pass


class InvalidSignature(HopeSwapError):
    pass


# ---------------------------------------------------------------------------
# Execution environment
# ---------------------------------------------------------------------------

class InvalidAddressError(HopeSwapError, ValueError):
    """Invalid address format."""
    pass


class ContractNotFound(HopeSwapError):
    """No contract is deployed at the address."""
    pass


class AddressCollision(HopeSwapError):
    """Deployment target address is already occupied."""
    pass


# ---------------------------------------------------------------------------
# Oracle
# ---------------------------------------------------------------------------

class OracleError(HopeSwapError):
    pass


class PeriodNotElapsed(OracleError):
    pass


class NoReserves(OracleError):
    pass


class InvalidToken(OracleError):
    pass


class ConfigurationError(HopeSwapError):
    """Configuration error."""
    pass
