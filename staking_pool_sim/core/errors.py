#!/usr/bin/env python3
"""
Staking Pool Errors

Every failure aborts the current operation and reaches the caller unchanged.
"""


class PoolError(Exception):
    """Base class for all staking pool failures"""
    pass


class AmountZero(PoolError):
    """A zero-value operation was requested"""
    pass


class NativeTokenTransferAmountZero(PoolError):
    """Fees consumed the entire native output of a sell"""
    pass


class StakedTokenTransferAmountZero(PoolError):
    """The manager fee consumed the entire staked output of a buy"""
    pass


class FeeTooLow(PoolError):
    """Dynamic fee component rounded down to zero"""
    pass


class MintingFailed(PoolError):
    """Staked issuance did not increase the pool's ledger balance"""
    pass


class DivisionUndefined(PoolError):
    """Division by a zero reserve or zero denominator"""
    pass


class InsufficientLiquidity(PoolError):
    """Pool reserve cannot cover the requested output"""
    pass


class ValuationUnderflow(PoolError):
    """Fee discount on the committed side exceeds the rest of the pool value"""
    pass


class InvalidConfiguration(PoolError):
    """Pool or simulation configuration failed validation"""
    pass


class InvalidPayload(PoolError):
    """Auction payload is malformed or carries an unusable swap fee"""
    pass


class ReentrantCall(PoolError):
    """An operation was invoked while another one is running on the same pool"""
    pass


class LedgerError(PoolError):
    """Token ledger refused a transfer, mint or burn"""
    pass


class InsufficientBalance(LedgerError):
    pass


class InsufficientAllowance(LedgerError):
    pass


class MintingNotSupported(LedgerError):
    pass
