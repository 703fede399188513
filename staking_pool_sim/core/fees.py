#!/usr/bin/env python3
"""
Buy-Side Fee Sources

A deployment prices buys with exactly one source: the pool's own fee formula
or the swap fee set by the holder of the auctioned fee rights. Both return a
signed manager fee that is added to the native amount to give the staked
amount paid out.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .auction import AuctionFeeOracle
from .errors import InvalidConfiguration, InvalidPayload
from .math import BASIS_POINTS, PoolMath
from .valuation import ValuationEngine

FORMULA = "formula"
AUCTION = "auction"
FEE_SOURCES = (FORMULA, AUCTION)


class FeeSource(ABC):
    """Manager fee for a buy of `amount` native tokens"""

    name: str

    @abstractmethod
    def manager_fee(self, valuation: ValuationEngine, amount: int) -> int:
        pass


class FormulaFeeSource(FeeSource):
    """Dynamic fee less the flat base fee"""

    name = FORMULA

    def manager_fee(self, valuation: ValuationEngine, amount: int) -> int:
        return valuation.dynamic_fee(amount) - valuation.base_fee


class AuctionFeeSource(FeeSource):
    """Swap fee chosen by the current auction winner, charged on the buy amount"""

    name = AUCTION

    def __init__(self, oracle: AuctionFeeOracle):
        self.oracle = oracle

    def swap_fee(self) -> int:
        swap_fee = self.oracle.current_swap_fee()
        if swap_fee > BASIS_POINTS:
            raise InvalidPayload(f"auction swap fee {swap_fee} bp exceeds {BASIS_POINTS} bp")
        return swap_fee

    def manager_fee(self, valuation: ValuationEngine, amount: int) -> int:
        return -PoolMath.apply_fee(amount, self.swap_fee())


def create_fee_source(fee_source: str, oracle: Optional[AuctionFeeOracle] = None) -> FeeSource:
    """Build the fee source named in the pool configuration"""
    if fee_source == FORMULA:
        return FormulaFeeSource()
    if fee_source == AUCTION:
        if oracle is None:
            raise InvalidConfiguration("auction fee source requires an auction oracle")
        return AuctionFeeSource(oracle)
    raise InvalidConfiguration(f"unknown fee source {fee_source!r}, expected one of {FEE_SOURCES}")
