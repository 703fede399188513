#!/usr/bin/env python3
"""
Pool Valuation

Native-denominated value of the pool. The native side is grossed up by the
dynamic fee while the committed staked side is discounted by it.
"""

from .errors import ValuationUnderflow
from .math import PoolMath
from .state import PoolState


class ValuationEngine:
    """Reads fee amounts and the pool total from live state"""

    def __init__(self, state: PoolState, base_fee: int):
        self.state = state
        self.base_fee = base_fee

    def dynamic_fee(self, amount: int) -> int:
        """Dynamic fee on `amount` at the current fee rate"""
        return PoolMath.apply_fee(amount, self.state.dynamic_fee_bp)

    def total_fee(self, amount: int) -> int:
        return self.dynamic_fee(amount) + self.base_fee

    def utilization(self) -> int:
        return PoolMath.calculate_utilization(
            self.state.staked_balance, self.state.bonded_balance, self.state.native_balance
        )

    def quote_dynamic_fee(self, target_bp: int) -> int:
        """Fee rate the curve gives for the current balances, without storing it"""
        return PoolMath.quote_fee(self.utilization(), target_bp)

    def total(self) -> int:
        # always recomputed: balances and fee may change between calls
        native = self.state.native_balance
        committed = self.state.committed
        total = native + self.dynamic_fee(native) + committed - self.dynamic_fee(committed)
        if total < 0:
            raise ValuationUnderflow(
                f"Pool total is negative at {self.state.dynamic_fee_bp} bp (native={native}, committed={committed})"
            )
        return total
